"""Attachment (blob) storage package."""

from bill_tracker.services.blob.cloudinary_service import CloudinaryBlobStore

__all__ = ["CloudinaryBlobStore"]
