"""
Attachment Storage using Cloudinary

DESIGN DECISION: Receipts and invoices are stored on Cloudinary because:
1. Images and PDFs get a durable, shareable URL
2. Reliable cloud infrastructure
3. Simple upload API

The ledger core treats the result as opaque: it only keeps the URL.
Local file content never reaches the ledger store.
"""

import hashlib

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from tenacity import retry, stop_after_attempt, wait_exponential

from bill_tracker.config import get_settings
from bill_tracker.models.entry import LocalAttachment
from bill_tracker.services.storage.interface import (
    BlobStoreInterface,
    BlobUploadError,
)


class CloudinaryBlobStore(BlobStoreInterface):
    """
    Uploads draft attachments to Cloudinary.

    Flow:
    1. Receive the draft's local attachment
    2. Upload it under ``{folder}/{user_id}/``
    3. Return the secure URL
    """

    def __init__(self):
        self._settings = get_settings().cloudinary
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    @staticmethod
    def public_id_for(attachment: LocalAttachment) -> str:
        """
        Content-addressed public ID.

        Format: {sha256_prefix}_{filename_stem}
        Re-uploading the same receipt overwrites rather than duplicates.
        """
        digest = hashlib.sha256(attachment.content).hexdigest()[:16]
        stem = attachment.filename.rsplit(".", 1)[0]
        safe_stem = "".join(c if c.isalnum() or c in "-_" else "_" for c in stem)
        return f"{digest}_{safe_stem}"[:120]

    @staticmethod
    def resource_type_for(attachment: LocalAttachment) -> str:
        if attachment.mime_type.startswith("image/"):
            return "image"
        # PDFs go through the raw pipeline so they are served byte-for-byte
        return "raw"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _upload(self, attachment: LocalAttachment, user_id: str) -> dict:
        return cloudinary.uploader.upload(
            attachment.content,
            public_id=self.public_id_for(attachment),
            folder=f"{self._settings.folder}/{user_id}",
            resource_type=self.resource_type_for(attachment),
            overwrite=True,
        )

    async def upload(self, attachment: LocalAttachment, user_id: str) -> str:
        """
        Upload an attachment and return its durable URL.

        Raises:
            BlobUploadError: If the upload fails or returns no URL
        """
        self._configure()

        try:
            result = self._upload(attachment, user_id)
        except cloudinary.exceptions.Error as e:
            raise BlobUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise BlobUploadError(f"Failed to upload attachment: {e}")

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise BlobUploadError("No URL returned from Cloudinary")
        return url
