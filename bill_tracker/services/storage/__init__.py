"""
Storage Services Package

Provides abstract collaborator interfaces and concrete implementations.
Firestore holds the ledger (``storage.firestore``), Google Sheets receives
exports and the audit trail (``storage.google_sheets``), and the in-memory
backend stands in for both in tests. The SDK-backed modules are imported
directly so that importing the interfaces never pulls in a cloud SDK.
"""

from bill_tracker.services.storage.interface import (
    AuditStorageInterface,
    BlobStoreInterface,
    BlobUploadError,
    ConnectionError,
    LedgerRecord,
    LedgerSourceInterface,
    LedgerWriterInterface,
    StorageError,
    SubmissionError,
    SubscriptionError,
)
from bill_tracker.services.storage.memory import InMemoryLedgerBackend

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BlobStoreInterface",
    "LedgerRecord",
    "LedgerSourceInterface",
    "LedgerWriterInterface",
    # Exceptions
    "BlobUploadError",
    "ConnectionError",
    "StorageError",
    "SubmissionError",
    "SubscriptionError",
    # In-memory implementation
    "InMemoryLedgerBackend",
]
