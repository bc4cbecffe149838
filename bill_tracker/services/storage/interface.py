"""
Abstract Collaborator Interfaces

DESIGN DECISION: Every remote system the ledger core talks to sits behind an
abstract interface. This allows us to:
1. Swap Firestore for another ordered document store
2. Use the in-memory backend for tests and offline work
3. Keep the ledger store decoupled from any SDK

The core consumes three collaborators:
- a live, ordered ledger source (read path)
- a write collaborator that assigns ids and persists drafts
- a blob store that turns local files into durable URLs
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable

from bill_tracker.models.audit import AuditEvent
from bill_tracker.models.entry import LocalAttachment


# A raw remote document: title?, amount, type, note, date, attachmentURL?
# plus the store-assigned ``id``.
LedgerRecord = dict[str, Any]

RecordsCallback = Callable[[list[LedgerRecord]], None]
ErrorCallback = Callable[[Exception], None]


class LedgerSourceInterface(ABC):
    """
    A live feed of one user's ledger documents.

    Implementations push the FULL current document set, ordered by date
    descending, on every change. They never push partial diffs.
    """

    @abstractmethod
    def subscribe(
        self,
        user_id: str,
        on_records: RecordsCallback,
        on_error: ErrorCallback,
    ) -> Hashable:
        """
        Start delivering ``user_id``'s documents.

        Args:
            user_id: Owner whose ledger is observed
            on_records: Called with the full document set on every change
            on_error: Called when the feed disconnects or access is denied

        Returns:
            An opaque handle for :meth:`unsubscribe`

        Raises:
            SubscriptionError: If the subscription cannot be established
        """
        pass

    @abstractmethod
    def unsubscribe(self, handle: Hashable) -> None:
        """
        Stop delivery for ``handle``.

        Unknown or already released handles are ignored.
        """
        pass


class LedgerWriterInterface(ABC):
    """
    The persistence collaborator for new entries.

    A successful submission is expected to trigger a later feed delivery
    that includes the new entry. The snapshot never changes through here.
    """

    @abstractmethod
    async def submit(self, user_id: str, record: LedgerRecord) -> str:
        """
        Persist a validated record for ``user_id``.

        Args:
            user_id: Owner of the new entry
            record: Document fields (without ``id``)

        Returns:
            The id assigned by the store

        Raises:
            SubmissionError: If the store rejects the write
        """
        pass


class BlobStoreInterface(ABC):
    """Turns local attachment content into a durable URL."""

    @abstractmethod
    async def upload(self, attachment: LocalAttachment, user_id: str) -> str:
        """
        Upload an attachment.

        Returns:
            The durable URL of the stored blob

        Raises:
            BlobUploadError: If the upload fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class SubscriptionError(StorageError):
    """The live feed could not be established or was lost."""
    pass


class SubmissionError(StorageError):
    """The write collaborator rejected a submission."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class BlobUploadError(StorageError):
    """The blob store did not return a durable URL."""
    pass
