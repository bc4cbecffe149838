"""
Entry Submission and Application Wiring

This module ties the write path together and builds the components a host
application needs:
1. Submission (draft → validate → upload attachment → submit)
2. The ledger store wired to the configured remote source

DESIGN DECISION: The write path never touches the ledger snapshot.
A successful submission is only visible once the live feed delivers it;
a failed one leaves the snapshot exactly as it was.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from bill_tracker.audit import AuditLogger, create_correlation_id
from bill_tracker.config import get_settings
from bill_tracker.ledger.store import LedgerStore
from bill_tracker.logging_setup import get_logger
from bill_tracker.models.entry import EntryDraft, utc_now
from bill_tracker.services.blob import CloudinaryBlobStore
from bill_tracker.services.storage import (
    BlobStoreInterface,
    BlobUploadError,
    InMemoryLedgerBackend,
    LedgerRecord,
    LedgerWriterInterface,
    StorageError,
    SubmissionError,
)
from bill_tracker.services.storage.firestore import (
    FirestoreClient,
    FirestoreLedgerSource,
    FirestoreLedgerWriter,
)
from bill_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
)
from bill_tracker.validation import EntryValidationError, EntryValidator, ValidatedDraft


logger = get_logger(__name__)


class SubmissionReceipt(BaseModel):
    """What the caller gets back from an accepted submission."""
    model_config = ConfigDict(frozen=True)

    entry_id: str
    draft_id: str
    attachment_url: Optional[str] = None
    correlation_id: UUID


def draft_to_record(draft: ValidatedDraft, attachment_url: Optional[str]) -> LedgerRecord:
    """
    Build the V2 document for a validated draft.

    The amount goes out as a float because document stores have no decimal
    type; the feed normalizer reads it back at cent precision.
    """
    return {
        "title": draft.title,
        "amount": float(draft.amount),
        "type": draft.type.value,
        "note": draft.note,
        "date": draft.date,
        "attachmentURL": attachment_url,
    }


class EntrySubmissionFlow:
    """
    Orchestrates adding a new ledger entry.

    Flow:
    1. Validate → reject without side effects
    2. Upload attachment (if any) → durable URL
    3. Submit → the store assigns the id
    """

    def __init__(
        self,
        writer: LedgerWriterInterface,
        validator: Optional[EntryValidator] = None,
        blob_store: Optional[BlobStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._writer = writer
        self._validator = validator or EntryValidator()
        self._blob_store = blob_store
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock
        self._currency = get_settings().ledger.currency_symbol

    async def submit(
        self,
        user_id: Optional[str],
        draft: EntryDraft,
        correlation_id: Optional[UUID] = None,
    ) -> SubmissionReceipt:
        """
        Validate and submit ``draft`` for ``user_id``.

        Raises:
            EntryValidationError: The draft is invalid; nothing was sent
            BlobUploadError: The attachment could not be stored
            SubmissionError: No user, or the store rejected the write
        """
        correlation_id = correlation_id or create_correlation_id()

        if not user_id:
            raise SubmissionError("Cannot submit an entry without a signed-in user")

        # Step 1: Validate
        try:
            validated = self._validator.clean(draft, now=self._clock())
        except EntryValidationError as e:
            await self._audit_logger.log_validation_failed(
                draft_id=draft.draft_id,
                issues=[issue.model_dump() for issue in e.result.issues],
                correlation_id=correlation_id,
                user_id=user_id,
            )
            raise

        # Step 2: Upload attachment
        attachment_url = None
        if validated.attachment is not None:
            attachment_url = await self._upload(validated, user_id, correlation_id)

        # Step 3: Submit
        record = draft_to_record(validated, attachment_url)
        try:
            entry_id = await self._writer.submit(user_id, record)
        except StorageError as e:
            await self._audit_logger.log_submission_failed(
                draft_id=validated.draft_id,
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            if isinstance(e, SubmissionError):
                raise
            raise SubmissionError(str(e)) from e

        await self._audit_logger.log_entry_submitted(
            entry_id=entry_id,
            user_id=user_id,
            entry_type=validated.type.value,
            amount=str(validated.amount),
            correlation_id=correlation_id,
            currency_symbol=self._currency,
        )

        return SubmissionReceipt(
            entry_id=entry_id,
            draft_id=validated.draft_id,
            attachment_url=attachment_url,
            correlation_id=correlation_id,
        )

    async def _upload(
        self,
        validated: ValidatedDraft,
        user_id: str,
        correlation_id: UUID,
    ) -> str:
        if self._blob_store is None:
            raise SubmissionError("Attachments are not supported: no blob store configured")

        try:
            url = await self._blob_store.upload(validated.attachment, user_id)
        except BlobUploadError as e:
            await self._audit_logger.log_external_service_error(
                service="blob_store",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_attachment_uploaded(
            draft_id=validated.draft_id,
            filename=validated.attachment.filename,
            url=url,
            correlation_id=correlation_id,
        )
        return url


def create_app_components(
    use_remote: bool = True,
) -> tuple[LedgerStore, EntrySubmissionFlow, Optional[FirestoreClient]]:
    """
    Factory function to create all application components.

    Args:
        use_remote: Whether to connect to Firestore, Cloudinary and
                    Google Sheets. Set to False to run fully in memory.

    Returns:
        (ledger_store, submission_flow, firestore_client). The caller owns
        the client and must ``close()`` it on shutdown.
    """
    firestore_client = None
    blob_store = None
    audit_logger = AuditLogger()

    if use_remote:
        try:
            firestore_client = FirestoreClient()
            firestore_client.init()
            source = FirestoreLedgerSource(firestore_client)
            writer = FirestoreLedgerWriter(firestore_client)
        except StorageError as e:
            logger.warning("firestore_not_configured", error=str(e))
            firestore_client = None
            source = writer = InMemoryLedgerBackend()

        try:
            blob_store = CloudinaryBlobStore()
        except Exception as e:
            logger.warning("blob_store_not_configured", error=str(e))

        try:
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(GoogleSheetsClient()))
        except Exception as e:
            logger.warning("audit_storage_not_configured", error=str(e))
    else:
        source = writer = InMemoryLedgerBackend()

    store = LedgerStore(source)
    flow = EntrySubmissionFlow(
        writer=writer,
        blob_store=blob_store,
        audit_logger=audit_logger,
    )
    return store, flow, firestore_client
