"""
Audit Logger

DESIGN DECISION: Every write attempt and every tolerated remote record is
logged. This provides:
1. Traceability of who added what, and when
2. Debugging capability when the live feed misbehaves
3. A visible record of data the ledger accepted only after normalizing it

The audit logger:
- Is async so the submission flow can await it alongside remote calls
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

from bill_tracker.logging_setup import get_logger
from bill_tracker.models.audit import AuditEvent, AuditEventBuilder
from bill_tracker.services.storage import AuditStorageInterface


class AuditLogger:
    """
    Records ledger audit events.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store such as Google Sheets (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = get_logger("bill_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_validation_failed(
        self,
        draft_id: str,
        issues: list[dict],
        correlation_id: UUID,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a rejected draft."""
        event = AuditEventBuilder.validation_failed(
            draft_id=draft_id,
            issues=issues,
            correlation_id=correlation_id,
            user_id=user_id,
        )
        await self.log(event)

    async def log_attachment_uploaded(
        self,
        draft_id: str,
        filename: str,
        url: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.attachment_uploaded(
            draft_id=draft_id,
            filename=filename,
            url=url,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_entry_submitted(
        self,
        entry_id: str,
        user_id: str,
        entry_type: str,
        amount: str,
        correlation_id: UUID,
        currency_symbol: str = "$",
    ) -> None:
        """Log an accepted submission."""
        event = AuditEventBuilder.entry_submitted(
            entry_id=entry_id,
            user_id=user_id,
            entry_type=entry_type,
            amount=amount,
            correlation_id=correlation_id,
            currency_symbol=currency_symbol,
        )
        await self.log(event)

    async def log_submission_failed(
        self,
        draft_id: str,
        user_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.submission_failed(
            draft_id=draft_id,
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_export_generated(
        self,
        window: str,
        row_count: int,
        user_id: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.export_generated(
            window=window,
            row_count=row_count,
            user_id=user_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    New correlation id.

    One id per submission or export; every event it produces carries it.
    """
    return uuid4()
