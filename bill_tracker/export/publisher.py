"""
Export publishing.

Builds an export from a ledger view and hands it to an export target,
recording the export in the audit trail.
"""

from typing import Optional, Protocol

from bill_tracker.audit import AuditLogger
from bill_tracker.export.exporter import LedgerExport, export_view
from bill_tracker.ledger.aggregation import LedgerView
from bill_tracker.services.storage.interface import StorageError


class ExportTarget(Protocol):
    def write(self, export: LedgerExport) -> int:
        ...


class ExportPublisher:
    """Publishes window exports to a target such as ``GoogleSheetsExportSink``."""

    def __init__(
        self,
        target: ExportTarget,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._target = target
        self._audit_logger = audit_logger or AuditLogger()

    async def publish(
        self,
        view: LedgerView,
        user_id: Optional[str] = None,
    ) -> LedgerExport:
        """
        Export ``view`` to the target.

        Raises:
            StorageError: The target rejected the export
        """
        export = export_view(view)
        try:
            self._target.write(export)
        except StorageError as e:
            await self._audit_logger.log_error(
                error_type="export_failed",
                error_message=str(e),
                details={"window": view.window.value, "user_id": user_id},
            )
            raise

        await self._audit_logger.log_export_generated(
            window=view.window.value,
            row_count=len(export.rows),
            user_id=user_id,
        )
        return export
