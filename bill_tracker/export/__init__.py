"""Ledger export package."""

from bill_tracker.export.exporter import (
    EXPORT_HEADER,
    ExportRow,
    ExportSummary,
    LedgerExport,
    build_export,
    export_view,
)
from bill_tracker.export.publisher import ExportPublisher, ExportTarget

__all__ = [
    "EXPORT_HEADER",
    "ExportPublisher",
    "ExportTarget",
    "ExportRow",
    "ExportSummary",
    "LedgerExport",
    "build_export",
    "export_view",
]
