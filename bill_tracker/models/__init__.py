"""
Data Models Package

This package contains all Pydantic models used in Bill Tracker.
All ledger data flowing through the system must conform to these schemas.
"""

from bill_tracker.models.entry import (
    EntryDraft,
    EntryType,
    LedgerEntry,
    LedgerSummary,
    LedgerWindow,
    LocalAttachment,
    SchemaVersion,
    ValidationIssue,
    ValidationResult,
)
from bill_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "EntryDraft",
    "EntryType",
    "LedgerEntry",
    "LedgerSummary",
    "LedgerWindow",
    "LocalAttachment",
    "SchemaVersion",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
