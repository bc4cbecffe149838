"""
Audit Models for Bill Tracker

Every significant action on the ledger is logged for audit purposes.
This provides:
1. Traceability of every write and every subscription
2. Debugging information when the live feed misbehaves
3. A record of which remote records were tolerated rather than trusted

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Subscription lifecycle
    SUBSCRIPTION_STARTED = "subscription_started"
    SUBSCRIPTION_STOPPED = "subscription_stopped"
    FEED_ERROR = "feed_error"

    # Tolerated remote data
    RECORD_NORMALIZED = "record_normalized"
    RECORD_DROPPED = "record_dropped"

    # Write path
    VALIDATION_FAILED = "validation_failed"
    ATTACHMENT_UPLOADED = "attachment_uploaded"
    ENTRY_SUBMITTED = "entry_submitted"
    SUBMISSION_FAILED = "submission_failed"

    # Export
    EXPORT_GENERATED = "export_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'draft', 'subscription')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the ledger the event concerns"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one submission)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.user_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.subscription_started(user_id)
        event = AuditEventBuilder.entry_submitted(entry_id, user_id, ...)
    """

    @staticmethod
    def subscription_started(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_STARTED,
            entity_type="subscription",
            user_id=user_id,
            description=f"Ledger subscription started for user {user_id}",
        )

    @staticmethod
    def subscription_stopped(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_STOPPED,
            entity_type="subscription",
            user_id=user_id,
            description=f"Ledger subscription stopped for user {user_id}",
        )

    @staticmethod
    def feed_error(
        user_id: Optional[str],
        error_type: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEED_ERROR,
            severity=AuditSeverity.WARNING,
            entity_type="subscription",
            user_id=user_id,
            description=f"Ledger feed reported {error_type}",
            error_message=error_message,
        )

    @staticmethod
    def record_normalized(
        entry_id: str,
        fields: list[str],
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_NORMALIZED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            entity_id=entry_id,
            user_id=user_id,
            description=f"Remote record normalized ({', '.join(fields)})",
            details={"defaulted_fields": fields},
        )

    @staticmethod
    def record_dropped(
        entry_id: Optional[str],
        reason: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DROPPED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            entity_id=entry_id,
            user_id=user_id,
            description="Remote record dropped from snapshot",
            error_message=reason,
        )

    @staticmethod
    def validation_failed(
        draft_id: str,
        issues: list[dict],
        correlation_id: UUID,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="draft",
            entity_id=draft_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Draft validation failed with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def attachment_uploaded(
        draft_id: str,
        filename: str,
        url: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_UPLOADED,
            entity_type="draft",
            entity_id=draft_id,
            correlation_id=correlation_id,
            description=f"Attachment uploaded: {filename}",
            details={"filename": filename, "url": url},
        )

    @staticmethod
    def entry_submitted(
        entry_id: str,
        user_id: str,
        entry_type: str,
        amount: str,
        correlation_id: UUID,
        currency_symbol: str = "$",
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SUBMITTED,
            entity_type="entry",
            entity_id=entry_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{entry_type.capitalize()} of {currency_symbol}{amount} submitted",
            details={"type": entry_type, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def submission_failed(
        draft_id: str,
        user_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMISSION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="draft",
            entity_id=draft_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Entry submission was rejected by the ledger store",
            error_message=error_message,
        )

    @staticmethod
    def export_generated(
        window: str,
        row_count: int,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="export",
            user_id=user_id,
            description=f"Export generated for {window}: {row_count} rows",
            details={"window": window, "row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
