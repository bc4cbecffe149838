"""
Core Data Models for Bill Tracker

These models define the strict schemas for all ledger data flowing through
the system. They are designed to:
1. Enforce the amount/type invariants at runtime
2. Provide clear validation error messages
3. Be immutable once observed from the live feed
4. Be serializable for the write collaborator and for exports

DESIGN DECISION: Direction is carried by ``type``, never by the sign of
``amount``. Every persisted amount is strictly positive.
"""

import warnings
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


CENT = Decimal("0.01")


def to_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryType(str, Enum):
    """Direction of a ledger entry."""
    INCOME = "income"
    EXPENSE = "expense"


class LedgerWindow(str, Enum):
    """
    Time-based filter applied to a snapshot.

    "Current" is always evaluated at call time.
    """
    ALL = "all"
    YEARLY = "yearly"
    MONTHLY = "monthly"

    @property
    def label(self) -> str:
        return {
            LedgerWindow.ALL: "All Time",
            LedgerWindow.YEARLY: "This Year",
            LedgerWindow.MONTHLY: "This Month",
        }[self]


class SchemaVersion(str, Enum):
    """
    Known revisions of the persisted entry shape.

    V1 (deprecated): no title, client-generated ids, local file objects.
    V2 (canonical): required title, server ids, attachment stored as URL.
    """
    V1 = "v1"
    V2 = "v2"


# =============================================================================
# LEDGER ENTRY
# =============================================================================

class LedgerEntry(BaseModel):
    """
    One income or expense transaction as observed on the live feed.

    CRITICAL: Entries are frozen. The core never mutates an observed entry;
    a change on the remote side arrives as a replacement snapshot.

    ``title`` may be empty here: untitled records already persisted by the
    legacy schema must still show up in the ledger. The title rule for new
    writes lives in the validator.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Identifier assigned by the persistence collaborator"
    )
    title: str = Field(
        default="",
        max_length=200,
        description="Display label"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; direction is carried by type"
    )
    type: EntryType
    note: str = Field(
        default="",
        description="Free text, may be empty"
    )
    date: datetime = Field(
        ...,
        description="Transaction timestamp (UTC); the sole ordering key"
    )
    attachment_url: Optional[str] = Field(
        default=None,
        description="Durable URL of the attached receipt, if any"
    )

    @field_validator('amount')
    @classmethod
    def round_to_cents(cls, v: Decimal) -> Decimal:
        try:
            rounded = v.quantize(CENT)
        except InvalidOperation:
            raise ValueError("Amount is too large to hold at cent precision")
        if rounded <= 0:
            raise ValueError("Amount must be at least one cent")
        return rounded

    @field_validator('date')
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return to_utc(v)

    @property
    def display_title(self) -> str:
        return self.title or self.note or "Untitled"

    @property
    def day(self):
        """The entry date truncated to day precision."""
        return self.date.date()


# =============================================================================
# DRAFTS (write path)
# =============================================================================

class LocalAttachment(BaseModel):
    """
    An attachment that has not been uploaded yet.

    Only drafts carry local file content; persisted entries carry a URL.
    """

    filename: str = Field(..., min_length=1)
    content: bytes = Field(..., repr=False)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def lower_mime_type(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class EntryDraft(BaseModel):
    """
    A transaction the user wants to add.

    Deliberately lenient: every field is accepted as given so the validator
    can report all problems at once instead of failing on the first one.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = ""
    amount: Any = None
    type: Any = None
    note: str = ""
    date: Optional[datetime] = None
    attachment: Optional[LocalAttachment] = None
    draft_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Transient id for offline drafts; never persisted"
    )

    @classmethod
    def from_legacy(cls, record: dict) -> "EntryDraft":
        """
        Build a draft from the deprecated V1 shape.

        V1 records carry ``id``, ``amount``, ``type``, ``note``, ``date`` and an
        optional local ``file``. There is no title. The client id is kept as
        the draft id only; the write collaborator assigns the real one.
        """
        warnings.warn(
            "The V1 bill shape is deprecated; submit drafts with a title instead.",
            DeprecationWarning,
            stacklevel=2,
        )
        data = {
            "amount": record.get("amount"),
            "type": record.get("type"),
            "note": record.get("note") or "",
            "date": record.get("date"),
            "attachment": record.get("file"),
        }
        if record.get("id"):
            data["draft_id"] = str(record["id"])
        return cls(**data)


# =============================================================================
# DERIVED VALUES
# =============================================================================

class LedgerSummary(BaseModel):
    """Aggregates derived from a snapshot or a window subset."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Decimal("0.00")
    total_expenses: Decimal = Decimal("0.00")
    profit: Decimal = Decimal("0.00")
    entry_count: int = Field(default=0, ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one draft."""

    draft_id: str
    validated_at: datetime = Field(default_factory=utc_now)
    schema_version: SchemaVersion = SchemaVersion.V2
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def fields_with_errors(self) -> list[str]:
        return [issue.field for issue in self.issues if issue.severity == "error"]
