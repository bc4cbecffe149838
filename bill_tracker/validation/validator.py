"""
Draft Validation

DESIGN DECISION: Drafts are validated before anything leaves the process.
A rejected draft is never submitted, never uploaded, never retried.

Rules:
- ``amount`` must be a positive, finite number (at cent precision)
- ``type`` must be ``income`` or ``expense``
- ``title`` must be non-blank when titles are required
- an attachment must be an accepted type and within the size limit
- a missing ``date`` defaults to the submission instant

Validation is synchronous and side-effect free. It NEVER silently fixes
bad input; every problem is reported back as a ``ValidationIssue``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from bill_tracker.config import get_settings
from bill_tracker.ledger.normalize import parse_amount, parse_entry_type
from bill_tracker.models.entry import (
    CENT,
    EntryDraft,
    EntryType,
    LocalAttachment,
    SchemaVersion,
    ValidationIssue,
    ValidationResult,
    to_utc,
    utc_now,
)


class EntryValidationError(ValueError):
    """A draft failed validation. ``result`` holds every issue found."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            f"{issue.field}: {issue.message}"
            for issue in result.issues
            if issue.severity == "error"
        )
        super().__init__(f"Invalid entry ({messages})")


class ValidatedDraft(BaseModel):
    """A draft that passed validation, with its values resolved."""
    model_config = ConfigDict(frozen=True)

    draft_id: str
    title: str
    amount: Decimal
    type: EntryType
    note: str
    date: datetime
    attachment: Optional[LocalAttachment] = None


class EntryValidator:
    """
    Validates drafts against one schema revision.

    The title rule is taken from ``require_title`` alone. With titles
    required the V2 rules apply; without, the legacy V1 rules apply. The
    two rule sets are never mixed.
    """

    def __init__(self, require_title: Optional[bool] = None):
        """
        Args:
            require_title: Override ``LEDGER_REQUIRE_TITLE``.
        """
        self._settings = get_settings().ledger
        self._require_title = (
            self._settings.require_title if require_title is None else require_title
        )

    @property
    def schema_version(self) -> SchemaVersion:
        return SchemaVersion.V2 if self._require_title else SchemaVersion.V1

    def _validate_amount(self, draft: EntryDraft) -> list[ValidationIssue]:
        if draft.amount is None or draft.amount == "":
            return [ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            )]

        amount = parse_amount(draft.amount)
        if amount is None:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount is not a valid number in range: {draft.amount!r}",
                severity="error",
            )]

        if amount.quantize(CENT) <= 0:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Please enter a valid amount greater than zero",
                severity="error",
            )]

        if amount != amount.quantize(CENT):
            return [ValidationIssue(
                field="amount",
                issue_type="precision",
                message=f"Amount will be rounded to {amount.quantize(CENT)}",
                severity="warning",
            )]
        return []

    def _validate_type(self, draft: EntryDraft) -> list[ValidationIssue]:
        if parse_entry_type(draft.type) is None:
            return [ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Type must be 'income' or 'expense', got {draft.type!r}",
                severity="error",
            )]
        return []

    def _validate_title(self, draft: EntryDraft) -> list[ValidationIssue]:
        if self._require_title and not draft.title.strip():
            return [ValidationIssue(
                field="title",
                issue_type="missing",
                message="Title is required",
                severity="error",
            )]
        if len(draft.title) > 200:
            return [ValidationIssue(
                field="title",
                issue_type="too_long",
                message="Title must be at most 200 characters",
                severity="error",
            )]
        return []

    def _validate_attachment(self, draft: EntryDraft) -> list[ValidationIssue]:
        attachment = draft.attachment
        if attachment is None:
            return []

        issues = []
        allowed = self._settings.allowed_attachment_types_list
        if attachment.mime_type not in allowed:
            issues.append(ValidationIssue(
                field="attachment",
                issue_type="unsupported_type",
                message=f"Unsupported attachment type: {attachment.mime_type}",
                severity="error",
            ))
        if attachment.size_bytes == 0:
            issues.append(ValidationIssue(
                field="attachment",
                issue_type="empty",
                message="Attachment is empty",
                severity="error",
            ))
        elif attachment.size_bytes > self._settings.max_upload_size_bytes:
            issues.append(ValidationIssue(
                field="attachment",
                issue_type="too_large",
                message=(
                    f"Attachment is larger than {self._settings.max_upload_size_mb} MB"
                ),
                severity="error",
            ))
        return issues

    def validate(self, draft: EntryDraft) -> ValidationResult:
        """Collect every issue with ``draft``."""
        issues = []
        issues.extend(self._validate_amount(draft))
        issues.extend(self._validate_type(draft))
        issues.extend(self._validate_title(draft))
        issues.extend(self._validate_attachment(draft))

        return ValidationResult(
            draft_id=draft.draft_id,
            schema_version=self.schema_version,
            issues=issues,
        )

    def clean(
        self,
        draft: EntryDraft,
        now: Optional[datetime] = None,
    ) -> ValidatedDraft:
        """
        Validate ``draft`` and resolve its values.

        Raises:
            EntryValidationError: If any error-level issue was found
        """
        result = self.validate(draft)
        if result.has_errors:
            raise EntryValidationError(result)

        return ValidatedDraft(
            draft_id=draft.draft_id,
            title=draft.title.strip(),
            amount=parse_amount(draft.amount).quantize(CENT),
            type=parse_entry_type(draft.type),
            note=draft.note,
            date=to_utc(draft.date) if draft.date else (now or utc_now()),
            attachment=draft.attachment,
        )
