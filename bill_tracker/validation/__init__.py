"""Draft validation package."""

from bill_tracker.validation.validator import (
    EntryValidationError,
    EntryValidator,
    ValidatedDraft,
)

__all__ = ["EntryValidationError", "EntryValidator", "ValidatedDraft"]
