"""Tests for draft validation."""

import pytest
from decimal import Decimal

from bill_tracker.models.entry import EntryDraft, EntryType, LocalAttachment, SchemaVersion
from bill_tracker.validation import EntryValidationError, EntryValidator

from conftest import utc


NOW = utc(2024, 1, 15)


@pytest.fixture
def validator():
    return EntryValidator(require_title=True)


class TestAmountRules:
    """Tests for amount validation."""

    def test_negative_amount_rejected(self, validator):
        """Test that a negative amount is an error."""
        result = validator.validate(EntryDraft(title="Coffee", amount=-5, type="expense"))
        assert result.has_errors
        assert result.fields_with_errors() == ["amount"]

    def test_zero_and_rounding_to_zero_rejected(self, validator):
        """Test that amounts below one cent are rejected."""
        for amount in (0, "0.001"):
            result = validator.validate(EntryDraft(title="x", amount=amount, type="income"))
            assert result.issues[0].issue_type == "invalid_value"

    def test_missing_and_malformed_amount(self, validator):
        """Test missing vs. unparseable amounts."""
        missing = validator.validate(EntryDraft(title="x", type="income"))
        malformed = validator.validate(EntryDraft(title="x", amount="ten", type="income"))
        assert missing.issues[0].issue_type == "missing"
        assert malformed.issues[0].issue_type == "invalid_format"

    def test_out_of_range_amount_rejected(self, validator):
        """Test that an amount too large for cent precision is an issue, not a crash."""
        result = validator.validate(EntryDraft(title="t", amount="1e30", type="income"))
        assert result.is_valid is False
        assert result.issues[0].field == "amount"
        assert result.issues[0].issue_type == "invalid_format"
        with pytest.raises(EntryValidationError):
            validator.clean(EntryDraft(title="t", amount="1e30", type="income"))

    def test_sub_cent_precision_warns(self, validator):
        """Test that extra decimals are a warning, not an error."""
        result = validator.validate(EntryDraft(title="x", amount="10.005", type="income"))
        assert result.is_valid
        assert result.issues[0].severity == "warning"


class TestTypeAndTitleRules:
    """Tests for type and title validation."""

    def test_unknown_type_rejected(self, validator):
        """Test that only income and expense are accepted."""
        result = validator.validate(EntryDraft(title="x", amount=5, type="transfer"))
        assert result.fields_with_errors() == ["type"]

    def test_title_required(self, validator):
        """Test the V2 title rule."""
        result = validator.validate(EntryDraft(title="  ", amount=5, type="income"))
        assert result.fields_with_errors() == ["title"]
        assert result.schema_version == SchemaVersion.V2

    def test_title_optional_for_legacy_schema(self):
        """Test that V1 rules accept untitled drafts."""
        validator = EntryValidator(require_title=False)
        result = validator.validate(EntryDraft(amount=5, type="income"))
        assert result.is_valid
        assert result.schema_version == SchemaVersion.V1

    def test_title_too_long(self, validator):
        """Test the title length limit."""
        result = validator.validate(EntryDraft(title="x" * 201, amount=5, type="income"))
        assert result.issues[0].issue_type == "too_long"

    def test_all_issues_reported_at_once(self, validator):
        """Test that validation does not stop at the first problem."""
        result = validator.validate(EntryDraft(amount=-1, type="gift"))
        assert set(result.fields_with_errors()) == {"amount", "type", "title"}


class TestAttachmentRules:
    """Tests for attachment validation."""

    def test_unsupported_type(self, validator):
        """Test that unknown MIME types are rejected."""
        draft = EntryDraft(
            title="x",
            amount=5,
            type="expense",
            attachment=LocalAttachment(
                filename="a.exe", content=b"MZ", mime_type="application/x-msdownload"
            ),
        )
        result = validator.validate(draft)
        assert result.issues[0].issue_type == "unsupported_type"

    def test_empty_attachment(self, validator):
        """Test that empty files are rejected."""
        draft = EntryDraft(
            title="x",
            amount=5,
            type="expense",
            attachment=LocalAttachment(filename="a.png", content=b"", mime_type="image/png"),
        )
        assert validator.validate(draft).issues[0].issue_type == "empty"


class TestClean:
    """Tests for resolving a valid draft."""

    def test_clean_resolves_values(self, validator):
        """Test amount rounding, type parsing and date defaulting."""
        cleaned = validator.clean(
            EntryDraft(title=" Coffee ", amount="3.5", type="Expense"), now=NOW
        )
        assert cleaned.title == "Coffee"
        assert cleaned.amount == Decimal("3.50")
        assert cleaned.type == EntryType.EXPENSE
        assert cleaned.date == NOW

    def test_clean_keeps_given_date(self, validator):
        """Test that an explicit date is kept."""
        cleaned = validator.clean(
            EntryDraft(title="x", amount=1, type="income", date=utc(2023, 5, 1)), now=NOW
        )
        assert cleaned.date == utc(2023, 5, 1)

    def test_clean_raises_with_result(self, validator):
        """Test that invalid drafts raise with every issue attached."""
        with pytest.raises(EntryValidationError) as exc_info:
            validator.clean(EntryDraft(title="Coffee", amount=-5, type="expense"))
        assert exc_info.value.result.fields_with_errors() == ["amount"]
        assert "amount" in str(exc_info.value)
