"""Tests for remote record normalization."""

from datetime import date, datetime, timezone
from decimal import Decimal

from bill_tracker.ledger.normalize import (
    normalize_record,
    normalize_records,
    parse_amount,
    parse_entry_type,
    parse_timestamp,
)
from bill_tracker.models.entry import EntryType

from conftest import utc


NOW = utc(2024, 1, 15, 9, 30)


class FakeTimestamp:
    """Mimics a protobuf Timestamp."""

    def __init__(self, value):
        self._value = value

    def ToDatetime(self):
        return self._value


class TestParsers:
    """Tests for field parsers."""

    def test_parse_timestamp_variants(self):
        """Test every accepted timestamp shape."""
        expected = utc(2024, 1, 5)
        assert parse_timestamp(datetime(2024, 1, 5)) == expected
        assert parse_timestamp(date(2024, 1, 5)) == expected
        assert parse_timestamp("2024-01-05T00:00:00Z") == expected
        assert parse_timestamp(expected.timestamp()) == expected
        assert parse_timestamp(int(expected.timestamp() * 1000)) == expected
        assert parse_timestamp(FakeTimestamp(expected)) == expected

    def test_parse_timestamp_unreadable(self):
        """Test that garbage yields None."""
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(True) is None
        assert parse_timestamp(object()) is None

    def test_parse_amount(self):
        """Test amount parsing."""
        assert parse_amount("12.50") == Decimal("12.50")
        assert parse_amount(3) == Decimal("3")
        assert parse_amount("abc") is None
        assert parse_amount(float("nan")) is None
        assert parse_amount(True) is None
        assert parse_amount("1e30") is None
        assert parse_amount("0.004") == Decimal("0.004")

    def test_parse_entry_type(self):
        """Test type parsing is case-insensitive."""
        assert parse_entry_type("Income") == EntryType.INCOME
        assert parse_entry_type(" EXPENSE ") == EntryType.EXPENSE
        assert parse_entry_type("refund") is None
        assert parse_entry_type(1) is None


class TestNormalizeRecord:
    """Tests for single-record normalization."""

    def test_complete_record(self):
        """Test a well-formed V2 document."""
        entry, defaulted, reason = normalize_record({
            "id": "e1",
            "title": "Invoice",
            "amount": 100.0,
            "type": "income",
            "note": "",
            "date": utc(2024, 1, 5),
            "attachmentURL": "https://example.com/r.png",
        }, NOW)
        assert reason is None
        assert defaulted == []
        assert entry.amount == Decimal("100.00")
        assert entry.attachment_url == "https://example.com/r.png"

    def test_missing_date_defaults_to_now(self):
        """Test the availability-first date policy."""
        entry, defaulted, reason = normalize_record(
            {"id": "e1", "amount": 5, "type": "expense"}, NOW
        )
        assert reason is None
        assert entry.date == NOW
        assert defaulted == ["date"]

    def test_invalid_amount_is_dropped(self):
        """Test that non-positive or unreadable amounts are dropped."""
        for amount in (0, -5, "abc", None):
            entry, _, reason = normalize_record(
                {"id": "e1", "amount": amount, "type": "expense", "date": NOW}, NOW
            )
            assert entry is None
            assert reason.startswith("invalid amount")

    def test_amount_rounding_to_zero_is_dropped(self):
        """Test that a sub-cent amount never becomes a 0.00 entry."""
        batch = normalize_records(
            [{"id": "x", "amount": 0.004, "type": "expense", "date": NOW}], now=NOW
        )
        assert batch.entries == []
        assert batch.dropped[0].reason.startswith("invalid amount")

    def test_oversized_amount_is_dropped(self):
        """Test that an amount too large for cent precision is dropped."""
        entry, _, reason = normalize_record(
            {"id": "big", "amount": 1e30, "type": "income", "date": NOW}, NOW
        )
        assert entry is None
        assert reason.startswith("invalid amount")

    def test_invalid_type_is_dropped(self):
        """Test that an unknown type is dropped."""
        entry, _, reason = normalize_record(
            {"id": "e1", "amount": 5, "type": "transfer", "date": NOW}, NOW
        )
        assert entry is None
        assert reason.startswith("invalid type")

    def test_missing_id_is_dropped(self):
        """Test that a record without id is dropped."""
        entry, _, reason = normalize_record({"amount": 5, "type": "income"}, NOW)
        assert entry is None
        assert reason == "missing id"

    def test_legacy_record_without_title(self):
        """Test that untitled V1 records are kept."""
        entry, _, _ = normalize_record(
            {"id": "v1", "amount": "7.5", "type": "expense", "note": "Taxi", "date": NOW},
            NOW,
        )
        assert entry.title == ""
        assert entry.display_title == "Taxi"


class TestNormalizeRecords:
    """Tests for whole-delivery normalization."""

    def test_missing_date_keeps_length(self):
        """Test that an undated document still shows up."""
        records = [
            {"id": "a", "amount": 10, "type": "income", "date": utc(2024, 1, 1)},
            {"id": "b", "amount": 20, "type": "expense"},
        ]
        batch = normalize_records(records, now=NOW)
        assert len(batch.entries) == len(records)
        assert batch.normalized == {"b": ["date"]}
        assert batch.entries[1].date == NOW

    def test_duplicate_ids_first_wins(self):
        """Test that the first document with a given id wins."""
        records = [
            {"id": "a", "amount": 10, "type": "income", "date": NOW},
            {"id": "a", "amount": 99, "type": "income", "date": NOW},
        ]
        batch = normalize_records(records, now=NOW)
        assert [e.amount for e in batch.entries] == [Decimal("10.00")]
        assert batch.dropped[0].reason == "duplicate id"

    def test_non_document_dropped(self):
        """Test that non-dict payloads are dropped."""
        batch = normalize_records(["junk"], now=NOW)
        assert batch.entries == []
        assert batch.dropped[0].entry_id is None

    def test_arrival_order_preserved(self):
        """Test that normalization does not reorder."""
        records = [
            {"id": "old", "amount": 1, "type": "income", "date": utc(2020, 1, 1)},
            {"id": "new", "amount": 1, "type": "income", "date": utc(2024, 1, 1)},
        ]
        batch = normalize_records(records, now=NOW)
        assert [e.id for e in batch.entries] == ["old", "new"]
