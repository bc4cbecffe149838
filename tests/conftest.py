"""Shared fixtures for the ledger tests."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from bill_tracker.models.entry import EntryType, LedgerEntry
from bill_tracker.services.storage import InMemoryLedgerBackend


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_entry(entry_id, entry_type, amount, when, title="") -> LedgerEntry:
    return LedgerEntry(
        id=entry_id,
        title=title,
        amount=Decimal(str(amount)),
        type=EntryType(entry_type),
        date=when,
    )


@pytest.fixture
def backend():
    return InMemoryLedgerBackend()


@pytest.fixture
def sample_entries():
    """Two entries in January 2024 and one in December 2023."""
    return [
        make_entry("a", "income", 100, utc(2024, 1, 5), title="Invoice"),
        make_entry("b", "expense", 30, utc(2024, 1, 10), title="Coffee"),
        make_entry("c", "income", 50, utc(2023, 12, 1), title="Refund"),
    ]
