"""
Aggregation Engine

Pure functions over a ledger snapshot. No hidden state, no caching:
identical input gives identical output, so every read can recompute.

All money arithmetic is done in ``Decimal`` and quantized to cents, so
``total_income - total_expenses == profit`` holds exactly regardless of
summation order.
"""

from datetime import datetime, timezone
from decimal import Decimal, localcontext
from typing import Iterable, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from bill_tracker.models.entry import (
    CENT,
    EntryType,
    LedgerEntry,
    LedgerSummary,
    LedgerWindow,
    utc_now,
)


# Wide enough that sums of cent-precision amounts are never rounded
_TOTALS_PRECISION = 60


def _sum(entries: Iterable[LedgerEntry], entry_type: EntryType) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _TOTALS_PRECISION
        total = sum(
            (entry.amount for entry in entries if entry.type == entry_type),
            Decimal("0"),
        )
        return total.quantize(CENT)


def _difference(income: Decimal, expenses: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _TOTALS_PRECISION
        return income - expenses


def total_income(entries: Iterable[LedgerEntry]) -> Decimal:
    return _sum(entries, EntryType.INCOME)


def total_expenses(entries: Iterable[LedgerEntry]) -> Decimal:
    return _sum(entries, EntryType.EXPENSE)


def profit(entries: Sequence[LedgerEntry]) -> Decimal:
    """Income minus expenses. Negative means a loss."""
    return _difference(total_income(entries), total_expenses(entries))


def summarize(entries: Sequence[LedgerEntry]) -> LedgerSummary:
    income = total_income(entries)
    expenses = total_expenses(entries)
    return LedgerSummary(
        total_income=income,
        total_expenses=expenses,
        profit=_difference(income, expenses),
        entry_count=len(entries),
    )


def sort_entries(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    """
    Order by date descending.

    ``sorted`` is stable with ``reverse=True`` too, so entries sharing a
    date keep their arrival order.
    """
    return sorted(entries, key=lambda entry: entry.date, reverse=True)


def _resolve_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return utc_now()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def filter_by_window(
    entries: Sequence[LedgerEntry],
    window: Union[LedgerWindow, str],
    now: Optional[datetime] = None,
) -> list[LedgerEntry]:
    """
    Keep the entries that fall inside ``window``.

    Args:
        entries: A snapshot or any subset of one
        window: ``all``, ``yearly`` or ``monthly``
        now: Evaluation instant; defaults to the current time. Its timezone
            decides which calendar year/month is "current", and entry dates
            are compared in that timezone.

    Returns:
        A new list in the input order. ``all`` returns every entry.
    """
    window = LedgerWindow(window)
    if window == LedgerWindow.ALL:
        return list(entries)

    now = _resolve_now(now)
    tz = now.tzinfo

    def in_window(entry: LedgerEntry) -> bool:
        local = entry.date.astimezone(tz)
        if local.year != now.year:
            return False
        return window == LedgerWindow.YEARLY or local.month == now.month

    return [entry for entry in entries if in_window(entry)]


class LedgerView(BaseModel):
    """A window over a snapshot together with its aggregates."""
    model_config = ConfigDict(frozen=True)

    window: LedgerWindow
    entries: tuple[LedgerEntry, ...] = ()
    summary: LedgerSummary = Field(default_factory=LedgerSummary)
    evaluated_at: datetime


def build_view(
    entries: Sequence[LedgerEntry],
    window: Union[LedgerWindow, str] = LedgerWindow.ALL,
    now: Optional[datetime] = None,
) -> LedgerView:
    now = _resolve_now(now)
    subset = filter_by_window(entries, window, now)
    return LedgerView(
        window=LedgerWindow(window),
        entries=tuple(subset),
        summary=summarize(subset),
        evaluated_at=now,
    )
