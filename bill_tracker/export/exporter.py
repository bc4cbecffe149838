"""
Ledger Export

Produces the flat tabular representation consumed by export targets
(Google Sheets, CSV writers, ...):

1. A summary block: window label, total income, total expenses, profit/loss
2. One row per entry: title, date, type, amount, note

Rows keep the order of the subset they were built from. Text formatting
beyond plain strings is left to the export target.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from bill_tracker.ledger.aggregation import LedgerView, summarize
from bill_tracker.models.entry import LedgerEntry, utc_now


EXPORT_HEADER = ["Title", "Date", "Type", "Amount", "Note"]


class ExportSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_label: str
    total_income: Decimal
    total_expenses: Decimal
    profit: Decimal
    entry_count: int
    generated_at: datetime


class ExportRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    date: date
    type: str
    amount: Decimal
    note: str

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "ExportRow":
        return cls(
            title=entry.display_title,
            date=entry.day,
            type=entry.type.value,
            amount=entry.amount,
            note=entry.note,
        )

    def as_list(self) -> list[str]:
        return [
            self.title,
            self.date.isoformat(),
            self.type,
            str(self.amount),
            self.note,
        ]


class LedgerExport(BaseModel):
    """Summary block followed by one row per entry."""
    model_config = ConfigDict(frozen=True)

    summary: ExportSummary
    rows: tuple[ExportRow, ...] = Field(default_factory=tuple)

    def summary_rows(self) -> list[list[str]]:
        return [
            ["Window", self.summary.window_label],
            ["Total Income", str(self.summary.total_income)],
            ["Total Expenses", str(self.summary.total_expenses)],
            ["Profit/Loss", str(self.summary.profit)],
        ]

    def to_table(self) -> list[list[str]]:
        """
        Flatten to rows of strings.

        Layout: summary rows, a blank separator row, the header, then the
        entry rows.
        """
        table = self.summary_rows()
        table.append([])
        table.append(list(EXPORT_HEADER))
        table.extend(row.as_list() for row in self.rows)
        return table


def build_export(
    entries: Sequence[LedgerEntry],
    window_label: str,
    generated_at: Optional[datetime] = None,
) -> LedgerExport:
    """
    Export an already-selected subset of the ledger.

    Args:
        entries: The subset to export, in display order
        window_label: Label shown in the summary block (e.g. "This Month")
        generated_at: Timestamp recorded in the summary
    """
    totals = summarize(entries)
    return LedgerExport(
        summary=ExportSummary(
            window_label=window_label,
            total_income=totals.total_income,
            total_expenses=totals.total_expenses,
            profit=totals.profit,
            entry_count=totals.entry_count,
            generated_at=generated_at or utc_now(),
        ),
        rows=tuple(ExportRow.from_entry(entry) for entry in entries),
    )


def export_view(view: LedgerView) -> LedgerExport:
    """Export a window view, labelled with its window."""
    return build_export(view.entries, view.window.label, view.evaluated_at)
