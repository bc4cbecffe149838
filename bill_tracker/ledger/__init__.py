"""
Ledger Package

The live ledger store and the pure aggregation engine it publishes through.
"""

from bill_tracker.ledger.aggregation import (
    LedgerView,
    build_view,
    filter_by_window,
    profit,
    sort_entries,
    summarize,
    total_expenses,
    total_income,
)
from bill_tracker.ledger.normalize import (
    NormalizedBatch,
    normalize_record,
    normalize_records,
)
from bill_tracker.ledger.store import (
    FeedNotice,
    LedgerStore,
    LedgerUpdate,
)

__all__ = [
    # Aggregation
    "LedgerView",
    "build_view",
    "filter_by_window",
    "profit",
    "sort_entries",
    "summarize",
    "total_expenses",
    "total_income",
    # Normalization
    "NormalizedBatch",
    "normalize_record",
    "normalize_records",
    # Store
    "FeedNotice",
    "LedgerStore",
    "LedgerUpdate",
]
