"""Tests for ledger export."""

import asyncio
from decimal import Decimal

import pytest

from bill_tracker.audit import AuditLogger
from bill_tracker.export import (
    EXPORT_HEADER,
    ExportPublisher,
    build_export,
    export_view,
)
from bill_tracker.ledger.aggregation import build_view, sort_entries
from bill_tracker.models.entry import LedgerWindow
from bill_tracker.services.storage import StorageError

from conftest import make_entry, utc


NOW = utc(2024, 1, 15)


class RecordingTarget:
    def __init__(self):
        self.exports = []

    def write(self, export):
        self.exports.append(export)
        return len(export.to_table())


class RecordingAuditStorage:
    def __init__(self):
        self.events = []

    async def append_event(self, event):
        self.events.append(event)
        return True


class TestBuildExport:
    """Tests for the tabular export."""

    def test_summary_matches_subset(self, sample_entries):
        """Test that the summary block reflects the exported rows only."""
        view = build_view(sort_entries(sample_entries), LedgerWindow.YEARLY, now=NOW)
        export = export_view(view)

        assert export.summary.window_label == "This Year"
        assert export.summary.total_income == Decimal("100.00")
        assert export.summary.total_expenses == Decimal("30.00")
        assert export.summary.profit == Decimal("70.00")
        assert [row.title for row in export.rows] == ["Coffee", "Invoice"]

    def test_table_layout(self, sample_entries):
        """Test summary rows, separator, header and entry rows."""
        export = build_export(sample_entries[:1], "All Time", generated_at=NOW)
        table = export.to_table()

        assert table[0] == ["Window", "All Time"]
        assert table[3] == ["Profit/Loss", "100.00"]
        assert table[4] == []
        assert table[5] == EXPORT_HEADER
        assert table[6] == ["Invoice", "2024-01-05", "income", "100.00", ""]

    def test_untitled_entry_uses_fallback(self):
        """Test that legacy entries export with a display title."""
        entry = make_entry("x", "expense", 4, utc(2024, 1, 2))
        export = build_export([entry], "All Time", generated_at=NOW)
        assert export.rows[0].title == "Untitled"

    def test_empty_export(self):
        """Test exporting an empty window."""
        export = build_export([], "This Month", generated_at=NOW)
        assert export.rows == ()
        assert export.summary.entry_count == 0
        assert export.to_table()[-1] == EXPORT_HEADER


class TestExportPublisher:
    """Tests for publishing exports to a target."""

    def test_publish_writes_and_audits(self, sample_entries):
        """Test that publishing writes the export and records it."""
        target = RecordingTarget()
        storage = RecordingAuditStorage()
        publisher = ExportPublisher(target, AuditLogger(storage))
        view = build_view(sample_entries, LedgerWindow.MONTHLY, now=NOW)

        export = asyncio.run(publisher.publish(view, user_id="u1"))

        assert target.exports == [export]
        assert storage.events[0].event_type.value == "export_generated"
        assert storage.events[0].details == {"window": "monthly", "row_count": 2}

    def test_publish_failure_audited(self, sample_entries):
        """Test that a rejected export is recorded and re-raised."""
        class FailingTarget:
            def write(self, export):
                raise StorageError("sheet locked")

        storage = RecordingAuditStorage()
        publisher = ExportPublisher(FailingTarget(), AuditLogger(storage))
        view = build_view(sample_entries, LedgerWindow.ALL, now=NOW)

        with pytest.raises(StorageError):
            asyncio.run(publisher.publish(view))

        assert [e.event_type.value for e in storage.events] == ["system_error"]
