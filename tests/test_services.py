"""
Tests for the remote collaborators.

External SDKs are replaced with mocks; no network access.
"""

import asyncio
from unittest.mock import MagicMock

import cloudinary.uploader
import pytest
from google.api_core import exceptions as gexc

from bill_tracker.export import build_export
from bill_tracker.models.audit import AuditEventBuilder
from bill_tracker.models.entry import LocalAttachment
from bill_tracker.services.blob import CloudinaryBlobStore
from bill_tracker.services.storage import (
    BlobUploadError,
    StorageError,
    SubmissionError,
    SubscriptionError,
)
from bill_tracker.services.storage.firestore import (
    FirestoreLedgerSource,
    FirestoreLedgerWriter,
    document_to_record,
)
from bill_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsExportSink,
)

from conftest import make_entry, utc


@pytest.fixture
def sheets_env(monkeypatch, tmp_path):
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}")
    monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
    monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")


@pytest.fixture
def cloudinary_env(monkeypatch):
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")


class TestGoogleSheetsExportSink:
    """Tests for writing exports to a worksheet."""

    def test_write_replaces_sheet(self, sheets_env):
        """Test that the export worksheet is cleared and rewritten."""
        client = MagicMock()
        sheet = client.get_worksheet.return_value
        export = build_export(
            [make_entry("a", "income", 100, utc(2024, 1, 5), title="Invoice")],
            "All Time",
        )

        rows = GoogleSheetsExportSink(client).write(export)

        assert rows == len(export.to_table())
        assert client.get_worksheet.call_args.args[0] == "Export"
        sheet.clear.assert_called_once()
        sheet.update.assert_called_once_with(
            range_name="A1", values=export.to_table(), value_input_option="RAW"
        )

    def test_write_failure_wrapped(self, sheets_env, monkeypatch):
        """Test that API failures surface as StorageError."""
        sink = GoogleSheetsExportSink(MagicMock())

        def fail(table):
            raise RuntimeError("quota")

        monkeypatch.setattr(sink, "_replace", fail)
        with pytest.raises(StorageError, match="quota"):
            sink.write(build_export([], "All Time"))


class TestGoogleSheetsAuditStorage:
    """Tests for the audit sheet."""

    def test_append_event(self):
        """Test that events are appended as sheet rows."""
        client = MagicMock()
        sheet = client.get_audit_sheet.return_value
        event = AuditEventBuilder.subscription_started("u1")

        ok = asyncio.run(GoogleSheetsAuditStorage(client).append_event(event))

        assert ok is True
        sheet.append_row.assert_called_once_with(
            event.to_sheets_row(), value_input_option="RAW"
        )

    def test_append_failure_returns_false(self, monkeypatch):
        """Test that audit failures never raise."""
        storage = GoogleSheetsAuditStorage(MagicMock())

        def fail(event):
            raise RuntimeError("offline")

        monkeypatch.setattr(storage, "_append", fail)
        event = AuditEventBuilder.subscription_stopped("u1")
        assert asyncio.run(storage.append_event(event)) is False


class TestCloudinaryBlobStore:
    """Tests for attachment uploads."""

    def test_public_id_is_content_addressed(self):
        """Test that identical content maps to the same public id."""
        first = LocalAttachment(filename="my receipt.png", content=b"abc", mime_type="image/png")
        second = LocalAttachment(filename="my receipt.png", content=b"abc", mime_type="image/png")
        public_id = CloudinaryBlobStore.public_id_for(first)

        assert public_id == CloudinaryBlobStore.public_id_for(second)
        assert public_id.endswith("_my_receipt")

    def test_resource_type(self):
        """Test that PDFs are uploaded as raw files."""
        pdf = LocalAttachment(filename="a.pdf", content=b"%PDF", mime_type="application/pdf")
        png = LocalAttachment(filename="a.png", content=b"x", mime_type="image/png")
        assert CloudinaryBlobStore.resource_type_for(pdf) == "raw"
        assert CloudinaryBlobStore.resource_type_for(png) == "image"

    def test_upload_returns_secure_url(self, cloudinary_env, monkeypatch):
        """Test a successful upload."""
        calls = []

        def fake_upload(content, **options):
            calls.append(options)
            return {"secure_url": "https://res.cloudinary.com/demo/r.png"}

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
        attachment = LocalAttachment(filename="r.png", content=b"x", mime_type="image/png")

        url = asyncio.run(CloudinaryBlobStore().upload(attachment, "u1"))

        assert url == "https://res.cloudinary.com/demo/r.png"
        assert calls[0]["folder"] == "bills/u1"

    def test_upload_without_url_fails(self, cloudinary_env, monkeypatch):
        """Test that a response without a URL is an error."""
        monkeypatch.setattr(cloudinary.uploader, "upload", lambda content, **options: {})
        attachment = LocalAttachment(filename="r.png", content=b"x", mime_type="image/png")

        with pytest.raises(BlobUploadError):
            asyncio.run(CloudinaryBlobStore().upload(attachment, "u1"))


class FakeDocument:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return dict(self._data)


class TestFirestoreLedgerSource:
    """Tests for the Firestore live feed."""

    def test_document_to_record(self):
        """Test that the document id is folded into the record."""
        record = document_to_record(FakeDocument("e1", {"amount": 5.0}))
        assert record == {"amount": 5.0, "id": "e1"}

    def test_snapshot_delivers_records(self):
        """Test that every snapshot is handed over as raw records."""
        client = MagicMock()
        query = client.bills_collection.return_value.order_by.return_value
        delivered = []

        source = FirestoreLedgerSource(client)
        handle = source.subscribe("u1", delivered.append, lambda e: None)
        on_snapshot = query.on_snapshot.call_args.args[0]
        on_snapshot([FakeDocument("b", {"type": "expense"})], [], None)

        client.bills_collection.assert_called_once_with("u1")
        assert delivered == [[{"type": "expense", "id": "b"}]]

        source.unsubscribe(handle)
        source.unsubscribe(handle)
        query.on_snapshot.return_value.unsubscribe.assert_called_once()

    def test_permission_denied(self):
        """Test that rule violations surface as SubscriptionError."""
        client = MagicMock()
        query = client.bills_collection.return_value.order_by.return_value
        query.on_snapshot.side_effect = gexc.PermissionDenied("rules")

        with pytest.raises(SubscriptionError):
            FirestoreLedgerSource(client).subscribe("u1", lambda r: None, lambda e: None)


class TestFirestoreLedgerWriter:
    """Tests for Firestore writes."""

    def test_submit_returns_document_id(self):
        """Test that Firestore assigns the id."""
        client = MagicMock()
        doc_ref = MagicMock(id="new-id")
        client.bills_collection.return_value.add.return_value = (None, doc_ref)

        entry_id = asyncio.run(
            FirestoreLedgerWriter(client).submit("u1", {"id": "ignored", "amount": 1.0})
        )

        assert entry_id == "new-id"
        client.bills_collection.return_value.add.assert_called_once_with({"amount": 1.0})

    def test_submit_failure(self):
        """Test that non-transient errors are not retried."""
        client = MagicMock()
        collection = client.bills_collection.return_value
        collection.add.side_effect = gexc.PermissionDenied("rules")

        with pytest.raises(SubmissionError):
            asyncio.run(FirestoreLedgerWriter(client).submit("u1", {"amount": 1.0}))
        assert collection.add.call_count == 1
