"""
Google Sheets Export and Audit Storage

DESIGN DECISION: Google Sheets receives ledger exports and the audit trail
because:
1. Small-business users can open their export directly in Sheets
2. No database setup required for the audit log
3. Easy to share with an accountant

The ledger itself is NOT stored here; Firestore owns it.
"""

from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from bill_tracker.config import get_settings
from bill_tracker.export.exporter import LedgerExport
from bill_tracker.logging_setup import get_logger
from bill_tracker.models.audit import AuditEvent
from bill_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
)


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

logger = get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, rows: int, cols: int) -> gspread.Worksheet:
        """Get or create a worksheet by title."""
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            return spreadsheet.add_worksheet(title=title, rows=rows, cols=cols)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        title = self._settings.audit_sheet_name
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=5000,
                cols=len(AUDIT_COLUMNS),
            )
            sheet.append_row(AUDIT_COLUMNS)
        return sheet


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, event: AuditEvent) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append(event)
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_sheet_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False


class GoogleSheetsExportSink:
    """
    Writes a ledger export into a worksheet.

    The worksheet is replaced wholesale on every write, matching the
    summary-then-rows layout of :meth:`LedgerExport.to_table`.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._sheet_name = get_settings().google_sheets.export_sheet_name

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _replace(self, table: list[list[str]]) -> None:
        sheet = self._client.get_worksheet(
            self._sheet_name,
            rows=max(len(table), 100),
            cols=max(len(row) for row in table),
        )
        sheet.clear()
        sheet.update(range_name="A1", values=table, value_input_option="RAW")

    def write(self, export: LedgerExport) -> int:
        """
        Replace the export worksheet with ``export``.

        Returns:
            Number of rows written
        """
        table = export.to_table()
        try:
            self._replace(table)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write export: {e}")
        return len(table)
