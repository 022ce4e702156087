"""
Google Sheets Storage Implementation

DESIGN DECISION: The ledger lives in a Google Sheet because:
1. The household can view and fix rows directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No unique constraint: composite-key uniqueness is kept by the upsert engine
- No transactions: a find-then-write can race with another writer
- Limited query capabilities: we read the whole range and fold in Python

Reads and connection setup are retried with backoff here, in the
adapter. Ledger writes are not retried: replaying an append after an
ambiguous failure could duplicate a row.
"""

import json
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from household_ledger.config import get_settings
from household_ledger.config.settings import GoogleSheetsSettings
from household_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from household_ledger.services.storage.interface import (
    DEFAULT_RANGE,
    AuditStorageInterface,
    ConnectionError,
    InvalidRangeError,
    RowStoreInterface,
    StorageError,
)
from household_ledger.services.storage.memory import LEDGER_HEADER

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_key",
    "row_number",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

_read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type(ConnectionError),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

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
                scopes = ["https://www.googleapis.com/auth/spreadsheets"]
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

    def get_ledger_sheet(self) -> gspread.Worksheet:
        """Get or create the ledger worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.ledger_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.ledger_sheet_name,
                rows=1000,
                cols=len(LEDGER_HEADER),
            )
            sheet.append_row(LEDGER_HEADER)
        return sheet

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.audit_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.audit_sheet_name,
                rows=5000,  # More rows for audit log
                cols=len(AUDIT_COLUMNS),
            )
            sheet.append_row(AUDIT_COLUMNS)
        return sheet


class GoogleSheetsRowStore(RowStoreInterface):
    """
    Google Sheets implementation of the ledger row store.

    Values are written with USER_ENTERED so "1,234" lands as a number,
    exactly as if typed into the sheet by hand.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_read_retry
    async def get_all_rows(self, range_spec: str = DEFAULT_RANGE) -> list[list]:
        """Read every row of the range, header included."""
        try:
            sheet = self._client.get_ledger_sheet()
            return [list(row) for row in sheet.get_values(range_spec)]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read ledger rows: {e}")

    async def append_rows(self, range_spec: str, rows: Sequence[Sequence]) -> dict:
        """Append rows after the last row of the table."""
        try:
            sheet = self._client.get_ledger_sheet()
            response = sheet.append_rows(
                [list(row) for row in rows],
                value_input_option="USER_ENTERED",
                table_range=range_spec,
            )
            return response or {}
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to append ledger rows: {e}")

    async def update_range(self, range_spec: str, rows: Sequence[Sequence]) -> dict:
        """Overwrite the cells of one range."""
        try:
            sheet = self._client.get_ledger_sheet()
            response = sheet.update(
                values=[list(row) for row in rows],
                range_name=range_spec,
                value_input_option="USER_ENTERED",
            )
            return response or {}
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update range {range_spec}: {e}")

    async def delete_row_range(self, start_index: int, end_index: int) -> dict:
        """Delete rows [start_index, end_index), 0-based."""
        if start_index < 0 or end_index <= start_index:
            raise InvalidRangeError(f"Cannot delete rows [{start_index}, {end_index})")
        try:
            sheet = self._client.get_ledger_sheet()
            # gspread takes 1-based inclusive bounds
            sheet.delete_rows(start_index + 1, end_index)
            return {"deleted": f"rows {start_index + 1}-{end_index}"}
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete rows {start_index + 1}-{end_index}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_key=safe_get(4) or None,
            row_number=int(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def _read_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, TypeError):
                continue  # Skip malformed rows
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in await self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = await self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
