"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a durable backend because:
1. Users can view their records directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for one person's ledger)
- No transactions across worksheets (the engine tolerates partial writes)
- No server-side queries (we scan rows in Python)

Each collection lives in its own worksheet with one record per row.
The record itself is stored as JSON so schema changes never shift columns.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expensepro.config import GoogleSheetsSettings, get_settings
from expensepro.logs import get_logger
from expensepro.models.vehicle import VehicleSettings
from expensepro.services.storage.interface import (
    Collection,
    NotFoundError,
    Record,
    RecordStore,
    StoreConnectionError,
    StoreFailure,
)


RECORD_COLUMNS = ["id", "updated_at", "payload_json"]
SETTINGS_KEY = "vehicle"

logger = get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
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
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise NotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str) -> gspread.Worksheet:
        """Get or create a worksheet with the record header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(RECORD_COLUMNS),
            )
            sheet.append_row(RECORD_COLUMNS)
        return sheet


class GoogleSheetsRecordStore(RecordStore):
    """
    Google Sheets implementation of the record store.

    Rows are `[id, updated_at, payload_json]`; the settings worksheet
    holds a single row keyed "vehicle".
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet_for(self, collection: Collection) -> gspread.Worksheet:
        settings = self._client.settings
        titles = {
            Collection.EXPENSES: settings.expenses_sheet_name,
            Collection.LOANS: settings.loans_sheet_name,
            Collection.DELIVERY: settings.delivery_sheet_name,
        }
        return self._client.get_worksheet(titles[collection])

    def _settings_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._client.settings.settings_sheet_name)

    @staticmethod
    def _to_row(key: str, payload: str) -> list[str]:
        return [key, datetime.now(timezone.utc).isoformat(), payload]

    @staticmethod
    def _find_row(all_rows: list[list[str]], key: str) -> Optional[int]:
        """1-based sheet row index of `key`, skipping the header."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_row(self, sheet: gspread.Worksheet, key: str, payload: str) -> None:
        """Replace the row for `key`, or append one."""
        row = self._to_row(key, payload)
        idx = self._find_row(sheet.get_all_values(), key)
        if idx is None:
            sheet.append_row(row, value_input_option="RAW")
        else:
            sheet.update(values=[row], range_name=f"A{idx}:C{idx}", value_input_option="RAW")

    async def fetch_all(self, collection: Collection) -> list[Record]:
        try:
            sheet = self._sheet_for(collection)
            rows = sheet.get_all_values()[1:]
        except StoreFailure:
            raise
        except Exception as e:
            raise StoreFailure(f"Failed to read {collection.value}: {e}")

        records = []
        for row in rows:
            if len(row) < 3 or not row[0]:
                continue
            try:
                records.append(collection.model.model_validate_json(row[2]))
            except ValueError as e:
                # A corrupt row must not hide the rest of the collection
                logger.error(
                    "sheet_row_unreadable",
                    collection=collection.value,
                    record_id=row[0],
                    error=str(e),
                )
        return records

    async def get(self, collection: Collection, record_id: UUID) -> Optional[Record]:
        for record in await self.fetch_all(collection):
            if record.id == record_id:
                return record
        return None

    async def upsert(self, collection: Collection, record: Record) -> None:
        if not isinstance(record, collection.model):
            raise TypeError(
                f"{type(record).__name__} cannot be stored in {collection.value}"
            )
        try:
            sheet = self._sheet_for(collection)
            self._write_row(sheet, str(record.id), record.model_dump_json())
        except StoreFailure:
            raise
        except Exception as e:
            raise StoreFailure(f"Failed to write {collection.value} record {record.id}: {e}")

    async def delete(self, collection: Collection, record_id: UUID) -> bool:
        try:
            sheet = self._sheet_for(collection)
            idx = self._find_row(sheet.get_all_values(), str(record_id))
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StoreFailure:
            raise
        except Exception as e:
            raise StoreFailure(f"Failed to delete {collection.value} record {record_id}: {e}")

    async def load_settings(self) -> Optional[VehicleSettings]:
        try:
            all_rows = self._settings_sheet().get_all_values()
        except StoreFailure:
            raise
        except Exception as e:
            raise StoreFailure(f"Failed to read settings: {e}")

        idx = self._find_row(all_rows, SETTINGS_KEY)
        if idx is None:
            return None
        return VehicleSettings.model_validate_json(all_rows[idx - 1][2])

    async def save_settings(self, settings: VehicleSettings) -> None:
        try:
            self._write_row(self._settings_sheet(), SETTINGS_KEY, settings.model_dump_json())
        except StoreFailure:
            raise
        except Exception as e:
            raise StoreFailure(f"Failed to write settings: {e}")
