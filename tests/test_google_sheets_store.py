"""
Tests for the Google Sheets record store.

Worksheets are unittest.mock objects backed by a plain list of rows,
so no network access or credentials are needed.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import gspread
import pytest

from conftest import make_session
from expensepro.config import GoogleSheetsSettings
from expensepro.models import Loan, LoanDirection
from expensepro.services.storage import (
    Collection,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    NotFoundError,
    StoreFailure,
)
from expensepro.services.storage.google_sheets import RECORD_COLUMNS


def mock_worksheet() -> MagicMock:
    rows = [list(RECORD_COLUMNS)]
    sheet = MagicMock(spec=gspread.Worksheet)
    sheet.rows = rows

    def update(values, range_name, value_input_option=None):
        index = int(range_name.split(":")[0][1:])
        rows[index - 1] = list(values[0])

    sheet.get_all_values.side_effect = lambda: [list(r) for r in rows]
    sheet.append_row.side_effect = lambda row, value_input_option=None: rows.append(list(row))
    sheet.update.side_effect = update
    sheet.delete_rows.side_effect = lambda index: rows.pop(index - 1)
    return sheet


@pytest.fixture
def sheets() -> dict[str, MagicMock]:
    return {
        name: mock_worksheet()
        for name in ("Expenses", "Loans", "Delivery", "Settings")
    }


@pytest.fixture
def sheets_store(sheets) -> GoogleSheetsRecordStore:
    client = MagicMock()
    client.settings = GoogleSheetsSettings.model_construct(
        credentials_path="unused.json",
        spreadsheet_id="sheet-id",
        expenses_sheet_name="Expenses",
        loans_sheet_name="Loans",
        delivery_sheet_name="Delivery",
        settings_sheet_name="Settings",
    )
    client.get_worksheet.side_effect = lambda title: sheets[title]
    return GoogleSheetsRecordStore(client)


class TestGoogleSheetsRecordStore:
    """Tests for row-level persistence."""

    @pytest.mark.asyncio
    async def test_upsert_appends_then_replaces(self, sheets_store, sheets):
        """Test one row per record id."""
        session = make_session(date(2024, 3, 1), "150")
        await sheets_store.upsert(Collection.DELIVERY, session)
        await sheets_store.upsert(
            Collection.DELIVERY,
            session.model_copy(update={"online_settlement": Decimal("175")}),
        )

        rows = sheets["Delivery"].rows
        assert len(rows) == 2
        assert rows[1][0] == str(session.id)

        stored = await sheets_store.get(Collection.DELIVERY, session.id)
        assert stored.online_settlement == Decimal("175")

    @pytest.mark.asyncio
    async def test_collections_use_their_own_sheets(self, sheets_store, sheets):
        loan = Loan(
            name="Asha",
            amount=Decimal("300"),
            direction=LoanDirection.GIVEN,
            date=date(2024, 1, 1),
        )
        await sheets_store.upsert(Collection.LOANS, loan)

        assert len(sheets["Loans"].rows) == 2
        assert len(sheets["Delivery"].rows) == 1
        assert await sheets_store.fetch_all(Collection.LOANS) == [loan]

    @pytest.mark.asyncio
    async def test_delete(self, sheets_store, sheets):
        session = make_session(date(2024, 3, 1), "150")
        await sheets_store.upsert(Collection.DELIVERY, session)

        assert await sheets_store.delete(Collection.DELIVERY, session.id)
        assert not await sheets_store.delete(Collection.DELIVERY, session.id)
        assert sheets["Delivery"].rows == [RECORD_COLUMNS]

    @pytest.mark.asyncio
    async def test_corrupt_row_skipped(self, sheets_store, sheets):
        """Test that one unreadable row does not hide the others."""
        session = make_session(date(2024, 3, 1), "150")
        await sheets_store.upsert(Collection.DELIVERY, session)
        sheets["Delivery"].rows.append(["bad-id", "2024-03-01T00:00:00", "{not json"])

        assert await sheets_store.fetch_all(Collection.DELIVERY) == [session]

    @pytest.mark.asyncio
    async def test_settings_round_trip(self, sheets_store, vehicle, sheets):
        assert await sheets_store.load_settings() is None

        await sheets_store.save_settings(vehicle)
        await sheets_store.save_settings(
            vehicle.model_copy(update={"current_fuel": Decimal("2")})
        )

        assert len(sheets["Settings"].rows) == 2
        assert (await sheets_store.load_settings()).current_fuel == Decimal("2")

    @pytest.mark.asyncio
    async def test_read_errors_wrapped(self, sheets_store, sheets):
        """Test that backend errors surface as StoreFailure."""
        sheets["Expenses"].get_all_values.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(StoreFailure):
            await sheets_store.fetch_all(Collection.EXPENSES)

    @pytest.mark.asyncio
    async def test_wrong_record_type_rejected(self, sheets_store):
        with pytest.raises(TypeError):
            await sheets_store.upsert(Collection.LOANS, make_session(date(2024, 3, 1), "1"))


class TestGoogleSheetsClient:
    """Tests for spreadsheet lookup."""

    def test_missing_spreadsheet_raises_not_found(self):
        """Test that an unknown spreadsheet id is reported as NotFoundError."""
        client = GoogleSheetsClient(settings=GoogleSheetsSettings.model_construct(
            credentials_path="unused.json",
            spreadsheet_id="missing-id",
        ))
        client._client = MagicMock()
        client._client.open_by_key.side_effect = gspread.SpreadsheetNotFound("missing-id")

        with pytest.raises(NotFoundError, match="missing-id"):
            client.get_spreadsheet()
