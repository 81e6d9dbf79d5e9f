"""
Shared fixtures for ExpensePro tests.

No test touches the network: the engine runs against the in-memory
store, and the Google Sheets backend against mocked worksheets.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from expensepro.engine import FuelLedger, RecurringScheduler, SettlementPoster
from expensepro.models import DeliverySession, VehicleSettings
from expensepro.services.notify import Notifier
from expensepro.services.storage import Collection, InMemoryRecordStore, StoreFailure


class RecordingNotifier(Notifier):
    """Collects every delivered alert."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    async def notify(self, title: str, body: str, dedupe_key: str) -> None:
        self.sent.append((title, body, dedupe_key))

    @property
    def keys(self) -> list[str]:
        return [key for _, _, key in self.sent]


class FailingStore(InMemoryRecordStore):
    """
    In-memory store that raises StoreFailure on selected writes.

    `fail_settings` breaks save_settings; `fail_upserts_after` lets that
    many upserts into `fail_collection` succeed, then fails the rest.
    """

    def __init__(self):
        super().__init__()
        self.fail_settings = False
        self.fail_collection: Optional[Collection] = None
        self.fail_upserts_after: Optional[int] = None
        self._upserts = 0

    async def upsert(self, collection, record) -> None:
        if self.fail_upserts_after is not None and collection == self.fail_collection:
            if self._upserts >= self.fail_upserts_after:
                raise StoreFailure(f"injected upsert failure on {collection.value}")
            self._upserts += 1
        await super().upsert(collection, record)

    async def save_settings(self, settings) -> None:
        if self.fail_settings:
            raise StoreFailure("injected settings failure")
        await super().save_settings(settings)

    def heal(self) -> None:
        self.fail_settings = False
        self.fail_collection = None
        self.fail_upserts_after = None
        self._upserts = 0


class YieldingStore(InMemoryRecordStore):
    """
    In-memory store that yields to the event loop on every call, the
    way a network backend would, so concurrent flows interleave.
    """

    async def fetch_all(self, collection):
        await asyncio.sleep(0)
        return await super().fetch_all(collection)

    async def get(self, collection, record_id):
        await asyncio.sleep(0)
        return await super().get(collection, record_id)

    async def upsert(self, collection, record) -> None:
        await asyncio.sleep(0)
        await super().upsert(collection, record)

    async def delete(self, collection, record_id) -> bool:
        await asyncio.sleep(0)
        return await super().delete(collection, record_id)

    async def load_settings(self):
        await asyncio.sleep(0)
        return await super().load_settings()

    async def save_settings(self, settings) -> None:
        await asyncio.sleep(0)
        await super().save_settings(settings)


@pytest.fixture
def today() -> date:
    """A fixed Wednesday."""
    return date(2024, 3, 13)


@pytest.fixture
def vehicle() -> VehicleSettings:
    return VehicleSettings(
        capacity=Decimal("10"),
        current_fuel=Decimal("5"),
        consumption_rate=Decimal("50"),
        fuel_unit_cost=Decimal("100"),
        currency="₹",
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def yielding_store() -> YieldingStore:
    return YieldingStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def fuel(store, vehicle, notifier) -> FuelLedger:
    return FuelLedger(store, vehicle, notifier=notifier)


@pytest.fixture
def scheduler(store) -> RecurringScheduler:
    return RecurringScheduler(store)


@pytest.fixture
def poster(store) -> SettlementPoster:
    return SettlementPoster(store)


def make_session(
    day: date,
    settlement: str,
    distance: str = "10",
    cash: str = "0",
    other_costs: str = "0",
    ledger_ref=None,
) -> DeliverySession:
    return DeliverySession(
        date=day,
        cash_collected=Decimal(cash),
        online_settlement=Decimal(settlement),
        distance=Decimal(distance),
        other_costs=Decimal(other_costs),
        ledger_ref=ledger_ref,
    )
