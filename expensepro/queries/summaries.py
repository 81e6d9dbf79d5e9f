"""
Summary Queries

DESIGN DECISION: Summaries are READ-ONLY and DETERMINISTIC.
They compute totals over whatever the store holds right now and never
write back. "Today" is always a parameter so results are reproducible.

Date windows:
- all: everything
- daily: the given day
- weekly: the last 7 days up to and including today
- monthly: the same calendar month
- year: the same calendar year
- custom: inclusive [date_from, date_to], either side open
"""

from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field, model_validator

from expensepro.engine.fuel import FuelLedger
from expensepro.engine.loans import outstanding_by_direction
from expensepro.models.records import (
    DeliverySession,
    LoanDirection,
    TransactionKind,
)
from expensepro.models.vehicle import VehicleSettings
from expensepro.services.storage import Collection, RecordStore


class WindowKind(str, Enum):
    ALL = "all"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEAR = "year"
    CUSTOM = "custom"


class DateWindow(BaseModel):
    """A date filter relative to a fixed 'today'."""

    kind: WindowKind = WindowKind.ALL
    today: date
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @model_validator(mode='after')
    def validate_range(self) -> 'DateWindow':
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("Window end cannot be before start")
        return self

    def contains(self, day: date) -> bool:
        if self.kind == WindowKind.DAILY:
            return day == self.today
        if self.kind == WindowKind.WEEKLY:
            return self.today - timedelta(days=7) <= day <= self.today
        if self.kind == WindowKind.MONTHLY:
            return (day.year, day.month) == (self.today.year, self.today.month)
        if self.kind == WindowKind.YEAR:
            return day.year == self.today.year
        if self.kind == WindowKind.CUSTOM:
            if self.date_from and day < self.date_from:
                return False
            if self.date_to and day > self.date_to:
                return False
        return True


class LedgerSummary(BaseModel):
    spent: Decimal = Decimal("0")
    income: Decimal = Decimal("0")
    count: int = 0

    @property
    def net(self) -> Decimal:
        return self.income - self.spent


class DeliverySummary(BaseModel):
    """
    Aggregates over the sessions in a window.

    Profit = app total - other costs - fuel cost, where fuel cost is
    distance / consumption rate * unit cost.
    """

    sessions: int = 0
    app_total: Decimal = Decimal("0")
    settlement: Decimal = Decimal("0")
    cash_in_hand: Decimal = Decimal("0")
    distance: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    pending_settlement: Decimal = Field(
        default=Decimal("0"),
        description="Settlement of sessions in the window not yet posted"
    )


class LoanSummary(BaseModel):
    given: Decimal = Decimal("0")
    taken: Decimal = Decimal("0")

    @property
    def net_position(self) -> Decimal:
        return self.given - self.taken


class FuelGauge(BaseModel):
    current: Decimal
    capacity: Decimal
    percent: Decimal
    estimated_range: Decimal
    total_consumed: Decimal
    is_low: bool


def summarize_sessions(
    sessions: Iterable[DeliverySession],
    vehicle: VehicleSettings,
) -> DeliverySummary:
    summary = DeliverySummary()
    for s in sessions:
        fuel_cost = vehicle.litres_for(s.distance) * vehicle.fuel_unit_cost
        summary.sessions += 1
        summary.app_total += s.reported_total
        summary.settlement += s.online_settlement
        summary.cash_in_hand += s.cash_collected
        summary.distance += s.distance
        summary.profit += s.reported_total - s.other_costs - fuel_cost
        if not s.is_posted:
            summary.pending_settlement += s.online_settlement
    return summary


class SummaryExecutor:
    """
    Computes summaries against the record store.

    GUARANTEES:
    - Only reads real data from storage
    - Zero totals (not errors) when nothing matches
    """

    def __init__(self, store: RecordStore, fuel: FuelLedger):
        self._store = store
        self._fuel = fuel

    async def ledger(self, window: DateWindow) -> LedgerSummary:
        summary = LedgerSummary()
        for t in await self._store.fetch_all(Collection.EXPENSES):
            if not window.contains(t.date):
                continue
            summary.count += 1
            if t.kind == TransactionKind.EXPENSE:
                summary.spent += t.amount
            else:
                summary.income += t.amount
        return summary

    async def sessions_in(self, window: DateWindow) -> list[DeliverySession]:
        """Sessions in a window, newest first (the settlement scope)."""
        sessions = [
            s for s in await self._store.fetch_all(Collection.DELIVERY)
            if window.contains(s.date)
        ]
        sessions.sort(key=lambda s: s.date, reverse=True)
        return sessions

    async def delivery(self, window: DateWindow) -> DeliverySummary:
        return summarize_sessions(await self.sessions_in(window), self._fuel.settings)

    async def loans(self) -> LoanSummary:
        totals = outstanding_by_direction(await self._store.fetch_all(Collection.LOANS))
        return LoanSummary(
            given=totals[LoanDirection.GIVEN],
            taken=totals[LoanDirection.TAKEN],
        )

    async def fuel_gauge(self) -> FuelGauge:
        vehicle = self._fuel.settings
        sessions = await self._store.fetch_all(Collection.DELIVERY)
        return FuelGauge(
            current=vehicle.current_fuel,
            capacity=vehicle.capacity,
            percent=vehicle.fill_percent,
            estimated_range=vehicle.estimated_range,
            total_consumed=sum(
                (vehicle.litres_for(s.distance) for s in sessions), Decimal("0")
            ),
            is_low=self._fuel.is_low(),
        )
