"""Tests for the Alert Evaluator."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_session
from expensepro.engine import AlertEvaluator, FuelLedger
from expensepro.models import (
    AlertKind,
    Frequency,
    Loan,
    LoanCategory,
    LoanDirection,
    PaymentFrequency,
    RecurrenceRule,
    Transaction,
    TransactionKind,
)
from expensepro.services.storage import Collection


SATURDAY = date(2024, 3, 16)


@pytest.fixture
def evaluator(store, fuel, scheduler, notifier) -> AlertEvaluator:
    return AlertEvaluator(store, fuel, scheduler, notifier=notifier)


def due_loan(origin: date) -> Loan:
    return Loan(
        name="Bike EMI",
        amount=Decimal("10000"),
        direction=LoanDirection.TAKEN,
        category=LoanCategory.COMMERCIAL,
        interest_rate=Decimal("1"),
        tenure=10,
        payment_frequency=PaymentFrequency.MONTHLY,
        date=origin,
    )


class TestChecks:
    """Tests for the individual rules."""

    def test_fuel_check(self, store, vehicle, scheduler):
        """Test low fuel fires for 0 < current < threshold only."""
        low = FuelLedger(store, vehicle.model_copy(update={"current_fuel": Decimal("1")}))
        empty = FuelLedger(store, vehicle.model_copy(update={"current_fuel": Decimal("0")}))

        alert = AlertEvaluator(store, low, scheduler).check_fuel()
        assert alert.kind == AlertKind.LOW_FUEL
        assert "1.00L" in alert.body
        assert AlertEvaluator(store, empty, scheduler).check_fuel() is None

    @pytest.mark.asyncio
    async def test_loan_check_counts_due_loans(self, store, evaluator, today):
        await store.upsert(Collection.LOANS, due_loan(date(2024, 1, 13)))
        await store.upsert(Collection.LOANS, due_loan(date(2024, 2, 13)))
        await store.upsert(Collection.LOANS, due_loan(date(2024, 2, 14)))

        alert = await evaluator.check_loans(today)

        assert alert.details["count"] == 2
        assert "2 loan payments" in alert.body

    @pytest.mark.asyncio
    async def test_weekend_check_only_on_weekends(self, store, evaluator, today):
        await store.upsert(Collection.DELIVERY, make_session(today, "250"))
        assert await evaluator.check_weekend_settlement(today) is None
        assert await evaluator.check_weekend_settlement(SATURDAY) is not None

    @pytest.mark.asyncio
    async def test_weekend_check_fires_on_negative_pending(self, store, evaluator):
        """Test that a non-zero negative pending sum still alerts."""
        await store.upsert(Collection.DELIVERY, make_session(SATURDAY, "-40", cash="100"))
        alert = await evaluator.check_weekend_settlement(SATURDAY)
        assert alert.kind == AlertKind.WEEKEND_SETTLEMENT

    @pytest.mark.asyncio
    async def test_weekend_check_silent_on_zero_sum(self, store, evaluator):
        await store.upsert(Collection.DELIVERY, make_session(SATURDAY, "40"))
        await store.upsert(Collection.DELIVERY, make_session(SATURDAY, "-40"))
        assert await evaluator.check_weekend_settlement(SATURDAY) is None


class TestRun:
    """Tests for the full system check."""

    @pytest.mark.asyncio
    async def test_silent_run_with_nothing_to_report(self, evaluator, notifier, today):
        """Test a silent run reports nothing at all."""
        report = await evaluator.run(today, silent=True)
        assert report.alerts == []
        assert not report.all_clear
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_manual_run_gives_all_clear(self, evaluator, notifier, today):
        """Test a manual run always yields one visible outcome."""
        report = await evaluator.run(today, silent=False)
        assert report.all_clear
        assert notifier.keys == ["all_clear"]

    @pytest.mark.asyncio
    async def test_all_rules_fire_in_order(self, store, vehicle, scheduler, notifier):
        """Test the fixed order: fuel, loans, weekend, recurring."""
        fuel = FuelLedger(store, vehicle.model_copy(update={"current_fuel": Decimal("1")}))
        evaluator = AlertEvaluator(store, fuel, scheduler, notifier=notifier)
        await store.upsert(Collection.LOANS, due_loan(date(2024, 1, 16)))
        await store.upsert(Collection.DELIVERY, make_session(SATURDAY, "300"))
        await store.upsert(Collection.EXPENSES, Transaction(
            kind=TransactionKind.EXPENSE,
            amount=Decimal("199"),
            category="Bills",
            sub_category="Mobile",
            date=date(2024, 3, 14),
            recurring=RecurrenceRule(
                frequency=Frequency.DAILY,
                last_processed=date(2024, 3, 14),
            ),
        ))

        report = await evaluator.run(SATURDAY, silent=False)

        assert report.alert_kinds == [
            AlertKind.LOW_FUEL,
            AlertKind.LOAN_DUE,
            AlertKind.WEEKEND_SETTLEMENT,
            AlertKind.RECURRING_CATCH_UP,
        ]
        assert report.recurring_emitted == 2
        assert not report.all_clear
        assert notifier.keys == [
            "low_fuel", "loan_due", "weekend_settlement", "recurring_catch_up",
        ]

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_fail_run(self, store, fuel, scheduler, today):
        """Test that notifications are fire-and-forget."""

        class BrokenNotifier:
            async def notify(self, title, body, dedupe_key):
                raise RuntimeError("notification service down")

        evaluator = AlertEvaluator(store, fuel, scheduler, notifier=BrokenNotifier())
        report = await evaluator.run(today, silent=False)
        assert report.all_clear
