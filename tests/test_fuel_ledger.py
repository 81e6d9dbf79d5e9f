"""Tests for the Fuel Ledger."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from conftest import make_session
from expensepro.engine import FuelLedger
from expensepro.errors import ValidationFailure
from expensepro.models import Transaction, TransactionKind, VehicleSettings
from expensepro.services.storage import StoreFailure


def fuel_purchase(litres: str) -> Transaction:
    return Transaction(
        kind=TransactionKind.EXPENSE,
        amount=Decimal("300"),
        category="Transport",
        sub_category="Fuel",
        date=date(2024, 3, 1),
        fuel_linked=True,
        litres=Decimal(litres),
    )


def grocery() -> Transaction:
    return Transaction(
        kind=TransactionKind.EXPENSE,
        amount=Decimal("300"),
        category="Food",
        sub_category="Groceries",
        date=date(2024, 3, 1),
    )


class TestAdjust:
    """Tests for the core clamped adjustment."""

    @pytest.mark.asyncio
    async def test_adjust_persists_and_commits(self, fuel, store):
        """Test that an adjustment is written to the store."""
        result = await fuel.adjust(Decimal("2"))
        assert result == Decimal("7")
        assert fuel.current == Decimal("7")
        assert (await store.load_settings()).current_fuel == Decimal("7")

    @pytest.mark.asyncio
    async def test_adjust_clamps_at_capacity(self, fuel):
        """Test that overfilling stops at capacity."""
        assert await fuel.adjust(Decimal("100")) == Decimal("10")

    @pytest.mark.asyncio
    async def test_adjust_clamps_at_empty(self, fuel):
        """Test that over-consumption empties the tank and forgets the excess."""
        assert await fuel.adjust(Decimal("-100")) == Decimal("0")
        assert await fuel.adjust(Decimal("1")) == Decimal("1")

    @pytest.mark.asyncio
    async def test_failed_persist_leaves_state_unchanged(self, failing_store, vehicle):
        """Test that a failed write never updates the in-memory fuel."""
        ledger = FuelLedger(failing_store, vehicle)
        failing_store.fail_settings = True

        with pytest.raises(StoreFailure):
            await ledger.adjust(Decimal("-2"))

        assert ledger.current == Decimal("5")
        assert await failing_store.load_settings() is None

        # The ledger stays usable after the failure
        failing_store.heal()
        assert await ledger.adjust(Decimal("-2")) == Decimal("3")

    @pytest.mark.asyncio
    async def test_concurrent_adjustments_do_not_lose_updates(self, fuel):
        """Test that interleaved adjustments are serialized."""
        await asyncio.gather(*(fuel.adjust(Decimal("-0.5")) for _ in range(6)))
        assert fuel.current == Decimal("2")

    @pytest.mark.asyncio
    async def test_settings_returns_a_copy(self, fuel):
        """Test that callers cannot mutate the committed state."""
        snapshot = fuel.settings
        snapshot.current_fuel = Decimal("0")
        assert fuel.current == Decimal("5")


class TestBounds:
    """Tests that fuel stays within [0, capacity] for any sequence."""

    @pytest.mark.asyncio
    async def test_mixed_sequence_stays_in_bounds(self, fuel):
        """Test bounds after every create/edit/delete of sessions and purchases."""
        long_run = make_session(date(2024, 3, 1), "100", distance="1000")
        short_run = long_run.model_copy(update={"distance": Decimal("25")})
        big_fill = fuel_purchase("40")
        small_fill = big_fill.model_copy(update={"litres": Decimal("1")})

        steps = [
            fuel.on_session_created(long_run),
            fuel.on_transaction_created(big_fill),
            fuel.on_session_edited(long_run, short_run),
            fuel.on_transaction_edited(big_fill, small_fill),
            fuel.on_session_deleted(short_run),
            fuel.on_transaction_deleted(small_fill),
            fuel.on_session_created(long_run),
        ]
        for step in steps:
            value = await step
            assert Decimal("0") <= value <= fuel.capacity


class TestSessionHooks:
    """Tests for distance-driven consumption."""

    @pytest.mark.asyncio
    async def test_create_consumes_distance_over_rate(self, fuel):
        """Test a 100 km session at 50 km/L burns 2 L."""
        await fuel.on_session_created(make_session(date(2024, 3, 1), "10", distance="100"))
        assert fuel.current == Decimal("3")

    @pytest.mark.asyncio
    async def test_edit_applies_single_delta(self, fuel):
        """Test an edit from 100 km to 150 km burns one more litre."""
        old = make_session(date(2024, 3, 1), "10", distance="100")
        await fuel.on_session_created(old)
        new = old.model_copy(update={"distance": Decimal("150")})
        await fuel.on_session_edited(old, new)
        assert fuel.current == Decimal("2")

    @pytest.mark.asyncio
    async def test_edit_to_shorter_distance_restores(self, fuel):
        """Test a shortened session gives fuel back."""
        old = make_session(date(2024, 3, 1), "10", distance="100")
        await fuel.on_session_created(old)
        await fuel.on_session_edited(old, old.model_copy(update={"distance": Decimal("50")}))
        assert fuel.current == Decimal("4")

    @pytest.mark.asyncio
    async def test_delete_restores(self, fuel):
        """Test that deleting a session restores its fuel."""
        session = make_session(date(2024, 3, 1), "10", distance="100")
        await fuel.on_session_created(session)
        await fuel.on_session_deleted(session)
        assert fuel.current == Decimal("5")

    def test_non_positive_rate_is_validation_failure(self, store):
        """Test that a zero rate never divides."""
        settings = VehicleSettings.model_construct(
            capacity=Decimal("10"),
            current_fuel=Decimal("5"),
            consumption_rate=Decimal("0"),
            fuel_unit_cost=Decimal("0"),
            currency="₹",
        )
        ledger = FuelLedger(store, settings)
        with pytest.raises(ValidationFailure):
            ledger.litres_for(Decimal("10"))


class TestTransactionHooks:
    """Tests for the four fuel-purchase edit cases."""

    @pytest.mark.asyncio
    async def test_create_purchase_adds_litres(self, fuel):
        await fuel.on_transaction_created(fuel_purchase("3"))
        assert fuel.current == Decimal("8")

    @pytest.mark.asyncio
    async def test_non_fuel_create_is_noop(self, fuel, store):
        """Test that ordinary expenses never touch fuel or the store."""
        await fuel.on_transaction_created(grocery())
        assert fuel.current == Decimal("5")
        assert await store.load_settings() is None

    @pytest.mark.asyncio
    async def test_fuel_to_fuel_applies_difference(self, fuel):
        old = fuel_purchase("3")
        await fuel.on_transaction_edited(old, old.model_copy(update={"litres": Decimal("1")}))
        assert fuel.current == Decimal("3")

    @pytest.mark.asyncio
    async def test_fuel_to_other_removes_old_litres(self, fuel):
        await fuel.on_transaction_edited(fuel_purchase("2"), grocery())
        assert fuel.current == Decimal("3")

    @pytest.mark.asyncio
    async def test_other_to_fuel_adds_new_litres(self, fuel):
        await fuel.on_transaction_edited(grocery(), fuel_purchase("2"))
        assert fuel.current == Decimal("7")

    @pytest.mark.asyncio
    async def test_other_to_other_is_noop(self, fuel):
        await fuel.on_transaction_edited(grocery(), grocery())
        assert fuel.current == Decimal("5")

    @pytest.mark.asyncio
    async def test_delete_purchase_subtracts_litres(self, fuel):
        await fuel.on_transaction_deleted(fuel_purchase("4"))
        assert fuel.current == Decimal("1")


class TestLowFuelCrossing:
    """Tests for the threshold-crossing alert."""

    @pytest.mark.asyncio
    async def test_alert_on_crossing(self, fuel, notifier):
        """Test an alert when fuel drops from >= 1.5 L to below it."""
        await fuel.adjust(Decimal("-4"))
        assert notifier.keys == ["low_fuel"]

    @pytest.mark.asyncio
    async def test_no_alert_while_already_low(self, fuel, notifier):
        """Test that staying below the threshold does not re-alert."""
        await fuel.adjust(Decimal("-4"))
        await fuel.adjust(Decimal("-0.5"))
        assert notifier.keys == ["low_fuel"]

    @pytest.mark.asyncio
    async def test_no_alert_when_failed(self, failing_store, vehicle, notifier):
        """Test that an unpersisted drop never alerts."""
        ledger = FuelLedger(failing_store, vehicle, notifier=notifier)
        failing_store.fail_settings = True
        with pytest.raises(StoreFailure):
            await ledger.adjust(Decimal("-4"))
        assert notifier.sent == []

    def test_is_low_excludes_empty(self, store, vehicle):
        """Test that an empty tank is not reported as low."""
        empty = FuelLedger(store, vehicle.model_copy(update={"current_fuel": Decimal("0")}))
        low = FuelLedger(store, vehicle.model_copy(update={"current_fuel": Decimal("1")}))
        assert not empty.is_low()
        assert low.is_low()


class TestSettings:
    """Tests for loading and replacing vehicle settings."""

    @pytest.mark.asyncio
    async def test_load_seeds_defaults(self, store, vehicle):
        """Test that an empty store is seeded with the defaults."""
        ledger = await FuelLedger.load(store, vehicle)
        assert ledger.current == Decimal("5")
        assert await store.load_settings() == vehicle

    @pytest.mark.asyncio
    async def test_load_prefers_persisted(self, store, vehicle):
        """Test that persisted state wins over the defaults."""
        await store.save_settings(vehicle.model_copy(update={"current_fuel": Decimal("9")}))
        ledger = await FuelLedger.load(store, vehicle)
        assert ledger.current == Decimal("9")

    @pytest.mark.asyncio
    async def test_replace_reclamps_current(self, fuel):
        """Test that shrinking the tank clamps the current fuel."""
        smaller = VehicleSettings(
            capacity=Decimal("20"),
            current_fuel=Decimal("5"),
            consumption_rate=Decimal("40"),
        ).model_copy(update={"capacity": Decimal("3")})
        replaced = await fuel.replace_settings(smaller)
        assert replaced.current_fuel == Decimal("3")
        assert fuel.current == Decimal("3")
        assert fuel.settings.consumption_rate == Decimal("40")
