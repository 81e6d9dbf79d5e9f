"""
Fuel Ledger

Owns the vehicle's current fuel quantity. Delivery sessions consume
fuel in proportion to distance; fuel-purchase transactions add litres.
Edits apply a single compensating delta, deletes apply the inverse.

DESIGN DECISION: Durable first, authoritative second.
An adjustment computes the new state, writes it to the store, and only
after the write is acknowledged replaces the in-memory state. A failed
write leaves the ledger exactly as it was.

DESIGN DECISION: Every adjustment runs under one asyncio.Lock.
A second adjustment cannot read `current_fuel` before the first one's
write is acknowledged, so the derived value cannot drift under
interleaved coroutines.

Clamping into [0, capacity] is lossy at the boundaries: asking to burn
more fuel than is in the tank empties it, and the excess is forgotten.
"""

import asyncio
from decimal import Decimal
from typing import Optional

from expensepro.errors import ValidationFailure
from expensepro.logs import get_logger
from expensepro.models.alerts import Alert, AlertKind
from expensepro.models.records import DeliverySession, Transaction
from expensepro.models.vehicle import VehicleSettings, clamp
from expensepro.services.notify import Notifier, deliver
from expensepro.services.storage import RecordStore, StoreFailure


DEFAULT_LOW_FUEL_RATIO = Decimal("0.15")


class FuelLedger:
    """
    Explicit fuel state object.

    Pass one instance to every flow that reads or adjusts fuel; there is
    no module-level settings blob.
    """

    def __init__(
        self,
        store: RecordStore,
        settings: VehicleSettings,
        notifier: Optional[Notifier] = None,
        low_fuel_ratio: Decimal = DEFAULT_LOW_FUEL_RATIO,
    ):
        self._store = store
        self._settings = settings
        self._notifier = notifier
        self._low_fuel_ratio = Decimal(str(low_fuel_ratio))
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @classmethod
    async def load(
        cls,
        store: RecordStore,
        defaults: VehicleSettings,
        notifier: Optional[Notifier] = None,
        low_fuel_ratio: Decimal = DEFAULT_LOW_FUEL_RATIO,
    ) -> "FuelLedger":
        """
        Load the persisted vehicle state, seeding it from defaults
        when the store has none.
        """
        settings = await store.load_settings()
        if settings is None:
            settings = defaults
            await store.save_settings(settings)
        return cls(store, settings, notifier=notifier, low_fuel_ratio=low_fuel_ratio)

    # -------------------------------------------------------------------------
    # Read-only view
    # -------------------------------------------------------------------------

    @property
    def settings(self) -> VehicleSettings:
        """A copy of the committed vehicle state."""
        return self._settings.model_copy()

    @property
    def current(self) -> Decimal:
        return self._settings.current_fuel

    @property
    def capacity(self) -> Decimal:
        return self._settings.capacity

    @property
    def threshold(self) -> Decimal:
        """Quantity below which fuel is considered low."""
        return self._settings.capacity * self._low_fuel_ratio

    def is_low(self) -> bool:
        """Low but not empty: 0 < current < threshold."""
        return Decimal("0") < self.current < self.threshold

    def litres_for(self, distance: Decimal) -> Decimal:
        """
        Fuel burned over a distance.

        Raises:
            ValidationFailure: If the consumption rate is not positive
        """
        rate = self._settings.consumption_rate
        if rate <= 0:
            raise ValidationFailure.single(
                "consumption_rate",
                "invalid_value",
                "Consumption rate must be positive",
            )
        return distance / rate

    # -------------------------------------------------------------------------
    # Core adjustment
    # -------------------------------------------------------------------------

    async def adjust(self, delta: Decimal) -> Decimal:
        """
        Move current fuel by `delta`, clamped to [0, capacity].

        Returns:
            The committed (clamped) fuel quantity

        Raises:
            StoreFailure: If the new state could not be persisted;
                the in-memory state is then left unchanged
        """
        async with self._lock:
            return await self._commit_delta(delta)

    async def _commit_delta(self, delta: Decimal) -> Decimal:
        before = self._settings.current_fuel
        pending = self._settings.model_copy(
            update={"current_fuel": clamp(before + delta, self._settings.capacity)}
        )
        await self._persist(pending)
        self._logger.info(
            "fuel_adjusted",
            requested=str(delta),
            applied=str(pending.current_fuel - before),
            current=str(pending.current_fuel),
        )
        await self._check_crossing(before, pending.current_fuel)
        return pending.current_fuel

    async def _persist(self, pending: VehicleSettings) -> None:
        try:
            await self._store.save_settings(pending)
        except StoreFailure as e:
            self._logger.error("fuel_persist_failed", error=str(e))
            raise
        self._settings = pending

    async def _check_crossing(self, before: Decimal, after: Decimal) -> None:
        """Alert once when fuel drops from at-or-above the threshold to below it."""
        threshold = self.threshold
        if not (before >= threshold > after):
            return

        percent = (after / self._settings.capacity * 100).quantize(Decimal("1"))
        alert = Alert(
            kind=AlertKind.LOW_FUEL,
            title="Fuel Low",
            body=f"Tank at {percent}%. Refuel recommended.",
            details={"current": str(after), "threshold": str(threshold)},
        )
        self._logger.warning("low_fuel_crossed", current=str(after))
        if self._notifier is not None:
            await deliver(self._notifier, alert)

    # -------------------------------------------------------------------------
    # Delivery sessions
    # -------------------------------------------------------------------------

    async def on_session_created(self, session: DeliverySession) -> Decimal:
        return await self.adjust(-self.litres_for(session.distance))

    async def on_session_edited(
        self,
        old: DeliverySession,
        new: DeliverySession,
    ) -> Decimal:
        """One compensating delta: (new distance - old distance) / rate."""
        return await self.adjust(-self.litres_for(new.distance - old.distance))

    async def on_session_deleted(self, session: DeliverySession) -> Decimal:
        return await self.adjust(self.litres_for(session.distance))

    # -------------------------------------------------------------------------
    # Fuel purchases
    # -------------------------------------------------------------------------

    async def on_transaction_created(self, transaction: Transaction) -> Decimal:
        if not transaction.fuel_linked:
            return self.current
        return await self.adjust(transaction.fuel_litres)

    async def on_transaction_edited(
        self,
        old: Transaction,
        new: Transaction,
    ) -> Decimal:
        """
        Four cases by (was fuel-linked, is fuel-linked):
        fuel->fuel adds the litres difference, fuel->other removes the
        old litres, other->fuel adds the new litres, other->other is a no-op.
        """
        if not old.fuel_linked and not new.fuel_linked:
            return self.current
        return await self.adjust(new.fuel_litres - old.fuel_litres)

    async def on_transaction_deleted(self, transaction: Transaction) -> Decimal:
        if not transaction.fuel_linked:
            return self.current
        return await self.adjust(-transaction.fuel_litres)

    # -------------------------------------------------------------------------
    # Vehicle settings
    # -------------------------------------------------------------------------

    async def replace_settings(
        self,
        settings: VehicleSettings,
        keep_current: bool = False,
    ) -> VehicleSettings:
        """
        Replace the whole vehicle state (settings form, backup import).

        With `keep_current`, the committed fuel quantity is carried over,
        read under the ledger lock so a concurrent adjustment is never
        lost; otherwise `settings.current_fuel` is taken as given. Either
        way current fuel is re-clamped against the new capacity.
        """
        async with self._lock:
            current = self._settings.current_fuel if keep_current else settings.current_fuel
            pending = settings.model_copy(
                update={"current_fuel": clamp(current, settings.capacity)}
            )
            await self._persist(pending)
            self._logger.info(
                "vehicle_settings_replaced",
                capacity=str(pending.capacity),
                consumption_rate=str(pending.consumption_rate),
                current=str(pending.current_fuel),
            )
            return pending.model_copy()
