"""
Main Orchestrator for ExpensePro

This module ties together all the components and defines the
end-to-end flows for:
1. Delivery sessions (validate → store → consume/restore fuel)
2. Ledger transactions (validate → store → fuel purchase bookkeeping)
3. Loans (validate → store; payments through the loan book)
4. Vehicle settings and settlement posting

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written before validation passes
- A record write and its fuel adjustment succeed or fail together:
  if the fuel state cannot be persisted, the record write is undone
- Each flow serializes its own read-modify-write sequences

This is the "glue" the user-facing layer calls. The engine components
underneath never call back into it.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional
from uuid import UUID

from pydantic import ValidationError

from expensepro.config import EngineSettings, get_settings
from expensepro.engine import (
    AlertEvaluator,
    FuelLedger,
    LoanBook,
    RecurringScheduler,
    SettlementPoster,
)
from expensepro.errors import RecordNotFound
from expensepro.logs import configure_logging, get_logger
from expensepro.models.records import DeliverySession, Loan, Transaction
from expensepro.models.vehicle import VehicleSettings
from expensepro.queries import DateWindow, SummaryExecutor
from expensepro.services.notify import LogNotifier, Notifier
from expensepro.services.storage import (
    Collection,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    RecordStore,
    StoreFailure,
)
from expensepro.validation import (
    DeliverySessionInput,
    LoanInput,
    TransactionInput,
    validate_loan,
    validate_session,
    validate_transaction,
    validate_vehicle,
)


logger = get_logger(__name__)


async def _undo(step, *args) -> None:
    """Best-effort rollback of a record write; the original error still propagates."""
    try:
        await step(*args)
    except StoreFailure as e:
        logger.error("rollback_failed", step=step.__name__, error=str(e))


class DeliveryFlow:
    """
    Orchestrates delivery session changes.

    Flow:
    1. Validate → DeliverySession (settlement derived, distance required)
    2. Store → upsert / delete the session
    3. Fuel → consume, compensate or restore fuel for the distance

    If step 3 fails, step 2 is reverted so the stored sessions and the
    fuel quantity never disagree.

    `lock` is the session lock shared with the settlement poster.
    """

    def __init__(
        self,
        store: RecordStore,
        fuel: FuelLedger,
        lock: Optional[asyncio.Lock] = None,
    ):
        self._store = store
        self._fuel = fuel
        self._lock = lock or asyncio.Lock()

    async def _require(self, session_id: UUID) -> DeliverySession:
        session = await self._store.get(Collection.DELIVERY, session_id)
        if session is None:
            raise RecordNotFound("Delivery session", session_id)
        return session

    async def create(self, data: DeliverySessionInput) -> DeliverySession:
        """
        Record a delivery session and consume its fuel.

        Raises:
            ValidationFailure: On missing distance or reported total
            StoreFailure: If the session or the fuel state could not be
                written (nothing is left applied)
        """
        session = validate_session(data)
        async with self._lock:
            await self._store.upsert(Collection.DELIVERY, session)
            try:
                await self._fuel.on_session_created(session)
            except StoreFailure:
                await _undo(self._store.delete, Collection.DELIVERY, session.id)
                raise

        logger.info(
            "session_created",
            session_id=str(session.id),
            distance=str(session.distance),
            settlement=str(session.online_settlement),
        )
        return session

    async def edit(self, session_id: UUID, data: DeliverySessionInput) -> DeliverySession:
        """
        Replace a session, applying one compensating fuel delta.

        A posted session keeps its ledger reference.

        Raises:
            ValidationFailure: On invalid input
            RecordNotFound: If the session does not exist
            StoreFailure: If a write failed (the old session is restored)
        """
        async with self._lock:
            old = await self._require(session_id)
            new = validate_session(data, session_id=old.id, ledger_ref=old.ledger_ref)
            await self._store.upsert(Collection.DELIVERY, new)
            try:
                await self._fuel.on_session_edited(old, new)
            except StoreFailure:
                await _undo(self._store.upsert, Collection.DELIVERY, old)
                raise

        logger.info(
            "session_edited",
            session_id=str(session_id),
            old_distance=str(old.distance),
            new_distance=str(new.distance),
        )
        return new

    async def delete(self, session_id: UUID) -> DeliverySession:
        """
        Remove a session and give its fuel back.

        Raises:
            RecordNotFound: If the session does not exist
            StoreFailure: If a write failed (the session is restored)
        """
        async with self._lock:
            session = await self._require(session_id)
            await self._store.delete(Collection.DELIVERY, session_id)
            try:
                await self._fuel.on_session_deleted(session)
            except StoreFailure:
                await _undo(self._store.upsert, Collection.DELIVERY, session)
                raise

        logger.info("session_deleted", session_id=str(session_id))
        return session


class TransactionFlow:
    """
    Orchestrates ledger transaction changes.

    Fuel purchases (Transport / Fuel) move the fuel quantity by their
    litres; every other transaction leaves it alone.

    `lock` is the ledger lock shared with the recurring scheduler.
    """

    def __init__(
        self,
        store: RecordStore,
        fuel: FuelLedger,
        lock: Optional[asyncio.Lock] = None,
    ):
        self._store = store
        self._fuel = fuel
        self._lock = lock or asyncio.Lock()

    async def _require(self, transaction_id: UUID) -> Transaction:
        transaction = await self._store.get(Collection.EXPENSES, transaction_id)
        if transaction is None:
            raise RecordNotFound("Transaction", transaction_id)
        return transaction

    async def create(self, data: TransactionInput) -> Transaction:
        """
        Record a transaction.

        A recurring transaction starts with its marker on its own date,
        so the scheduler only emits the periods after it.
        """
        transaction = validate_transaction(data)
        async with self._lock:
            await self._store.upsert(Collection.EXPENSES, transaction)
            try:
                await self._fuel.on_transaction_created(transaction)
            except StoreFailure:
                await _undo(self._store.delete, Collection.EXPENSES, transaction.id)
                raise

        logger.info(
            "transaction_created",
            transaction_id=str(transaction.id),
            kind=transaction.kind.value,
            amount=str(transaction.amount),
            fuel_linked=transaction.fuel_linked,
        )
        return transaction

    async def edit(self, transaction_id: UUID, data: TransactionInput) -> Transaction:
        """
        Replace a transaction.

        Settlement bookkeeping (which sessions a payout covers) and an
        unchanged recurrence marker are carried over from the stored
        record.
        """
        async with self._lock:
            old = await self._require(transaction_id)
            new = validate_transaction(
                data,
                transaction_id=old.id,
                recurring=old.recurring,
            ).model_copy(update={
                "settled_sessions": old.settled_sessions,
                "settlement_scope": old.settlement_scope,
            })
            await self._store.upsert(Collection.EXPENSES, new)
            try:
                await self._fuel.on_transaction_edited(old, new)
            except StoreFailure:
                await _undo(self._store.upsert, Collection.EXPENSES, old)
                raise

        logger.info(
            "transaction_edited",
            transaction_id=str(transaction_id),
            was_fuel=old.fuel_linked,
            is_fuel=new.fuel_linked,
        )
        return new

    async def delete(self, transaction_id: UUID) -> Transaction:
        async with self._lock:
            transaction = await self._require(transaction_id)
            await self._store.delete(Collection.EXPENSES, transaction_id)
            try:
                await self._fuel.on_transaction_deleted(transaction)
            except StoreFailure:
                await _undo(self._store.upsert, Collection.EXPENSES, transaction)
                raise

        logger.info("transaction_deleted", transaction_id=str(transaction_id))
        return transaction


class LoanFlow:
    """Orchestrates loan changes. Payments go through the loan book."""

    def __init__(self, store: RecordStore, book: Optional[LoanBook] = None):
        self._store = store
        self._book = book or LoanBook(store)

    async def create(self, data: LoanInput) -> Loan:
        loan = validate_loan(data)
        await self._store.upsert(Collection.LOANS, loan)
        logger.info(
            "loan_created",
            loan_id=str(loan.id),
            direction=loan.direction.value,
            category=loan.category.value,
            amount=str(loan.amount),
        )
        return loan

    async def edit(self, loan_id: UUID, data: LoanInput) -> Loan:
        """
        Replace a loan's terms, keeping its payments.

        Status is recomputed, so raising the principal above the amount
        paid re-activates a cleared loan.
        """
        old = await self._store.get(Collection.LOANS, loan_id)
        if old is None:
            raise RecordNotFound("Loan", loan_id)
        loan = validate_loan(data, loan_id=old.id, payments=old.payments)
        await self._store.upsert(Collection.LOANS, loan)
        logger.info("loan_edited", loan_id=str(loan_id), status=loan.status.value)
        return loan

    async def delete(self, loan_id: UUID) -> None:
        if not await self._store.delete(Collection.LOANS, loan_id):
            raise RecordNotFound("Loan", loan_id)
        logger.info("loan_deleted", loan_id=str(loan_id))

    async def add_payment(self, loan_id: UUID, amount: Decimal, today: date) -> Loan:
        """Record a repayment dated `today`."""
        return await self._book.add_payment(loan_id, amount, today)

    async def remove_payment(self, loan_id: UUID, payment_id: UUID) -> Loan:
        return await self._book.remove_payment(loan_id, payment_id)


class VehicleFlow:
    """Vehicle settings form."""

    def __init__(self, fuel: FuelLedger):
        self._fuel = fuel

    async def update(
        self,
        capacity: Decimal,
        consumption_rate: Decimal,
        fuel_unit_cost: Decimal,
        current_fuel: Optional[Decimal] = None,
        currency: Optional[str] = None,
    ) -> VehicleSettings:
        """
        Validate and replace the vehicle settings.

        Current fuel defaults to the committed quantity and is clamped
        into the (possibly smaller) new tank.

        Raises:
            ValidationFailure: If capacity or rate is not positive
            StoreFailure: If the settings could not be persisted
        """
        settings = validate_vehicle(
            capacity=capacity,
            consumption_rate=consumption_rate,
            fuel_unit_cost=fuel_unit_cost,
            current_fuel=Decimal("0") if current_fuel is None else current_fuel,
            currency=currency or self._fuel.settings.currency,
        )
        return await self._fuel.replace_settings(settings, keep_current=current_fuel is None)


class SettlementFlow:
    """Posts the un-posted sessions of a date window."""

    def __init__(self, poster: SettlementPoster, summaries: SummaryExecutor):
        self._poster = poster
        self._summaries = summaries

    async def post(self, window: DateWindow) -> Transaction:
        """
        Post every un-posted session in the window as one entry.

        The entry is dated `window.today` and its note names the window.

        Raises:
            NothingToSettle: If the window holds nothing to post
            PartialPostingFailure: If marking stopped part-way; call
                again with the same window to finish
        """
        sessions = await self._summaries.sessions_in(window)
        return await self._poster.post(sessions, today=window.today, scope=window.kind.value)


class AppComponents(NamedTuple):
    store: RecordStore
    fuel: FuelLedger
    scheduler: RecurringScheduler
    poster: SettlementPoster
    evaluator: AlertEvaluator
    summaries: SummaryExecutor
    delivery: DeliveryFlow
    transactions: TransactionFlow
    loans: LoanFlow
    vehicle: VehicleFlow
    settlement: SettlementFlow


def _default_vehicle(engine: EngineSettings) -> VehicleSettings:
    return VehicleSettings(
        capacity=Decimal(str(engine.default_capacity)),
        current_fuel=Decimal("0"),
        consumption_rate=Decimal(str(engine.default_consumption_rate)),
        fuel_unit_cost=Decimal(str(engine.default_fuel_unit_cost)),
        currency=engine.default_currency,
    )


def _create_store(engine: EngineSettings) -> RecordStore:
    if engine.storage_backend != "google_sheets":
        return InMemoryRecordStore()
    try:
        return GoogleSheetsRecordStore(GoogleSheetsClient())
    except ValidationError as e:
        # Storage not configured - continue in memory
        logger.warning("storage_not_configured", backend="google_sheets", error=str(e))
        return InMemoryRecordStore()


async def create_app_components(
    store: Optional[RecordStore] = None,
    notifier: Optional[Notifier] = None,
    engine: Optional[EngineSettings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Record store to use. Defaults to the configured backend.
        notifier: Alert sink. Defaults to the structured log.
        engine: Engine settings. Defaults to the environment.

    Returns:
        AppComponents sharing one store and one Fuel Ledger
    """
    configure_logging()
    engine = engine or get_settings().engine
    store = store or _create_store(engine)
    notifier = notifier or LogNotifier()

    fuel = await FuelLedger.load(
        store,
        _default_vehicle(engine),
        notifier=notifier,
        low_fuel_ratio=Decimal(str(engine.low_fuel_ratio)),
    )
    # One lock per shared entity class: delivery sessions, ledger transactions
    session_lock = asyncio.Lock()
    ledger_lock = asyncio.Lock()
    scheduler = RecurringScheduler(store, lock=ledger_lock)
    poster = SettlementPoster(store, lock=session_lock)
    summaries = SummaryExecutor(store, fuel)

    return AppComponents(
        store=store,
        fuel=fuel,
        scheduler=scheduler,
        poster=poster,
        evaluator=AlertEvaluator(store, fuel, scheduler, notifier=notifier),
        summaries=summaries,
        delivery=DeliveryFlow(store, fuel, lock=session_lock),
        transactions=TransactionFlow(store, fuel, lock=ledger_lock),
        loans=LoanFlow(store),
        vehicle=VehicleFlow(fuel),
        settlement=SettlementFlow(poster, summaries),
    )
