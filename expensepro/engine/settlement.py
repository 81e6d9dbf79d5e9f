"""
Settlement Poster

Folds un-posted delivery sessions into ONE ledger transaction and marks
each session with that transaction's id.

GUARANTEES:
- A session's ledger reference is set exactly once
- Zero-sum or empty selections post nothing (NothingToSettle)
- A posting interrupted while marking sessions can be retried with the
  same selection: the retry finds the payout already written (it lists
  the sessions it covers) and finishes marking against it instead of
  creating a second payout
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from expensepro.errors import NothingToSettle, PartialPostingFailure
from expensepro.logs import get_logger
from expensepro.models.records import DeliverySession, Transaction, TransactionKind
from expensepro.services.storage import Collection, RecordStore, StoreFailure


INCOME_CATEGORY = ("Income", "Salary")
EXPENSE_CATEGORY = ("Transport", "Maintenance")


def eligible_sessions(sessions: Iterable[DeliverySession]) -> list[DeliverySession]:
    """Sessions that have never been posted."""
    return [s for s in sessions if not s.is_posted]


def settlement_total(sessions: Iterable[DeliverySession]) -> Decimal:
    """Signed sum of online settlements."""
    return sum((s.online_settlement for s in sessions), Decimal("0"))


def build_payout(
    sessions: list[DeliverySession],
    total: Decimal,
    scope: str,
    today: date,
) -> Transaction:
    """The single ledger entry representing a set of sessions."""
    is_income = total > 0
    category, sub_category = INCOME_CATEGORY if is_income else EXPENSE_CATEGORY
    return Transaction(
        kind=TransactionKind.INCOME if is_income else TransactionKind.EXPENSE,
        amount=abs(total),
        category=category,
        sub_category=sub_category,
        date=today,
        note=f"Delivery Payout: {scope.capitalize()} Summary ({len(sessions)} sessions)",
        settled_sessions=[s.id for s in sessions],
        settlement_scope=scope,
    )


class SettlementPoster:
    """
    Posts aggregated delivery earnings into the general ledger.

    `lock` is the session lock shared with the delivery flow; posting and
    session edits never interleave on the same sessions.
    """

    def __init__(self, store: RecordStore, lock: Optional[asyncio.Lock] = None):
        self._store = store
        self._lock = lock or asyncio.Lock()
        self._logger = get_logger(__name__)

    async def _refresh(self, sessions: list[DeliverySession]) -> list[DeliverySession]:
        """Current stored state of the selection; deleted sessions drop out."""
        fresh = []
        for session in sessions:
            stored = await self._store.get(Collection.DELIVERY, session.id)
            if stored is not None:
                fresh.append(stored)
        return fresh

    async def _find_unfinished_payout(
        self,
        sessions: list[DeliverySession],
    ) -> Optional[Transaction]:
        """A payout already written for any of these sessions, if one exists."""
        wanted = {s.id for s in sessions}
        for transaction in await self._store.fetch_all(Collection.EXPENSES):
            if wanted.intersection(transaction.settled_sessions):
                return transaction
        return None

    async def _mark(
        self,
        payout: Transaction,
        session_ids: list[UUID],
    ) -> None:
        """
        Set the ledger reference on every session, one write each.

        Each session is re-read and only its reference is changed; a
        session that already carries a reference is left alone.
        """
        marked = []
        for index, session_id in enumerate(session_ids):
            try:
                stored = await self._store.get(Collection.DELIVERY, session_id)
                if stored is not None and not stored.is_posted:
                    await self._store.upsert(
                        Collection.DELIVERY,
                        stored.model_copy(update={"ledger_ref": payout.id}),
                    )
            except StoreFailure as e:
                unmarked = session_ids[index:]
                self._logger.error(
                    "settlement_marking_failed",
                    transaction_id=str(payout.id),
                    marked=len(marked),
                    unmarked=len(unmarked),
                    error=str(e),
                )
                raise PartialPostingFailure(payout.id, marked, unmarked, cause=e) from e
            marked.append(session_id)

    async def post(
        self,
        sessions: list[DeliverySession],
        today: date,
        scope: str = "all",
    ) -> Transaction:
        """
        Post a caller-selected set of sessions as one ledger entry.

        The selection is re-read from the store first, so totals use the
        current amounts and already-posted sessions are ignored.

        Returns:
            The payout transaction (new, or the one a retry resumed)

        Raises:
            NothingToSettle: If no session is eligible or the signed
                total is exactly zero; nothing is written
            PartialPostingFailure: If the payout was written but marking
                sessions failed part-way; retry with the same selection
            StoreFailure: If the payout itself could not be written
        """
        async with self._lock:
            pending = eligible_sessions(await self._refresh(sessions))
            if not pending:
                raise NothingToSettle("All selected sessions have already been posted")

            resumed = await self._find_unfinished_payout(pending)
            if resumed is not None:
                covered = [s.id for s in pending if s.id in set(resumed.settled_sessions)]
                self._logger.info(
                    "settlement_resumed",
                    transaction_id=str(resumed.id),
                    sessions=len(covered),
                )
                await self._mark(resumed, covered)
                return resumed

            total = settlement_total(pending)
            if total == 0:
                raise NothingToSettle("Net settlement is zero. Nothing to post.")

            payout = build_payout(pending, total, scope, today)
            await self._store.upsert(Collection.EXPENSES, payout)
            await self._mark(payout, [s.id for s in pending])

            self._logger.info(
                "settlement_posted",
                transaction_id=str(payout.id),
                kind=payout.kind.value,
                amount=str(payout.amount),
                sessions=len(pending),
                scope=scope,
            )
            return payout
