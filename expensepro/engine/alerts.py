"""
Alert Evaluator

Runs a fixed battery of checks, in order, each yielding at most one alert:

1. Fuel: 0 < current < low-fuel threshold
2. Loan due: active commercial loans due today (one alert with the count)
3. Weekend settlement: Saturday/Sunday only, un-posted settlements sum
   to a non-zero amount
4. Recurring catch-up: ALWAYS runs the scheduler; alerts if anything
   was emitted

A silent run (start-up, background trigger) only reports alerts.
A manual run always yields exactly one visible outcome: the alerts, or
an explicit all-clear.
"""

from datetime import date
from typing import Optional

from expensepro.engine.fuel import FuelLedger
from expensepro.engine.loans import is_due_on
from expensepro.engine.recurring import RecurringScheduler
from expensepro.engine.settlement import eligible_sessions, settlement_total
from expensepro.logs import create_correlation_id, get_logger
from expensepro.models.alerts import Alert, AlertKind, CheckReport
from expensepro.services.notify import Notifier, deliver
from expensepro.services.storage import Collection, RecordStore


SATURDAY = 5
SUNDAY = 6


class AlertEvaluator:
    """Periodic / triggered system check."""

    def __init__(
        self,
        store: RecordStore,
        fuel: FuelLedger,
        scheduler: RecurringScheduler,
        notifier: Optional[Notifier] = None,
    ):
        self._store = store
        self._fuel = fuel
        self._scheduler = scheduler
        self._notifier = notifier
        self._logger = get_logger(__name__)

    def check_fuel(self) -> Optional[Alert]:
        if not self._fuel.is_low():
            return None
        current = self._fuel.current
        return Alert(
            kind=AlertKind.LOW_FUEL,
            title="Low Fuel Warning",
            body=f"You have {current:.2f}L remaining. Time to refuel!",
            details={"current": str(current)},
        )

    async def check_loans(self, today: date) -> Optional[Alert]:
        loans = await self._store.fetch_all(Collection.LOANS)
        due = [loan for loan in loans if is_due_on(loan, today)]
        if not due:
            return None
        return Alert(
            kind=AlertKind.LOAN_DUE,
            title="Loan Payments Due",
            body=f"You have {len(due)} loan payments due today.",
            details={"count": len(due)},
        )

    async def check_weekend_settlement(self, today: date) -> Optional[Alert]:
        if today.weekday() not in (SATURDAY, SUNDAY):
            return None
        sessions = await self._store.fetch_all(Collection.DELIVERY)
        pending = settlement_total(eligible_sessions(sessions))
        if pending == 0:
            return None
        currency = self._fuel.settings.currency
        return Alert(
            kind=AlertKind.WEEKEND_SETTLEMENT,
            title="Weekend Payout Alert",
            body=f"You have {currency}{pending:,} pending transfer to Ledger.",
            details={"pending": str(pending)},
        )

    async def check_recurring(self, today: date, correlation_id=None) -> tuple[Optional[Alert], int]:
        emitted = await self._scheduler.run(today, correlation_id=correlation_id)
        if emitted == 0:
            return None, 0
        alert = Alert(
            kind=AlertKind.RECURRING_CATCH_UP,
            title="Recurring Expenses",
            body=f"Processed {emitted} recurring transactions today.",
            details={"count": emitted},
        )
        return alert, emitted

    async def run(self, today: date, silent: bool = True) -> CheckReport:
        """
        Run every check and deliver the resulting alerts.

        Args:
            today: The date the checks evaluate against
            silent: Suppress the all-clear signal when nothing fired

        Raises:
            StoreFailure: If a read, or a catch-up write, fails
        """
        correlation_id = create_correlation_id()
        logger = self._logger.bind(correlation_id=str(correlation_id))

        alerts: list[Alert] = []
        for alert in (
            self.check_fuel(),
            await self.check_loans(today),
            await self.check_weekend_settlement(today),
        ):
            if alert is not None:
                alerts.append(alert)

        recurring_alert, emitted = await self.check_recurring(today, correlation_id)
        if recurring_alert is not None:
            alerts.append(recurring_alert)

        all_clear = not alerts and not silent
        if self._notifier is not None:
            for alert in alerts:
                await deliver(self._notifier, alert)
            if all_clear:
                await deliver(self._notifier, Alert(
                    kind=AlertKind.ALL_CLEAR,
                    title="System Check",
                    body="All systems operational. No pending alerts.",
                ))

        logger.info(
            "system_check_completed",
            today=today.isoformat(),
            alerts=[a.kind.value for a in alerts],
            recurring_emitted=emitted,
            silent=silent,
        )
        return CheckReport(
            run_id=correlation_id,
            today=today,
            alerts=alerts,
            recurring_emitted=emitted,
            all_clear=all_clear,
        )
