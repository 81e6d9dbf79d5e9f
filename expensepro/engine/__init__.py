"""
Reconciliation Engine Package

Fuel Ledger, Recurring Scheduler, Settlement Poster, Alert Evaluator,
plus the loan book and backup helpers built on the same store.
"""

from expensepro.engine.fuel import FuelLedger
from expensepro.engine.recurring import (
    RecurringScheduler,
    add_period,
    occurrence_dates,
    occurrence_id,
)
from expensepro.engine.settlement import (
    SettlementPoster,
    eligible_sessions,
    settlement_total,
)
from expensepro.engine.loans import (
    LoanBook,
    RepaymentPlan,
    is_due_on,
    outstanding_by_direction,
    repayment_plan,
)
from expensepro.engine.alerts import AlertEvaluator
from expensepro.engine.backup import export_backup, import_backup, parse_backup

__all__ = [
    "AlertEvaluator",
    "FuelLedger",
    "LoanBook",
    "RecurringScheduler",
    "RepaymentPlan",
    "SettlementPoster",
    "add_period",
    "eligible_sessions",
    "export_backup",
    "import_backup",
    "is_due_on",
    "occurrence_dates",
    "occurrence_id",
    "outstanding_by_direction",
    "parse_backup",
    "repayment_plan",
    "settlement_total",
]
