"""Read-only summaries package."""

from expensepro.queries.summaries import (
    DateWindow,
    DeliverySummary,
    FuelGauge,
    LedgerSummary,
    LoanSummary,
    SummaryExecutor,
    WindowKind,
    summarize_sessions,
)

__all__ = [
    "DateWindow",
    "DeliverySummary",
    "FuelGauge",
    "LedgerSummary",
    "LoanSummary",
    "SummaryExecutor",
    "WindowKind",
    "summarize_sessions",
]
