"""
Alert Models

The engine decides THAT an alert fires; presenting it is the
notifier's job. Each alert carries the dedupe key the notifier uses
to collapse simultaneous alerts of the same kind.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AlertKind(str, Enum):
    """Alert kinds, in the order the evaluator checks them."""
    LOW_FUEL = "low_fuel"
    LOAN_DUE = "loan_due"
    WEEKEND_SETTLEMENT = "weekend_settlement"
    RECURRING_CATCH_UP = "recurring_catch_up"
    ALL_CLEAR = "all_clear"


class Alert(BaseModel):
    """A single advisory alert."""

    kind: AlertKind
    title: str = Field(..., max_length=100)
    body: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def dedupe_key(self) -> str:
        return self.kind.value


class CheckReport(BaseModel):
    """
    Result of one Alert Evaluator run.

    `all_clear` is True only for a non-silent run where no rule fired.
    """

    run_id: UUID = Field(default_factory=uuid4)
    ran_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    today: date
    alerts: list[Alert] = Field(default_factory=list)
    recurring_emitted: int = Field(default=0, ge=0)
    all_clear: bool = False

    @property
    def alert_kinds(self) -> list[AlertKind]:
        return [a.kind for a in self.alerts]
