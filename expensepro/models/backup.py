"""
Backup Document

Export/import format: the vehicle settings, the full contents of the
three record collections and an export timestamp. Import overwrites
by identity; it never merges field by field.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from expensepro.models.records import DeliverySession, Loan, Transaction
from expensepro.models.vehicle import VehicleSettings


class BackupDocument(BaseModel):
    settings: VehicleSettings
    expenses: list[Transaction] = Field(default_factory=list)
    loans: list[Loan] = Field(default_factory=list)
    delivery: list[DeliverySession] = Field(default_factory=list)
    export_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
