"""
Data Models Package

This package contains all Pydantic models used by the ExpensePro engine.
All records flowing through the store must conform to these schemas.
"""

from expensepro.models.records import (
    CATEGORIES,
    FUEL_CATEGORY,
    FUEL_SUB_CATEGORY,
    DeliverySession,
    Frequency,
    Loan,
    LoanCategory,
    LoanDirection,
    LoanPayment,
    LoanStatus,
    PaymentFrequency,
    RecurrenceRule,
    Transaction,
    TransactionKind,
    is_fuel_purchase,
)
from expensepro.models.vehicle import VehicleSettings, clamp
from expensepro.models.alerts import Alert, AlertKind, CheckReport
from expensepro.models.backup import BackupDocument

__all__ = [
    # Records
    "CATEGORIES",
    "FUEL_CATEGORY",
    "FUEL_SUB_CATEGORY",
    "DeliverySession",
    "Frequency",
    "Loan",
    "LoanCategory",
    "LoanDirection",
    "LoanPayment",
    "LoanStatus",
    "PaymentFrequency",
    "RecurrenceRule",
    "Transaction",
    "TransactionKind",
    "is_fuel_purchase",
    # Vehicle
    "VehicleSettings",
    "clamp",
    # Alerts
    "Alert",
    "AlertKind",
    "CheckReport",
    # Backup
    "BackupDocument",
]
