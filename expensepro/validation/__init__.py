"""Input validation package."""

from expensepro.validation.validator import (
    DeliverySessionInput,
    LoanInput,
    TransactionInput,
    validate_loan,
    validate_session,
    validate_transaction,
    validate_vehicle,
)

__all__ = [
    "DeliverySessionInput",
    "LoanInput",
    "TransactionInput",
    "validate_loan",
    "validate_session",
    "validate_transaction",
    "validate_vehicle",
]
