"""
Input Validation

DESIGN DECISION: Validation happens BEFORE any mutation.
A form submission either becomes a fully valid record or raises
ValidationFailure carrying every issue found; the store and the fuel
ledger are never touched by rejected input.

Checks fall in two groups:
- Presence: required numeric inputs (distance, reported total, amount,
  litres on a fuel purchase) must be supplied
- Semantics: category/kind agreement, non-negative quantities, a
  positive consumption rate (distance / rate must never divide by zero)

IMPORTANT: Validation NEVER silently fixes issues.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ValidationError

from expensepro.errors import ValidationFailure, ValidationIssue
from expensepro.models.records import (
    CATEGORIES,
    DeliverySession,
    Frequency,
    Loan,
    LoanCategory,
    LoanDirection,
    LoanPayment,
    PaymentFrequency,
    RecurrenceRule,
    Transaction,
    TransactionKind,
    is_fuel_purchase,
)
from expensepro.models.vehicle import VehicleSettings


# =============================================================================
# RAW INPUTS - what a form hands us, before validation
# =============================================================================

class DeliverySessionInput(BaseModel):
    """Delivery session form. Reported total and distance are required."""

    date: date
    reported_total: Optional[Decimal] = None
    cash_collected: Optional[Decimal] = None
    distance: Optional[Decimal] = None
    other_costs: Optional[Decimal] = None


class TransactionInput(BaseModel):
    """Ledger transaction form."""

    kind: TransactionKind
    amount: Optional[Decimal] = None
    category: str
    sub_category: str = ""
    date: date
    note: str = ""
    litres: Optional[Decimal] = None
    recurring: Optional[Frequency] = None


class LoanInput(BaseModel):
    """Loan form. Terms are ignored for peer loans."""

    name: str
    amount: Optional[Decimal] = None
    direction: LoanDirection
    category: LoanCategory = LoanCategory.PEER
    interest_rate: Optional[Decimal] = None
    tenure: Optional[int] = None
    payment_frequency: Optional[PaymentFrequency] = None
    date: date


# =============================================================================
# HELPERS
# =============================================================================

def _issue(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, issue_type=issue_type, message=message)


def _require_non_negative(
    issues: list[ValidationIssue],
    field: str,
    value: Optional[Decimal],
    required: bool = False,
) -> None:
    if value is None:
        if required:
            issues.append(_issue(field, "missing", f"{field} is required"))
    elif value < 0:
        issues.append(_issue(field, "invalid_value", f"{field} cannot be negative"))


def _from_pydantic(error: ValidationError) -> ValidationFailure:
    """Translate a model construction error into a ValidationFailure."""
    return ValidationFailure([
        _issue(
            ".".join(str(part) for part in err["loc"]) or "record",
            err["type"],
            err["msg"],
        )
        for err in error.errors()
    ])


# =============================================================================
# VALIDATORS
# =============================================================================

def validate_session(
    data: DeliverySessionInput,
    session_id: Optional[UUID] = None,
    ledger_ref: Optional[UUID] = None,
) -> DeliverySession:
    """
    Build a DeliverySession from form input.

    The online settlement is derived: reported total - cash collected.
    It may be negative.

    Raises:
        ValidationFailure: If distance or reported total is missing,
            or any quantity is negative
    """
    issues: list[ValidationIssue] = []
    _require_non_negative(issues, "distance", data.distance, required=True)
    _require_non_negative(issues, "reported_total", data.reported_total, required=True)
    _require_non_negative(issues, "cash_collected", data.cash_collected)
    _require_non_negative(issues, "other_costs", data.other_costs)
    if issues:
        raise ValidationFailure(issues)

    cash = data.cash_collected or Decimal("0")
    try:
        return DeliverySession(
            id=session_id or uuid4(),
            date=data.date,
            cash_collected=cash,
            online_settlement=data.reported_total - cash,
            distance=data.distance,
            other_costs=data.other_costs or Decimal("0"),
            ledger_ref=ledger_ref,
        )
    except ValidationError as e:
        raise _from_pydantic(e)


def validate_transaction(
    data: TransactionInput,
    transaction_id: Optional[UUID] = None,
    recurring: Optional[RecurrenceRule] = None,
) -> Transaction:
    """
    Build a Transaction from form input.

    A Transport/Fuel expense is fuel-linked and must state its litres.
    A new recurring transaction starts with its marker on its own date;
    an edit that keeps the same frequency keeps its existing marker.

    Raises:
        ValidationFailure: On missing amount, unknown category, a
            category that does not match the kind, or missing litres
    """
    issues: list[ValidationIssue] = []
    _require_non_negative(issues, "amount", data.amount, required=True)

    catalogue = CATEGORIES.get(data.category)
    if catalogue is None:
        issues.append(_issue("category", "unknown", f"Unknown category: {data.category}"))
    else:
        kind, subs = catalogue
        if kind != data.kind:
            issues.append(_issue(
                "category",
                "kind_mismatch",
                f"{data.category} is an {kind.value} category",
            ))
        if data.sub_category and data.sub_category not in subs:
            issues.append(_issue(
                "sub_category",
                "unknown",
                f"{data.sub_category} is not a sub-category of {data.category}",
            ))

    fuel_linked = is_fuel_purchase(data.category, data.sub_category)
    if fuel_linked:
        _require_non_negative(issues, "litres", data.litres, required=True)

    if issues:
        raise ValidationFailure(issues)

    rule = None
    if data.recurring is not None:
        if recurring is not None and recurring.frequency == data.recurring:
            rule = recurring
        else:
            rule = RecurrenceRule(frequency=data.recurring, last_processed=data.date)

    try:
        return Transaction(
            id=transaction_id or uuid4(),
            kind=data.kind,
            amount=data.amount,
            category=data.category,
            sub_category=data.sub_category,
            date=data.date,
            note=data.note,
            fuel_linked=fuel_linked,
            litres=data.litres if fuel_linked else None,
            recurring=rule,
        )
    except ValidationError as e:
        raise _from_pydantic(e)


def validate_loan(
    data: LoanInput,
    loan_id: Optional[UUID] = None,
    payments: Optional[list[LoanPayment]] = None,
) -> Loan:
    """
    Build a Loan from form input, keeping any existing payments.

    Raises:
        ValidationFailure: On a missing name or principal
    """
    issues: list[ValidationIssue] = []
    if not data.name.strip():
        issues.append(_issue("name", "missing", "Loan name is required"))
    if data.amount is None:
        issues.append(_issue("amount", "missing", "Loan amount is required"))
    elif data.amount <= 0:
        issues.append(_issue("amount", "invalid_value", "Loan amount must be greater than zero"))
    _require_non_negative(issues, "interest_rate", data.interest_rate)
    if data.tenure is not None and data.tenure <= 0:
        issues.append(_issue("tenure", "invalid_value", "Tenure must be at least one period"))
    if issues:
        raise ValidationFailure(issues)

    try:
        return Loan(
            id=loan_id or uuid4(),
            name=data.name,
            amount=data.amount,
            direction=data.direction,
            category=data.category,
            interest_rate=data.interest_rate or Decimal("0"),
            tenure=data.tenure,
            payment_frequency=data.payment_frequency,
            payments=payments or [],
            date=data.date,
        )
    except ValidationError as e:
        raise _from_pydantic(e)


def validate_vehicle(
    capacity: Decimal,
    consumption_rate: Decimal,
    fuel_unit_cost: Decimal = Decimal("0"),
    current_fuel: Decimal = Decimal("0"),
    currency: str = "₹",
) -> VehicleSettings:
    """
    Build vehicle settings, clamping current fuel into the tank.

    Raises:
        ValidationFailure: If capacity or consumption rate is not
            positive, or the unit cost is negative
    """
    issues: list[ValidationIssue] = []
    if capacity <= 0:
        issues.append(_issue("capacity", "invalid_value", "Tank capacity must be positive"))
    if consumption_rate <= 0:
        issues.append(_issue(
            "consumption_rate",
            "invalid_value",
            "Consumption rate must be positive",
        ))
    _require_non_negative(issues, "fuel_unit_cost", fuel_unit_cost)
    if issues:
        raise ValidationFailure(issues)

    try:
        return VehicleSettings(
            capacity=capacity,
            current_fuel=current_fuel,
            consumption_rate=consumption_rate,
            fuel_unit_cost=fuel_unit_cost,
            currency=currency,
        )
    except ValidationError as e:
        raise _from_pydantic(e)
