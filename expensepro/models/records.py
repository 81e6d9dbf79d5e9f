"""
Core Record Models for ExpensePro

These models define the schemas of the three record collections the
engine keeps consistent: ledger transactions, loans and delivery sessions.
They are designed to:
1. Enforce type safety at runtime
2. Keep amounts exact (Decimal, never float)
3. Be serializable for storage and backup
4. Carry the markers the engine relies on (ledger reference,
   recurrence marker, loan status)

DESIGN DECISION: Loan status is DERIVED, never set by hand.
Every time a Loan is validated its status is recomputed from its payments,
so `cleared` holds exactly when the payments cover the principal.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of a ledger transaction."""
    EXPENSE = "expense"
    INCOME = "income"


class Frequency(str, Enum):
    """How often a recurring transaction repeats."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class LoanDirection(str, Enum):
    """Whether money was lent out or borrowed."""
    GIVEN = "given"
    TAKEN = "taken"


class LoanCategory(str, Enum):
    """
    Loan category.

    PEER loans (friends, family) never carry interest, tenure or a
    payment schedule. COMMERCIAL loans do and are checked for due dates.
    """
    PEER = "peer"
    COMMERCIAL = "commercial"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    CLEARED = "cleared"


class PaymentFrequency(str, Enum):
    """Repayment schedule of a commercial loan."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Category catalogue: category -> (kind, sub-categories)
CATEGORIES: dict[str, tuple[TransactionKind, list[str]]] = {
    "Transport": (TransactionKind.EXPENSE, ["Fuel", "Tolls", "Parking", "Maintenance"]),
    "Food": (TransactionKind.EXPENSE, ["Groceries", "Dining Out", "Snacks", "Tea / Coffee"]),
    "Bills": (TransactionKind.EXPENSE, ["Electricity", "Mobile", "Internet", "Gas"]),
    "Income": (
        TransactionKind.INCOME,
        ["Salary", "Refund", "Reimbursement", "Bonus", "Misc Income"],
    ),
    "Others": (TransactionKind.EXPENSE, ["Misc", "Shopping", "Health"]),
}

FUEL_CATEGORY = "Transport"
FUEL_SUB_CATEGORY = "Fuel"


def is_fuel_purchase(category: str, sub_category: str) -> bool:
    """True when a category pair designates a fuel purchase."""
    return category == FUEL_CATEGORY and sub_category == FUEL_SUB_CATEGORY


# =============================================================================
# TRANSACTIONS
# =============================================================================

class RecurrenceRule(BaseModel):
    """
    Recurrence descriptor attached to a transaction.

    `last_processed` is the catch-up marker: it only ever moves forward
    and never passes the current date.

    Occurrences emitted by the scheduler keep a copy of the rule for
    display, with `occurrence_of` pointing at their template. Only rules
    where `occurrence_of` is None are treated as templates.
    """

    frequency: Frequency
    last_processed: date
    occurrence_of: Optional[UUID] = Field(
        default=None,
        description="Template this occurrence was generated from"
    )

    @property
    def is_template(self) -> bool:
        return self.occurrence_of is None


class Transaction(BaseModel):
    """A general ledger entry (expense or income)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    kind: TransactionKind
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in the configured currency"
    )
    category: str = Field(..., min_length=1, max_length=50)
    sub_category: str = Field(default="", max_length=50)
    date: date
    note: str = Field(default="", max_length=500)

    # Fuel linkage
    fuel_linked: bool = Field(
        default=False,
        description="Does this transaction put fuel in the tank?"
    )
    litres: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Litres purchased (fuel-linked transactions only)"
    )

    recurring: Optional[RecurrenceRule] = None

    # Settlement tagging (set only on payout entries)
    settled_sessions: list[UUID] = Field(
        default_factory=list,
        description="Delivery sessions folded into this payout entry"
    )
    settlement_scope: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Scope label of the payout (e.g. 'all', 'weekly')"
    )

    @model_validator(mode='after')
    def drop_unlinked_litres(self) -> 'Transaction':
        """Litres only mean something on fuel-linked transactions."""
        if not self.fuel_linked:
            self.litres = None
        return self

    @property
    def fuel_litres(self) -> Decimal:
        """Litres this transaction contributes to the tank."""
        if self.fuel_linked and self.litres is not None:
            return self.litres
        return Decimal("0")

    @property
    def is_recurring_template(self) -> bool:
        return self.recurring is not None and self.recurring.is_template

    @property
    def is_settlement(self) -> bool:
        return bool(self.settled_sessions)


# =============================================================================
# LOANS
# =============================================================================

class LoanPayment(BaseModel):
    """A single repayment against a loan."""

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(..., gt=0)
    date: date


class Loan(BaseModel):
    """
    A peer-to-peer or commercial loan.

    Status is recomputed on every validation:
    cleared iff sum(payments) >= amount.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Principal amount"
    )
    direction: LoanDirection
    category: LoanCategory = LoanCategory.PEER
    interest_rate: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Interest in percent per period"
    )
    tenure: Optional[int] = Field(
        default=None,
        gt=0,
        description="Number of repayment periods"
    )
    payment_frequency: Optional[PaymentFrequency] = None
    payments: list[LoanPayment] = Field(default_factory=list)
    date: date
    status: LoanStatus = LoanStatus.ACTIVE

    @model_validator(mode='after')
    def normalize(self) -> 'Loan':
        """Peer loans carry no terms; status always follows payments."""
        if self.category == LoanCategory.PEER:
            self.interest_rate = Decimal("0")
            self.tenure = None
            self.payment_frequency = None

        if self.total_paid >= self.amount:
            self.status = LoanStatus.CLEARED
        else:
            self.status = LoanStatus.ACTIVE
        return self

    @property
    def total_paid(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0"))

    @property
    def outstanding(self) -> Decimal:
        return max(Decimal("0"), self.amount - self.total_paid)


# =============================================================================
# DELIVERY SESSIONS
# =============================================================================

class DeliverySession(BaseModel):
    """
    One gig-delivery work session.

    `online_settlement` = reported total - cash collected, and may be
    negative (more cash was collected than the platform owes).
    `ledger_ref` is set exactly once, by the settlement poster.
    """

    id: UUID = Field(default_factory=uuid4)
    date: date
    cash_collected: Decimal = Field(default=Decimal("0"), ge=0)
    online_settlement: Decimal
    distance: Decimal = Field(..., ge=0)
    other_costs: Decimal = Field(default=Decimal("0"), ge=0)
    ledger_ref: Optional[UUID] = Field(
        default=None,
        description="Ledger transaction this session was posted in"
    )

    @property
    def reported_total(self) -> Decimal:
        """What the delivery app showed as total earnings."""
        return self.cash_collected + self.online_settlement

    @property
    def is_posted(self) -> bool:
        return self.ledger_ref is not None
