"""
Loan Book

Payments and status for peer and commercial loans. Status is never
written directly: every change rebuilds the Loan through validation,
which recomputes `cleared` / `active` from the payments.
"""

import asyncio
import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional
from uuid import UUID

from expensepro.errors import RecordNotFound, ValidationFailure
from expensepro.logs import get_logger
from expensepro.models.records import (
    Loan,
    LoanCategory,
    LoanDirection,
    LoanPayment,
    LoanStatus,
    PaymentFrequency,
)
from expensepro.services.storage import Collection, RecordStore


class RepaymentPlan(NamedTuple):
    """Simple-interest repayment plan of a commercial loan."""
    total_interest: Decimal
    total_payable: Decimal
    per_period: Decimal


def repayment_plan(loan: Loan) -> Optional[RepaymentPlan]:
    """
    interest = P * R/100 * T, payable = P + interest, per period = payable / T.

    None for peer loans and loans without a tenure.
    """
    if loan.category != LoanCategory.COMMERCIAL or not loan.tenure:
        return None
    total_interest = loan.amount * loan.interest_rate / 100 * loan.tenure
    total_payable = loan.amount + total_interest
    return RepaymentPlan(total_interest, total_payable, total_payable / loan.tenure)


def with_payments(loan: Loan, payments: list[LoanPayment]) -> Loan:
    """Rebuild a loan with a new payment list; status follows."""
    return Loan.model_validate({**loan.model_dump(), "payments": payments})


def is_due_on(loan: Loan, today: date) -> bool:
    """
    Is a repayment of this active commercial loan due today?

    Monthly loans fall due on the origin day-of-month (clamped to the
    last day of shorter months); weekly loans on the origin weekday.
    """
    if loan.status != LoanStatus.ACTIVE or loan.category != LoanCategory.COMMERCIAL:
        return False
    if loan.payment_frequency == PaymentFrequency.MONTHLY:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return min(loan.date.day, last_day) == today.day
    if loan.payment_frequency == PaymentFrequency.WEEKLY:
        return loan.date.weekday() == today.weekday()
    return False


def outstanding_by_direction(loans: Iterable[Loan]) -> dict[LoanDirection, Decimal]:
    """Outstanding balance of active loans, per direction."""
    totals = {direction: Decimal("0") for direction in LoanDirection}
    for loan in loans:
        if loan.status == LoanStatus.ACTIVE:
            totals[loan.direction] += loan.outstanding
    return totals


class LoanBook:
    """Store-backed loan payment operations."""

    def __init__(self, store: RecordStore):
        self._store = store
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    async def _require(self, loan_id: UUID) -> Loan:
        loan = await self._store.get(Collection.LOANS, loan_id)
        if loan is None:
            raise RecordNotFound("Loan", loan_id)
        return loan

    async def add_payment(self, loan_id: UUID, amount: Decimal, paid_on: date) -> Loan:
        """
        Record a repayment.

        Raises:
            ValidationFailure: If the amount is not positive
            RecordNotFound: If the loan does not exist
        """
        if amount is None or amount <= 0:
            raise ValidationFailure.single(
                "amount", "invalid_value", "Payment amount must be greater than zero"
            )
        async with self._lock:
            loan = await self._require(loan_id)
            payment = LoanPayment(amount=amount, date=paid_on)
            updated = with_payments(loan, [*loan.payments, payment])
            await self._store.upsert(Collection.LOANS, updated)

        self._logger.info(
            "loan_payment_added",
            loan_id=str(loan_id),
            amount=str(amount),
            status=updated.status.value,
        )
        return updated

    async def remove_payment(self, loan_id: UUID, payment_id: UUID) -> Loan:
        """
        Remove a repayment; a cleared loan reverts to active if the
        remaining payments no longer cover the principal.

        Raises:
            RecordNotFound: If the loan or the payment does not exist
        """
        async with self._lock:
            loan = await self._require(loan_id)
            remaining = [p for p in loan.payments if p.id != payment_id]
            if len(remaining) == len(loan.payments):
                raise RecordNotFound("Payment", payment_id)
            updated = with_payments(loan, remaining)
            await self._store.upsert(Collection.LOANS, updated)

        self._logger.info(
            "loan_payment_removed",
            loan_id=str(loan_id),
            payment_id=str(payment_id),
            status=updated.status.value,
        )
        return updated
