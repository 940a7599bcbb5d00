"""Debt repayment tracking kept in the local store.

Each debt carries its own payment history. Recording a payment lowers the
current balance (never below zero) and a balance of zero marks the debt as
paid off. Paid-off debts are kept at the end of the list.
"""
from datetime import datetime
from typing import List, Optional, Union

from config import LOCAL_KEYS, get_logger
from config.exceptions import ValidationError
from ledger.models import (
    DateLike,
    Debt,
    DebtPayment,
    DebtType,
    PaymentFrequency,
    parse_timestamp,
)
from storage.collection_store import CollectionStore
from storage.local_store import LocalStore

logger = get_logger(__name__)


def _enum_value(value: Union[PaymentFrequency, DebtType, str]) -> str:
    return value.value if isinstance(value, (PaymentFrequency, DebtType)) else str(value)


def _parse_date(value: Optional[DateLike], name: str) -> Optional[datetime]:
    try:
        return parse_timestamp(value)
    except (ValueError, OverflowError):
        raise ValidationError(f"{name} is not a valid date", {name: value})


def _non_negative(value, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number", {name: value})
    if number < 0:
        raise ValidationError(f"{name} must not be negative", {name: value})
    return number


class DebtTracker(CollectionStore[Debt]):
    """Debts collection with payment recording and totals."""

    def __init__(self, local_store: LocalStore):
        super().__init__(local_store, LOCAL_KEYS.DEBTS, Debt.from_dict)

    def _get(self, debt_id: str) -> Debt:
        debt = self.find(debt_id)
        if debt is None:
            raise ValidationError("Unknown debt", {"id": debt_id})
        return debt

    def _paid_off_last(self, debts: List[Debt]) -> List[Debt]:
        return [d for d in debts if not d.is_paid_off] + [d for d in debts if d.is_paid_off]

    def add_debt(self, name: str, lender: str, initial_amount: float, minimum_payment: float,
                 next_due_date: DateLike,
                 payment_frequency: Union[PaymentFrequency, str] = PaymentFrequency.MONTHLY,
                 debt_type: Union[DebtType, str] = DebtType.CREDIT_CARD,
                 current_balance: Optional[float] = None,
                 interest_rate: Optional[float] = None,
                 start_date: Optional[DateLike] = None,
                 notes: Optional[str] = None,
                 now: Optional[datetime] = None) -> Debt:
        """Add a debt ahead of the other active debts.

        ``current_balance`` defaults to ``initial_amount``.

        Raises:
            ValidationError: If required fields are missing or amounts are invalid
        """
        name = (name or "").strip()
        lender = (lender or "").strip()
        if not name or not lender:
            raise ValidationError("A debt needs a name and a lender")

        due = _parse_date(next_due_date, "next_due_date")
        if due is None:
            raise ValidationError("A debt needs a next due date")

        initial = _non_negative(initial_amount, "initial_amount")
        balance = initial if current_balance is None else _non_negative(current_balance, "current_balance")
        rate = None if interest_rate is None else _non_negative(interest_rate, "interest_rate")

        now = now or datetime.now()
        debt = Debt(
            id=self.next_id(now),
            name=name,
            lender=lender,
            initial_amount=initial,
            current_balance=balance,
            interest_rate=rate,
            minimum_payment=_non_negative(minimum_payment, "minimum_payment"),
            payment_frequency=_enum_value(payment_frequency),
            next_due_date=due,
            debt_type=_enum_value(debt_type),
            start_date=_parse_date(start_date, "start_date"),
            notes=notes,
            payments=[],
            created_at=now,
            is_paid_off=False,
        )
        self.replace_all([debt] + self._paid_off_last(self.items))
        logger.debug(f"Added debt {debt.id} ({debt.name})")
        return debt

    def delete_debt(self, debt_id: str) -> bool:
        remaining = [d for d in self.items if d.id != debt_id]
        if len(remaining) == len(self.items):
            logger.warning(f"Delete requested for unknown debt {debt_id}")
            return False
        self.replace_all(remaining)
        return True

    def add_payment(self, debt_id: str, amount: float,
                    payment_date: Optional[DateLike] = None,
                    notes: Optional[str] = None,
                    now: Optional[datetime] = None) -> Debt:
        """Record a payment against a debt.

        Raises:
            ValidationError: If the debt is unknown or the amount is not positive
        """
        debt = self._get(debt_id)
        try:
            paid = float(amount)
        except (TypeError, ValueError):
            raise ValidationError("Payment amount must be a number", {"amount": amount})
        if not paid > 0:
            raise ValidationError("Payment amount must be positive", {"amount": amount})

        now = now or datetime.now()
        payment = DebtPayment(
            id=str(int(now.timestamp() * 1000)),
            payment_date=_parse_date(payment_date, "payment_date") or now,
            amount_paid=paid,
            notes=notes,
        )
        debt.payments.append(payment)
        debt.current_balance = max(0.0, debt.current_balance - paid)
        if debt.current_balance == 0:
            debt.is_paid_off = True

        self.save()
        logger.debug(f"Payment of {paid} recorded on debt {debt_id}")
        return debt

    def mark_as_paid(self, debt_id: str) -> Debt:
        """Close a debt: zero balance, moved behind the active debts."""
        debt = self._get(debt_id)
        debt.is_paid_off = True
        debt.current_balance = 0.0
        self.replace_all(self._paid_off_last(self.items))
        return debt

    @property
    def active_debts(self) -> List[Debt]:
        return [d for d in self.items if not d.is_paid_off]

    @property
    def paid_debts(self) -> List[Debt]:
        return [d for d in self.items if d.is_paid_off]

    @property
    def total_remaining_debt(self) -> float:
        return sum(d.current_balance for d in self.active_debts)

    def total_minimum_payment(self, frequency: Union[PaymentFrequency, str] = PaymentFrequency.MONTHLY) -> float:
        """Sum of minimum payments of active debts due at ``frequency``."""
        wanted = _enum_value(frequency)
        return sum(d.minimum_payment for d in self.active_debts if d.payment_frequency == wanted)
