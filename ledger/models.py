"""Record types for the ledger.

Transactions live in the SQLite store; notes, debts and todos are kept as
whole JSON collections in the local store. The ``to_dict``/``from_dict``
pairs use the camelCase field names of the stored JSON so collections
written by the browser build load unchanged.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union

from dateutil import parser as date_parser


DateLike = Union[datetime, date, str]


class TransactionType(Enum):
    """Mutually exclusive transaction kinds."""
    INCOME = "income"
    EXPENSE = "expense"


class PaymentFrequency(Enum):
    """How often a debt's minimum payment is due."""
    MONTHLY = "Monthly"
    WEEKLY = "Weekly"
    BI_WEEKLY = "Bi-Weekly"
    ANNUALLY = "Annually"
    ONE_TIME = "One-time"


class DebtType(Enum):
    """Kinds of debt the tracker knows about."""
    CREDIT_CARD = "Credit Card"
    CONSUMER_LOAN = "Consumer Loan"
    MORTGAGE = "Mortgage"
    STUDENT_LOAN = "Student Loan"
    AUTO_LOAN = "Auto Loan"
    PERSONAL_DEBT = "Personal Debt"
    OTHER = "Other"


def parse_timestamp(value: Optional[DateLike]) -> Optional[datetime]:
    """Turn a stored date value back into a naive local datetime.

    Accepts datetimes, dates and ISO-8601 strings, including the
    ``2024-05-01T09:30:00.000Z`` form JavaScript writes. Aware values are
    converted to local time and stripped of tzinfo so every record compares.

    Raises:
        ValueError: If a string is not a parsable ISO-8601 timestamp.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        result = date_parser.isoparse(value)
    else:
        raise ValueError(f"Unsupported date value: {value!r}")

    if result.tzinfo is not None:
        result = result.astimezone().replace(tzinfo=None)
    return result


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for storage."""
    return value.isoformat() if value is not None else None


def new_record_id(now: Optional[datetime] = None) -> str:
    """Client-side identifier derived from the current time in milliseconds."""
    now = now or datetime.now()
    return str(int(now.timestamp() * 1000))


def _optional_float(value) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass
class Transaction:
    """A single income or expense entry.

    ``amount`` is always positive; the sign is implied by ``type``.
    """
    id: int
    date: datetime
    category: str
    amount: float
    type: str
    notes: Optional[str] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type == TransactionType.INCOME.value else -self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": format_timestamp(self.date),
            "category": self.category,
            "amount": self.amount,
            "type": self.type,
            "notes": self.notes,
        }

    @classmethod
    def from_row(cls, row) -> 'Transaction':
        return cls(
            id=row["id"],
            date=parse_timestamp(row["date"]),
            category=row["category"],
            amount=float(row["amount"]),
            type=row["type"],
            notes=row["notes"],
        )


@dataclass
class Note:
    """Free-form financial note, optionally describing an asset purchase."""
    id: str
    title: str
    content: str
    created_at: datetime
    asset_type: Optional[str] = None
    quantity: Optional[float] = None
    purchase_price: Optional[float] = None
    purchase_date: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "assetType": self.asset_type,
            "quantity": self.quantity,
            "purchasePrice": self.purchase_price,
            "purchaseDate": format_timestamp(self.purchase_date),
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Note':
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            content=data.get("content", ""),
            created_at=parse_timestamp(data["createdAt"]),
            asset_type=data.get("assetType") or None,
            quantity=_optional_float(data.get("quantity")),
            purchase_price=_optional_float(data.get("purchasePrice")),
            purchase_date=parse_timestamp(data.get("purchaseDate")),
        )


@dataclass
class DebtPayment:
    """A payment made towards a debt. Only exists inside its Debt."""
    id: str
    payment_date: datetime
    amount_paid: float
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "paymentDate": format_timestamp(self.payment_date),
            "amountPaid": self.amount_paid,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DebtPayment':
        return cls(
            id=str(data["id"]),
            payment_date=parse_timestamp(data["paymentDate"]),
            amount_paid=float(data["amountPaid"]),
            notes=data.get("notes"),
        )


@dataclass
class Debt:
    """A debt being paid down, with its payment history."""
    id: str
    name: str
    lender: str
    initial_amount: float
    current_balance: float
    minimum_payment: float
    payment_frequency: str
    next_due_date: datetime
    debt_type: str
    created_at: datetime
    interest_rate: Optional[float] = None
    start_date: Optional[datetime] = None
    notes: Optional[str] = None
    payments: List[DebtPayment] = field(default_factory=list)
    is_paid_off: bool = False

    @property
    def total_paid(self) -> float:
        return sum(p.amount_paid for p in self.payments)

    @property
    def progress_percent(self) -> float:
        """Share of the initial amount already paid off, 0-100."""
        if self.initial_amount <= 0:
            return 100.0 if self.is_paid_off else 0.0
        paid = self.initial_amount - self.current_balance
        return max(0.0, min(100.0, paid / self.initial_amount * 100))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "lender": self.lender,
            "initialAmount": self.initial_amount,
            "currentBalance": self.current_balance,
            "interestRate": self.interest_rate,
            "minimumPayment": self.minimum_payment,
            "paymentFrequency": self.payment_frequency,
            "nextDueDate": format_timestamp(self.next_due_date),
            "debtType": self.debt_type,
            "startDate": format_timestamp(self.start_date),
            "notes": self.notes,
            "payments": [p.to_dict() for p in self.payments],
            "createdAt": format_timestamp(self.created_at),
            "isPaidOff": self.is_paid_off,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Debt':
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            lender=data.get("lender", ""),
            initial_amount=float(data["initialAmount"]),
            current_balance=float(data["currentBalance"]),
            interest_rate=_optional_float(data.get("interestRate")),
            minimum_payment=float(data.get("minimumPayment", 0)),
            payment_frequency=data.get("paymentFrequency", PaymentFrequency.MONTHLY.value),
            next_due_date=parse_timestamp(data["nextDueDate"]),
            debt_type=data.get("debtType", DebtType.OTHER.value),
            start_date=parse_timestamp(data.get("startDate")),
            notes=data.get("notes"),
            payments=[DebtPayment.from_dict(p) for p in data.get("payments", [])],
            created_at=parse_timestamp(data["createdAt"]),
            is_paid_off=bool(data.get("isPaidOff", False)),
        )


@dataclass
class Todo:
    """A task on the to-do list."""
    id: str
    text: str
    created_at: datetime
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "isCompleted": self.is_completed,
            "createdAt": format_timestamp(self.created_at),
            "completedAt": format_timestamp(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Todo':
        return cls(
            id=str(data["id"]),
            text=data.get("text", ""),
            is_completed=bool(data.get("isCompleted", False)),
            created_at=parse_timestamp(data["createdAt"]),
            completed_at=parse_timestamp(data.get("completedAt")),
        )


@dataclass
class BackupInfo:
    """One snapshot as discovered by scanning both stores."""
    id: str
    created_at: datetime
    has_transactions: bool = False
    has_notes: bool = False
    has_debts: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.has_transactions or self.has_notes or self.has_debts)

    @property
    def artifacts(self) -> List[str]:
        """Names of the artifacts present in this snapshot."""
        present = []
        if self.has_transactions:
            present.append("transactions")
        if self.has_notes:
            present.append("notes")
        if self.has_debts:
            present.append("debts")
        return present
