"""Transaction Entity - Deposits and withdrawals against a portfolio balance"""

import secrets
import string
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference_id(kind: TransactionType, is_demo: bool, now: datetime | None = None) -> str:
    """Build a reference such as ``DEMO-DEP-1718000000000-X7K2QP``."""
    prefix = "DEMO" if is_demo else "DANA"
    code = "DEP" if kind is TransactionType.DEPOSIT else "WTH"
    millis = int((now or datetime.now(UTC)).timestamp() * 1000)
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(6))
    return f"{prefix}-{code}-{millis}-{suffix}"


@dataclass
class Transaction:
    """A deposit or withdrawal record.

    Transactions sit beside the trade lifecycle: they move the same balance
    fields through the ledger but never touch trades.
    """

    user_id: UUID
    portfolio_id: UUID
    type: TransactionType
    amount: Decimal
    is_demo: bool

    id: UUID = field(default_factory=uuid4)
    method: str = "DANA"
    status: TransactionStatus = TransactionStatus.PENDING
    reference_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if isinstance(self.type, str):
            self.type = TransactionType(self.type)
        if isinstance(self.status, str):
            self.status = TransactionStatus(self.status)
        if self.amount <= 0:
            raise ValueError("Transaction amount must be positive")
        if self.reference_id is None:
            self.reference_id = generate_reference_id(self.type, self.is_demo, self.created_at)

    def mark_succeeded(self, completed_at: datetime | None = None) -> None:
        self.status = TransactionStatus.SUCCESS
        self.completed_at = completed_at or datetime.now(UTC)

    def mark_failed(self) -> None:
        self.status = TransactionStatus.FAILED
        self.completed_at = None
