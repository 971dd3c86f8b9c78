"""Portfolio Entity - Balances a user's trades are committed from and returned to"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from ..constants import ZERO
from ..exceptions import InsufficientBalanceError


@dataclass
class Portfolio:
    """Pure domain entity for portfolio balances.

    A portfolio keeps two independent available balances: ``balance`` for real
    funds and ``demo_balance`` for simulated funds. A trade's ``is_demo`` flag
    decides which one it debits on open and credits on close. The lifecycle
    operates against the user's default portfolio.
    """

    # Identity
    user_id: UUID
    id: UUID = field(default_factory=uuid4)
    name: str = "Default Portfolio"

    # Balances
    balance: Decimal = ZERO
    demo_balance: Decimal = ZERO
    total_realized_pnl: Decimal = ZERO

    is_default: bool = True

    # Timestamps
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    version: int = 1

    def __post_init__(self) -> None:
        """Validate portfolio after initialization"""
        self.balance = Decimal(str(self.balance))
        self.demo_balance = Decimal(str(self.demo_balance))
        self.total_realized_pnl = Decimal(str(self.total_realized_pnl))
        self._validate()

    def _validate(self) -> None:
        if self.balance < 0:
            raise ValueError("Balance cannot be negative")
        if self.demo_balance < 0:
            raise ValueError("Demo balance cannot be negative")

    def increment_version(self) -> None:
        """Increment version for optimistic locking."""
        self.version += 1
        self.updated_at = datetime.now(UTC)

    def balance_for(self, is_demo: bool) -> Decimal:
        """Get the available balance a trade with this demo flag draws on."""
        return self.demo_balance if is_demo else self.balance

    def debit(self, is_demo: bool, amount: Decimal) -> None:
        """Decrease the targeted balance field.

        Raises:
            ValueError: If amount is not positive
            InsufficientBalanceError: If amount exceeds the targeted balance
        """
        if amount <= 0:
            raise ValueError("Debit amount must be positive")

        available = self.balance_for(is_demo)
        if amount > available:
            raise InsufficientBalanceError(self.id, amount, available, is_demo)

        if is_demo:
            self.demo_balance = available - amount
        else:
            self.balance = available - amount
        self.increment_version()

    def credit(self, is_demo: bool, amount: Decimal, realized_pnl_delta: Decimal = ZERO) -> None:
        """Increase the targeted balance field and accumulate realized P/L.

        Credits never fail on value grounds. A losing trade whose loss exceeds
        its principal brings a negative amount, floored at zero so the balance
        cannot go negative. ``total_realized_pnl`` still takes the full delta.
        """
        new_balance = max(self.balance_for(is_demo) + amount, ZERO)
        if is_demo:
            self.demo_balance = new_balance
        else:
            self.balance = new_balance
        self.total_realized_pnl += realized_pnl_delta
        self.increment_version()

    def __str__(self) -> str:
        return (
            f"Portfolio(id={self.id}, balance={self.balance}, "
            f"demo_balance={self.demo_balance}, realized_pnl={self.total_realized_pnl})"
        )
