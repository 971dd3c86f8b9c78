"""
Trade Entity - A position opened against a portfolio balance
"""

# Standard library imports
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from ..constants import MONEY_QUANTUM, ONE, QUANTITY_QUANTUM
from ..exceptions import InvalidTradeStateError


class TradeDirection(Enum):
    """Trade direction enumeration"""

    BUY = "buy"  # long
    SELL = "sell"  # short

    @property
    def multiplier(self) -> int:
        """+1 for longs, -1 for shorts."""
        return 1 if self is TradeDirection.BUY else -1


class TradeStatus(Enum):
    """Trade status enumeration"""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_open(self) -> bool:
        return self in (TradeStatus.PENDING, TradeStatus.ACTIVE)


@dataclass
class Trade:
    """
    Trade entity representing a single leveraged position.

    ``amount`` is the principal debited at open and credited back at close.
    A trade built without one recovers it from
    ``entry_price * quantity / leverage``. Once completed, exit price,
    realized P&L and close time are set and the trade refuses any further
    transition.
    """

    # Required fields (must come first for dataclass)
    user_id: UUID
    portfolio_id: UUID
    symbol: str
    direction: TradeDirection
    entry_price: Decimal
    quantity: Decimal

    # Identity
    id: UUID = field(default_factory=uuid4)

    status: TradeStatus = TradeStatus.ACTIVE
    leverage: Decimal = ONE
    amount: Decimal | None = None
    is_demo: bool = False

    # Risk thresholds, informational only
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None

    # Close details, all None until completed
    exit_price: Decimal | None = None
    realized_pnl: Decimal | None = None
    closed_at: datetime | None = None

    # Timestamps
    expires_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    ai_recommended: bool = False

    def __post_init__(self) -> None:
        """Validate trade after initialization"""
        if isinstance(self.direction, str):
            self.direction = TradeDirection(self.direction)
        if isinstance(self.status, str):
            self.status = TradeStatus(self.status)
        if self.amount is None and self.leverage > 0:
            self.amount = (self.entry_price * self.quantity / self.leverage).quantize(MONEY_QUANTUM)
        self._validate()

    def _validate(self) -> None:
        if not self.symbol:
            raise ValueError("Trade symbol cannot be empty")
        if self.quantity <= 0:
            raise ValueError("Quantity must be positive")
        if self.entry_price <= 0:
            raise ValueError("Entry price must be positive")
        if self.leverage < ONE:
            raise ValueError("Leverage must be at least 1")
        if self.amount is None or self.amount <= 0:
            raise ValueError("Amount must be positive")

        closed_fields = (self.exit_price, self.realized_pnl, self.closed_at)
        if self.status.is_open and any(value is not None for value in closed_fields):
            raise ValueError("Open trade cannot carry exit price, realized P&L or close time")
        if self.status == TradeStatus.COMPLETED and any(value is None for value in closed_fields):
            raise ValueError("Completed trade requires exit price, realized P&L and close time")

    @classmethod
    def open(
        cls,
        user_id: UUID,
        portfolio_id: UUID,
        symbol: str,
        direction: TradeDirection,
        amount: Decimal,
        entry_price: Decimal,
        leverage: Decimal = ONE,
        is_demo: bool = False,
        quantity: Decimal | None = None,
        stop_loss: Decimal | None = None,
        take_profit: Decimal | None = None,
        expires_at: datetime | None = None,
        ai_recommended: bool = False,
    ) -> "Trade":
        """Factory method to open a new active trade.

        ``quantity`` defaults to ``amount * leverage / entry_price``. Amount,
        entry price and quantity are rounded to the scale they are stored at,
        so a trade read back from storage carries the same values.
        """
        if amount <= 0:
            raise ValueError("Amount must be positive")
        if entry_price <= 0:
            raise ValueError("Entry price must be positive")

        amount = amount.quantize(MONEY_QUANTUM)
        entry_price = entry_price.quantize(MONEY_QUANTUM)
        if quantity is None:
            quantity = amount * leverage / entry_price
        quantity = quantity.quantize(QUANTITY_QUANTUM)

        return cls(
            user_id=user_id,
            portfolio_id=portfolio_id,
            symbol=symbol,
            direction=direction,
            entry_price=entry_price,
            quantity=quantity,
            leverage=leverage,
            amount=amount,
            is_demo=is_demo,
            stop_loss=stop_loss,
            take_profit=take_profit,
            expires_at=expires_at,
            ai_recommended=ai_recommended,
        )

    @property
    def principal(self) -> Decimal:
        """The amount committed at open."""
        return self.amount

    @property
    def notional(self) -> Decimal:
        """Position size at entry: entry price times quantity."""
        return self.entry_price * self.quantity

    def is_active(self) -> bool:
        return self.status == TradeStatus.ACTIVE

    def is_closed(self) -> bool:
        return not self.status.is_open

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the trade's expiry has passed."""
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at

    def is_stop_loss_hit(self, price: Decimal) -> bool:
        """Check if price has crossed the stop loss"""
        if self.stop_loss is None:
            return False
        if self.direction is TradeDirection.BUY:
            return price <= self.stop_loss
        return price >= self.stop_loss

    def is_take_profit_hit(self, price: Decimal) -> bool:
        """Check if price has crossed the take profit"""
        if self.take_profit is None:
            return False
        if self.direction is TradeDirection.BUY:
            return price >= self.take_profit
        return price <= self.take_profit

    def complete(self, exit_price: Decimal, realized_pnl: Decimal, closed_at: datetime) -> None:
        """
        Move an active trade to completed.

        Raises:
            InvalidTradeStateError: If the trade is not active
        """
        if not self.is_active():
            raise InvalidTradeStateError(self.id, self.status.value)
        if exit_price <= 0:
            raise ValueError("Exit price must be positive")

        self.exit_price = exit_price
        self.realized_pnl = realized_pnl
        self.closed_at = closed_at
        self.status = TradeStatus.COMPLETED

    def __str__(self) -> str:
        pnl_str = f", Realized P&L: {self.realized_pnl}" if self.realized_pnl is not None else ""
        return (
            f"Trade({self.symbol}: {self.direction.value.upper()} {self.quantity} "
            f"@ {self.entry_price} - {self.status.value.upper()}{pnl_str})"
        )
