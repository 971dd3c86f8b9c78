"""
Trade valuation - mark-to-market P&L for open trades.

Valuation is a pure calculation: it never touches persistence and never waits
for a fresher price. When no mark is available the trade is valued at its own
entry price so a display always has a number (zero P&L).
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from ..constants import HUNDRED, MONEY_QUANTUM, ZERO
from ..entities.trade import Trade


@dataclass(frozen=True)
class Valuation:
    """Unrealized P&L of a trade at a given mark."""

    trade_id: UUID
    mark_price: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_percent: Decimal
    mark_available: bool = True
    stop_loss_hit: bool = False
    take_profit_hit: bool = False

    @property
    def is_profit(self) -> bool:
        return self.unrealized_pnl >= 0


class TradeValuator:
    """Computes unrealized P&L for trades."""

    @staticmethod
    def pnl_at(trade: Trade, price: Decimal) -> Decimal:
        """(price - entry) * quantity, sign-flipped for shorts, in ledger units."""
        pnl = (price - trade.entry_price) * trade.quantity * trade.direction.multiplier
        return pnl.quantize(MONEY_QUANTUM)

    @classmethod
    def valuate(cls, trade: Trade, mark_price: Decimal | None) -> Valuation:
        """
        Value a trade at the given mark price.

        Args:
            trade: Trade to value
            mark_price: Latest observed price, or None if never received

        Returns:
            Valuation with absolute and percentage unrealized P&L
        """
        mark_available = mark_price is not None
        price = mark_price if mark_price is not None else trade.entry_price

        pnl = cls.pnl_at(trade, price)
        notional = trade.notional
        pnl_percent = pnl / notional * HUNDRED if notional else ZERO

        return Valuation(
            trade_id=trade.id,
            mark_price=price,
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl_percent,
            mark_available=mark_available,
            stop_loss_hit=mark_available and trade.is_stop_loss_hit(price),
            take_profit_hit=mark_available and trade.is_take_profit_hit(price),
        )
