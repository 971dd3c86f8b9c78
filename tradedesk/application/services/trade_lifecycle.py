"""
Trade Lifecycle - Open, value and close trades against the position ledger.

Opening debits the principal and inserts an active trade; closing credits the
principal plus realized P&L and completes the trade. Each pair runs inside a
single unit of work. Events go out only after the commit.
"""

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from tradedesk.application.interfaces.exceptions import PortfolioNotFoundError, TradeNotFoundError
from tradedesk.application.interfaces.notifications import (
    ITradeEventPublisher,
    TradeEvent,
    TradeEventType,
)
from tradedesk.application.interfaces.price_feed import IPriceFeed, Mark, normalize_symbol
from tradedesk.application.interfaces.unit_of_work import IUnitOfWorkFactory
from tradedesk.domain.constants import MONEY_QUANTUM, ONE
from tradedesk.domain.entities.trade import Trade, TradeDirection
from tradedesk.domain.exceptions import InvalidTradeStateError, NoMarketDataError
from tradedesk.domain.services.trade_valuation import TradeValuator, Valuation

from .position_ledger import PositionLedger

logger = logging.getLogger(__name__)


@dataclass
class OpenPositionCommand:
    """Parameters for opening a trade."""

    user_id: UUID
    portfolio_id: UUID
    symbol: str
    direction: TradeDirection
    amount: Decimal
    is_demo: bool
    leverage: Decimal = ONE
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    expires_at: datetime | None = None
    quantity: Decimal | None = None
    ai_recommended: bool = False


class TradeLifecycle:
    """Owns the trade state machine and its balance reconciliation."""

    def __init__(
        self,
        unit_of_work_factory: IUnitOfWorkFactory,
        price_feed: IPriceFeed,
        ledger: PositionLedger | None = None,
        event_publisher: ITradeEventPublisher | None = None,
    ) -> None:
        self.unit_of_work_factory = unit_of_work_factory
        self.price_feed = price_feed
        self.ledger = ledger or PositionLedger(unit_of_work_factory)
        self.event_publisher = event_publisher

    async def open_position(self, command: OpenPositionCommand) -> Trade:
        """
        Open a trade at the latest mark.

        Args:
            command: What to open and against which balance

        Returns:
            The active trade

        Raises:
            NoMarketDataError: If no mark was ever received for the symbol
            PortfolioNotFoundError: If the portfolio does not exist
            InsufficientBalanceError: If the amount exceeds the targeted balance
        """
        symbol = normalize_symbol(command.symbol)
        mark = self.price_feed.get_latest(symbol)
        if mark is None:
            raise NoMarketDataError(symbol)

        trade = Trade.open(
            user_id=command.user_id,
            portfolio_id=command.portfolio_id,
            symbol=symbol,
            direction=command.direction,
            amount=command.amount,
            entry_price=mark.price,
            leverage=command.leverage,
            is_demo=command.is_demo,
            quantity=command.quantity,
            stop_loss=command.stop_loss,
            take_profit=command.take_profit,
            expires_at=command.expires_at,
            ai_recommended=command.ai_recommended,
        )

        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            portfolio = await uow.portfolios.get_portfolio_by_id(command.portfolio_id)
            if portfolio is None:
                raise PortfolioNotFoundError(command.portfolio_id)

            await self.ledger.debit(
                command.portfolio_id, command.is_demo, trade.principal, uow=uow
            )
            trade = await uow.trades.save_trade(trade)

        logger.info(
            f"Opened {trade.direction.value} {trade.symbol} trade {trade.id}: "
            f"{trade.quantity} @ {trade.entry_price} (amount {trade.principal}, "
            f"leverage {trade.leverage}, demo={trade.is_demo})"
        )
        await self._publish(TradeEvent(TradeEventType.OPENED, trade))
        return trade

    def valuate(self, trade: Trade, mark: Mark | Decimal | None) -> Valuation:
        """Compute unrealized P&L of a trade at a mark, or at entry when there is none."""
        price = mark.price if isinstance(mark, Mark) else mark
        return TradeValuator.valuate(trade, price)

    async def close_position(
        self,
        trade: Trade,
        exit_price: Decimal,
        reason: str = "manual",
        closed_at: datetime | None = None,
    ) -> Trade:
        """
        Close an active trade at the given price.

        Args:
            trade: Trade to close
            exit_price: Price the trade is closed at
            reason: Why the trade is closed, carried on the event
            closed_at: Close time, defaults to now

        Returns:
            The completed trade

        Raises:
            InvalidTradeStateError: If the trade is not active, either in
                memory or at write time
        """
        if not trade.is_active():
            raise InvalidTradeStateError(trade.id, trade.status.value)

        exit_price = exit_price.quantize(MONEY_QUANTUM)
        realized_pnl = TradeValuator.pnl_at(trade, exit_price)
        entry_amount = trade.principal

        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            await self.ledger.credit(
                trade.portfolio_id,
                trade.is_demo,
                entry_amount + realized_pnl,
                realized_pnl,
                uow=uow,
            )
            # Complete a copy so a rolled back close leaves the caller's trade active
            closing = replace(trade)
            closing.complete(exit_price, realized_pnl, closed_at or datetime.now(UTC))
            completed = await uow.trades.complete_trade(closing)

        trade.complete(completed.exit_price, completed.realized_pnl, completed.closed_at)

        logger.info(
            f"Closed trade {trade.id} ({reason}) at {exit_price}: "
            f"realized P&L {realized_pnl}, returned {entry_amount + realized_pnl}"
        )
        await self._publish(TradeEvent(TradeEventType.CLOSED, trade, reason=reason))
        return trade

    async def close_at_market(self, trade_id: UUID, reason: str = "manual") -> Trade:
        """
        Close a trade at the latest mark, or at its entry price when no mark exists.

        Raises:
            TradeNotFoundError: If the trade does not exist
            InvalidTradeStateError: If the trade is not active
        """
        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            trade = await uow.trades.get_trade_by_id(trade_id)
        if trade is None:
            raise TradeNotFoundError(trade_id)

        mark = self.price_feed.get_latest(trade.symbol)
        if mark is None:
            logger.warning(
                f"No mark for {trade.symbol}, closing trade {trade.id} at entry price"
            )
            exit_price = trade.entry_price
        else:
            exit_price = mark.price

        return await self.close_position(trade, exit_price, reason=reason)

    async def _publish(self, event: TradeEvent) -> None:
        if self.event_publisher is None:
            return
        await self.event_publisher.publish(event)
