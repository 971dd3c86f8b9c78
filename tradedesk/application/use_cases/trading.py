"""
Trading Use Cases

Caller-facing entry points for opening, valuing and closing trades. They
resolve the caller's portfolio, enforce ownership and turn lifecycle errors
into responses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from tradedesk.application.interfaces.exceptions import PortfolioNotFoundError, TradeNotFoundError
from tradedesk.application.interfaces.unit_of_work import IUnitOfWork, IUnitOfWorkFactory
from tradedesk.application.services.trade_lifecycle import OpenPositionCommand, TradeLifecycle
from tradedesk.domain.entities.portfolio import Portfolio
from tradedesk.domain.entities.trade import Trade, TradeDirection
from tradedesk.domain.services.trade_valuation import Valuation

from .base import UseCase, UseCaseResponse
from .base_request import AuthenticatedRequestDTO


async def resolve_portfolio(
    uow: IUnitOfWork, user_id: UUID, portfolio_id: UUID | None
) -> Portfolio:
    """Load the requested portfolio, or the user's default, owned by the user."""
    if portfolio_id is None:
        portfolio = await uow.portfolios.get_default_portfolio(user_id)
        if portfolio is None:
            raise PortfolioNotFoundError(f"default portfolio of user {user_id}")
        return portfolio

    portfolio = await uow.portfolios.get_portfolio_by_id(portfolio_id)
    # Another user's portfolio is reported as missing
    if portfolio is None or portfolio.user_id != user_id:
        raise PortfolioNotFoundError(portfolio_id)
    return portfolio


# Request/Response DTOs
@dataclass
class OpenPositionRequest(AuthenticatedRequestDTO):
    """Request to open a trade."""

    symbol: str
    direction: str  # "buy" or "sell"
    amount: Decimal
    is_demo: bool
    portfolio_id: UUID | None = None
    leverage: Decimal = Decimal("1")
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    expires_at: datetime | None = None
    ai_recommended: bool = False


@dataclass
class OpenPositionResponse(UseCaseResponse):
    """Response from opening a trade."""

    trade_id: UUID | None = None
    entry_price: Decimal | None = None
    quantity: Decimal | None = None
    remaining_balance: Decimal | None = None


@dataclass
class ClosePositionRequest(AuthenticatedRequestDTO):
    """Request to close a trade; without an exit price it closes at market."""

    trade_id: UUID
    exit_price: Decimal | None = None


@dataclass
class ClosePositionResponse(UseCaseResponse):
    """Response from closing a trade."""

    trade_id: UUID | None = None
    exit_price: Decimal | None = None
    realized_pnl: Decimal | None = None


@dataclass
class GetActiveTradesRequest(AuthenticatedRequestDTO):
    """Request for the caller's active trades with live P&L."""


@dataclass
class ValuedTrade:
    trade: Trade
    valuation: Valuation


@dataclass
class GetActiveTradesResponse(UseCaseResponse):
    """Active trades, newest first, each valued at the latest mark."""

    trades: list[ValuedTrade] = field(default_factory=list)
    total_unrealized_pnl: Decimal = Decimal("0")


@dataclass
class GetPortfolioRequest(AuthenticatedRequestDTO):
    """Request for a portfolio snapshot."""

    portfolio_id: UUID | None = None


@dataclass
class GetPortfolioResponse(UseCaseResponse):
    portfolio: Portfolio | None = None


class OpenPositionUseCase(UseCase[OpenPositionRequest, OpenPositionResponse]):
    """Opens a trade against the caller's portfolio at the latest mark."""

    def __init__(self, lifecycle: TradeLifecycle, unit_of_work_factory: IUnitOfWorkFactory):
        super().__init__("OpenPositionUseCase")
        self.lifecycle = lifecycle
        self.unit_of_work_factory = unit_of_work_factory

    async def validate(self, request: OpenPositionRequest) -> str | None:
        if not request.symbol:
            return "Symbol is required"

        if request.direction not in ("buy", "sell"):
            return f"Invalid direction: {request.direction}"

        if request.amount <= 0:
            return "Amount must be positive"

        if request.leverage < 1:
            return "Leverage must be at least 1"

        if request.stop_loss is not None and request.stop_loss <= 0:
            return "Stop loss must be positive"

        if request.take_profit is not None and request.take_profit <= 0:
            return "Take profit must be positive"

        return None

    async def process(self, request: OpenPositionRequest) -> OpenPositionResponse:
        user_id = request.require_user()

        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            portfolio = await resolve_portfolio(uow, user_id, request.portfolio_id)

        trade = await self.lifecycle.open_position(
            OpenPositionCommand(
                user_id=user_id,
                portfolio_id=portfolio.id,
                symbol=request.symbol,
                direction=TradeDirection(request.direction),
                amount=request.amount,
                is_demo=request.is_demo,
                leverage=request.leverage,
                stop_loss=request.stop_loss,
                take_profit=request.take_profit,
                expires_at=request.expires_at,
                ai_recommended=request.ai_recommended,
            )
        )
        snapshot = await self.lifecycle.ledger.read(portfolio.id)

        return OpenPositionResponse(
            success=True,
            trade_id=trade.id,
            entry_price=trade.entry_price,
            quantity=trade.quantity,
            remaining_balance=snapshot.balance_for(trade.is_demo),
            request_id=request.request_id,
        )

    def _create_error_response(
        self, error: str, request_id: UUID, error_code: str
    ) -> OpenPositionResponse:
        return OpenPositionResponse(
            success=False, error=error, error_code=error_code, request_id=request_id
        )


class ClosePositionUseCase(UseCase[ClosePositionRequest, ClosePositionResponse]):
    """Closes one of the caller's trades."""

    def __init__(self, lifecycle: TradeLifecycle, unit_of_work_factory: IUnitOfWorkFactory):
        super().__init__("ClosePositionUseCase")
        self.lifecycle = lifecycle
        self.unit_of_work_factory = unit_of_work_factory

    async def validate(self, request: ClosePositionRequest) -> str | None:
        if request.exit_price is not None and request.exit_price <= 0:
            return "Exit price must be positive"
        return None

    async def process(self, request: ClosePositionRequest) -> ClosePositionResponse:
        user_id = request.require_user()

        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            trade = await uow.trades.get_trade_by_id(request.trade_id)
        if trade is None or trade.user_id != user_id:
            raise TradeNotFoundError(request.trade_id)

        if request.exit_price is None:
            trade = await self.lifecycle.close_at_market(trade.id)
        else:
            trade = await self.lifecycle.close_position(trade, request.exit_price)

        return ClosePositionResponse(
            success=True,
            trade_id=trade.id,
            exit_price=trade.exit_price,
            realized_pnl=trade.realized_pnl,
            request_id=request.request_id,
        )

    def _create_error_response(
        self, error: str, request_id: UUID, error_code: str
    ) -> ClosePositionResponse:
        return ClosePositionResponse(
            success=False, error=error, error_code=error_code, request_id=request_id
        )


class GetActiveTradesUseCase(UseCase[GetActiveTradesRequest, GetActiveTradesResponse]):
    """Lists the caller's active trades valued at the latest marks."""

    def __init__(self, lifecycle: TradeLifecycle, unit_of_work_factory: IUnitOfWorkFactory):
        super().__init__("GetActiveTradesUseCase")
        self.lifecycle = lifecycle
        self.unit_of_work_factory = unit_of_work_factory

    async def validate(self, request: GetActiveTradesRequest) -> str | None:
        return None

    async def process(self, request: GetActiveTradesRequest) -> GetActiveTradesResponse:
        user_id = request.require_user()

        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            trades = await uow.trades.get_active_trades(user_id)

        valued = [
            ValuedTrade(
                trade=trade,
                valuation=self.lifecycle.valuate(
                    trade, self.lifecycle.price_feed.get_latest(trade.symbol)
                ),
            )
            for trade in trades
        ]
        return GetActiveTradesResponse(
            success=True,
            trades=valued,
            total_unrealized_pnl=sum(
                (item.valuation.unrealized_pnl for item in valued), Decimal("0")
            ),
            request_id=request.request_id,
        )

    def _create_error_response(
        self, error: str, request_id: UUID, error_code: str
    ) -> GetActiveTradesResponse:
        return GetActiveTradesResponse(
            success=False, error=error, error_code=error_code, request_id=request_id
        )


class GetPortfolioUseCase(UseCase[GetPortfolioRequest, GetPortfolioResponse]):
    """Returns a snapshot of the caller's portfolio balances."""

    def __init__(self, unit_of_work_factory: IUnitOfWorkFactory):
        super().__init__("GetPortfolioUseCase")
        self.unit_of_work_factory = unit_of_work_factory

    async def validate(self, request: GetPortfolioRequest) -> str | None:
        return None

    async def process(self, request: GetPortfolioRequest) -> GetPortfolioResponse:
        user_id = request.require_user()
        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            portfolio = await resolve_portfolio(uow, user_id, request.portfolio_id)
        return GetPortfolioResponse(success=True, portfolio=portfolio, request_id=request.request_id)

    def _create_error_response(
        self, error: str, request_id: UUID, error_code: str
    ) -> GetPortfolioResponse:
        return GetPortfolioResponse(
            success=False, error=error, error_code=error_code, request_id=request_id
        )
