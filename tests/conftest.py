"""Global pytest configuration and fixtures."""

# Standard library imports
from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

# Third-party imports
import pytest

# Local imports
from tradedesk.application.interfaces.price_feed import Mark
from tradedesk.application.services.position_ledger import PositionLedger
from tradedesk.application.services.trade_lifecycle import TradeLifecycle
from tradedesk.domain.entities.portfolio import Portfolio
from tradedesk.infrastructure.database.adapter import PostgreSQLAdapter
from tradedesk.infrastructure.market_data.feed import StreamingPriceFeed
from tradedesk.infrastructure.notifications.event_bus import InProcessTradeEventBus
from tradedesk.infrastructure.repositories.memory import InMemoryUnitOfWorkFactory


def make_mark(symbol: str = "BTC/USDT", price: str | Decimal = "100", **kwargs) -> Mark:
    """Build a mark with sensible defaults."""
    return Mark(
        symbol=symbol,
        price=Decimal(str(price)),
        change_percent=kwargs.get("change_percent", Decimal("1.5")),
        volume=kwargs.get("volume", Decimal("1000000")),
        timestamp=kwargs.get("timestamp", datetime.now(UTC)),
    )


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def uow_factory() -> InMemoryUnitOfWorkFactory:
    """Unit of work factory over a fresh in-memory store."""
    return InMemoryUnitOfWorkFactory()


@pytest.fixture
def portfolio(uow_factory, user_id) -> Portfolio:
    """Default portfolio with 5000 real and 1000 demo funds, seeded into the store."""
    portfolio = Portfolio(
        user_id=user_id,
        balance=Decimal("5000.00"),
        demo_balance=Decimal("1000.00"),
    )
    uow_factory.store.portfolios[portfolio.id] = replace(portfolio)
    return portfolio


@pytest.fixture
def price_feed() -> StreamingPriceFeed:
    """Feed with a BTC/USDT mark at 100."""
    feed = StreamingPriceFeed()
    feed.publish(make_mark("BTC/USDT", "100"))
    return feed


@pytest.fixture
def event_bus() -> InProcessTradeEventBus:
    return InProcessTradeEventBus()


@pytest.fixture
def ledger(uow_factory) -> PositionLedger:
    return PositionLedger(uow_factory)


@pytest.fixture
def lifecycle(uow_factory, price_feed, ledger, event_bus) -> TradeLifecycle:
    return TradeLifecycle(uow_factory, price_feed, ledger=ledger, event_publisher=event_bus)


@pytest.fixture
def mock_adapter() -> AsyncMock:
    """Mock PostgreSQL adapter for repository tests."""
    adapter = AsyncMock(spec=PostgreSQLAdapter)
    adapter.execute_query.return_value = "EXECUTE 1"
    adapter.fetch_one.return_value = None
    adapter.fetch_all.return_value = []
    return adapter


@pytest.fixture
def mark_factory():
    """Factory for marks, see ``make_mark``."""
    return make_mark
