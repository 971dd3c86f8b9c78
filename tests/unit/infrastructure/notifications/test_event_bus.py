"""Unit tests for the in-process trade event bus."""

# Standard library imports
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

# Third-party imports
import pytest

# Local imports
from tradedesk.application.interfaces.notifications import TradeEvent, TradeEventType
from tradedesk.domain.entities.trade import Trade, TradeDirection


def event_for(user_id) -> TradeEvent:
    trade = Trade(
        user_id=user_id,
        portfolio_id=uuid4(),
        symbol="BTC/USDT",
        direction=TradeDirection.BUY,
        entry_price=Decimal("100"),
        quantity=Decimal("1"),
    )
    return TradeEvent(TradeEventType.OPENED, trade)


@pytest.mark.unit
class TestInProcessTradeEventBus:
    @pytest.mark.asyncio
    async def test_delivers_only_to_owner(self, event_bus):
        owner, other = uuid4(), uuid4()
        owner_handler, other_handler = AsyncMock(), AsyncMock()
        event_bus.subscribe(owner, owner_handler)
        event_bus.subscribe(other, other_handler)

        event = event_for(owner)
        await event_bus.publish(event)

        owner_handler.assert_awaited_once_with(event)
        other_handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, event_bus):
        user_id = uuid4()
        healthy = AsyncMock()
        event_bus.subscribe(user_id, AsyncMock(side_effect=RuntimeError("socket closed")))
        event_bus.subscribe(user_id, healthy)

        await event_bus.publish(event_for(user_id))

        healthy.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsubscribe(self, event_bus):
        user_id = uuid4()
        handler = AsyncMock()
        unsubscribe = event_bus.subscribe(user_id, handler)
        assert event_bus.subscriber_count(user_id) == 1

        unsubscribe()
        unsubscribe()
        await event_bus.publish(event_for(user_id))

        handler.assert_not_awaited()
        assert event_bus.subscriber_count(user_id) == 0
