"""Unit tests for mark-to-market valuation."""

# Standard library imports
from decimal import Decimal
from uuid import uuid4

# Third-party imports
import pytest

# Local imports
from tradedesk.domain.entities.trade import Trade, TradeDirection
from tradedesk.domain.services.trade_valuation import TradeValuator


def trade(direction=TradeDirection.BUY, **kwargs) -> Trade:
    return Trade(
        user_id=uuid4(),
        portfolio_id=uuid4(),
        symbol="BTC/USDT",
        direction=direction,
        entry_price=Decimal("100"),
        quantity=Decimal("10"),
        **kwargs,
    )


@pytest.mark.unit
class TestTradeValuator:
    def test_long_gains_when_price_rises(self):
        valuation = TradeValuator.valuate(trade(), Decimal("110"))

        assert valuation.unrealized_pnl == Decimal("100")
        assert valuation.unrealized_pnl_percent == Decimal("10")
        assert valuation.is_profit
        assert valuation.mark_available

    def test_short_profits_on_price_drop(self):
        valuation = TradeValuator.valuate(trade(TradeDirection.SELL), Decimal("90"))

        assert valuation.unrealized_pnl == Decimal("100")
        assert valuation.unrealized_pnl_percent == Decimal("10")

    def test_short_loses_on_price_rise(self):
        valuation = TradeValuator.valuate(trade(TradeDirection.SELL), Decimal("105"))

        assert valuation.unrealized_pnl == Decimal("-50")
        assert not valuation.is_profit

    def test_missing_mark_values_at_entry(self):
        valuation = TradeValuator.valuate(trade(), None)

        assert valuation.mark_price == Decimal("100")
        assert valuation.unrealized_pnl == Decimal("0")
        assert not valuation.mark_available
        assert not valuation.stop_loss_hit

    def test_threshold_flags(self):
        valuation = TradeValuator.valuate(
            trade(stop_loss=Decimal("95"), take_profit=Decimal("120")), Decimal("94")
        )

        assert valuation.stop_loss_hit
        assert not valuation.take_profit_hit

    def test_leverage_does_not_change_pnl_formula(self):
        leveraged = trade(leverage=Decimal("10"))

        assert TradeValuator.pnl_at(leveraged, Decimal("101")) == Decimal("10")
