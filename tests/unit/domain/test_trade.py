"""
Unit tests for the Trade entity.

Covers opening, principal reconstruction, threshold checks and the
active -> completed transition.
"""

# Standard library imports
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

# Third-party imports
import pytest

# Local imports
from tradedesk.domain.entities.trade import Trade, TradeDirection, TradeStatus
from tradedesk.domain.exceptions import InvalidTradeStateError


def open_trade(**overrides) -> Trade:
    params = {
        "user_id": uuid4(),
        "portfolio_id": uuid4(),
        "symbol": "BTC/USDT",
        "direction": TradeDirection.BUY,
        "amount": Decimal("1000"),
        "entry_price": Decimal("100"),
    }
    params.update(overrides)
    return Trade.open(**params)


@pytest.mark.unit
class TestTradeOpen:
    """Test the open factory."""

    def test_quantity_defaults_to_amount_over_entry(self):
        trade = open_trade()

        assert trade.quantity == Decimal("10")
        assert trade.status == TradeStatus.ACTIVE
        assert trade.exit_price is None
        assert trade.realized_pnl is None
        assert trade.closed_at is None

    def test_leverage_scales_quantity(self):
        trade = open_trade(leverage=Decimal("5"))

        assert trade.quantity == Decimal("50")
        assert trade.notional == Decimal("5000")
        assert trade.principal == Decimal("1000")

    def test_explicit_quantity_is_kept(self):
        trade = open_trade(quantity=Decimal("3"))

        assert trade.quantity == Decimal("3")
        assert trade.principal == Decimal("1000")

    def test_values_are_rounded_to_storage_scale(self):
        trade = open_trade(amount=Decimal("7"), entry_price=Decimal("30000.123456789"))

        assert trade.entry_price == Decimal("30000.12345679")
        assert trade.quantity == Decimal("0.000233332373")
        assert trade.amount == Decimal("7.00000000")

    def test_principal_is_the_amount_not_a_reconstruction(self):
        trade = open_trade(amount=Decimal("7"), entry_price=Decimal("30000"))

        assert trade.entry_price * trade.quantity != Decimal("7")
        assert trade.principal == Decimal("7")

    def test_amount_is_recovered_when_missing(self):
        trade = Trade(
            user_id=uuid4(),
            portfolio_id=uuid4(),
            symbol="BTC/USDT",
            direction=TradeDirection.BUY,
            entry_price=Decimal("100"),
            quantity=Decimal("50"),
            leverage=Decimal("5"),
        )

        assert trade.principal == Decimal("1000")

    def test_rejects_non_positive_amount(self):
        with pytest.raises(ValueError, match="Amount must be positive"):
            open_trade(amount=Decimal("0"))

    def test_rejects_leverage_below_one(self):
        with pytest.raises(ValueError, match="Leverage must be at least 1"):
            open_trade(leverage=Decimal("0.5"))

    def test_string_enums_are_coerced(self):
        trade = Trade(
            user_id=uuid4(),
            portfolio_id=uuid4(),
            symbol="ETH/USDT",
            direction="sell",
            entry_price=Decimal("2000"),
            quantity=Decimal("1"),
            status="active",
        )

        assert trade.direction is TradeDirection.SELL
        assert trade.status is TradeStatus.ACTIVE

    def test_open_trade_cannot_carry_close_fields(self):
        with pytest.raises(ValueError, match="Open trade cannot carry"):
            Trade(
                user_id=uuid4(),
                portfolio_id=uuid4(),
                symbol="BTC/USDT",
                direction=TradeDirection.BUY,
                entry_price=Decimal("100"),
                quantity=Decimal("1"),
                exit_price=Decimal("110"),
            )


@pytest.mark.unit
class TestTradeComplete:
    """Test the completion transition."""

    def test_complete_sets_close_fields(self):
        trade = open_trade()
        closed_at = datetime.now(UTC)

        trade.complete(Decimal("110"), Decimal("100"), closed_at)

        assert trade.status == TradeStatus.COMPLETED
        assert trade.exit_price == Decimal("110")
        assert trade.realized_pnl == Decimal("100")
        assert trade.closed_at == closed_at
        assert trade.is_closed()

    def test_second_complete_raises(self):
        trade = open_trade()
        trade.complete(Decimal("110"), Decimal("100"), datetime.now(UTC))

        with pytest.raises(InvalidTradeStateError) as exc_info:
            trade.complete(Decimal("120"), Decimal("200"), datetime.now(UTC))

        assert exc_info.value.current_status == "completed"
        assert trade.exit_price == Decimal("110")

    def test_cancelled_trade_cannot_complete(self):
        trade = open_trade()
        trade.status = TradeStatus.CANCELLED

        with pytest.raises(InvalidTradeStateError):
            trade.complete(Decimal("110"), Decimal("100"), datetime.now(UTC))


@pytest.mark.unit
class TestTradeThresholds:
    """Test expiry and stop loss / take profit checks."""

    def test_is_expired(self):
        now = datetime.now(UTC)
        trade = open_trade(expires_at=now - timedelta(seconds=1))

        assert trade.is_expired(now)
        assert not open_trade().is_expired(now)

    def test_long_thresholds(self):
        trade = open_trade(stop_loss=Decimal("90"), take_profit=Decimal("120"))

        assert trade.is_stop_loss_hit(Decimal("89"))
        assert not trade.is_stop_loss_hit(Decimal("95"))
        assert trade.is_take_profit_hit(Decimal("120"))

    def test_short_thresholds_are_mirrored(self):
        trade = open_trade(
            direction=TradeDirection.SELL,
            stop_loss=Decimal("110"),
            take_profit=Decimal("80"),
        )

        assert trade.is_stop_loss_hit(Decimal("111"))
        assert trade.is_take_profit_hit(Decimal("79"))
        assert not trade.is_take_profit_hit(Decimal("85"))
