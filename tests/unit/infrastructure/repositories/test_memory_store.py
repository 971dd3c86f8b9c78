"""Unit tests for the in-memory repositories and unit of work."""

# Standard library imports
import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

# Third-party imports
import pytest

# Local imports
from tradedesk.application.interfaces.exceptions import IntegrityError, TransactionNotActiveError
from tradedesk.domain.entities.portfolio import Portfolio
from tradedesk.domain.entities.trade import Trade, TradeDirection


@pytest.mark.unit
class TestInMemoryUnitOfWork:
    @pytest.mark.asyncio
    async def test_rollback_restores_snapshot(self, uow_factory, portfolio):
        with pytest.raises(RuntimeError):
            async with uow_factory.create_unit_of_work() as uow:
                await uow.portfolios.debit_balance(portfolio.id, False, Decimal("100"))
                raise RuntimeError("abort")

        stored = uow_factory.store.portfolios[portfolio.id]
        assert stored.balance == Decimal("5000.00")
        assert not uow_factory.store.lock.locked()

    @pytest.mark.asyncio
    async def test_units_are_serialised(self, uow_factory):
        order = []

        async def unit(name):
            async with uow_factory.create_unit_of_work():
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(unit("a"), unit("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_commit_without_begin(self, uow_factory):
        with pytest.raises(TransactionNotActiveError):
            await uow_factory.create_unit_of_work().commit()

    @pytest.mark.asyncio
    async def test_one_default_portfolio_per_user(self, uow_factory, user_id):
        await uow_factory.add_portfolio(Portfolio(user_id=user_id))

        with pytest.raises(IntegrityError):
            await uow_factory.add_portfolio(Portfolio(user_id=user_id))

    @pytest.mark.asyncio
    async def test_returned_entities_are_copies(self, uow_factory, portfolio):
        async with uow_factory.create_unit_of_work() as uow:
            loaded = await uow.portfolios.get_portfolio_by_id(portfolio.id)
        loaded.balance = Decimal("0")

        assert uow_factory.store.portfolios[portfolio.id].balance == Decimal("5000.00")


@pytest.mark.unit
class TestInMemoryLeases:
    @pytest.mark.asyncio
    async def test_lease_ttl(self, uow_factory):
        trade_id = uuid4()
        now = datetime.now(UTC)

        async with uow_factory.create_unit_of_work() as uow:
            assert await uow.leases.acquire(trade_id, "a", now, 30)
            assert await uow.leases.acquire(trade_id, "a", now, 30)
            assert not await uow.leases.acquire(trade_id, "b", now + timedelta(seconds=29), 30)
            assert await uow.leases.acquire(trade_id, "b", now + timedelta(seconds=30), 30)

    @pytest.mark.asyncio
    async def test_release_only_by_owner(self, uow_factory):
        trade_id = uuid4()
        now = datetime.now(UTC)

        async with uow_factory.create_unit_of_work() as uow:
            await uow.leases.acquire(trade_id, "a", now, 30)
            await uow.leases.release(trade_id, "b")
            assert trade_id in uow_factory.store.leases
            await uow.leases.release(trade_id, "a")

        assert uow_factory.store.leases == {}


@pytest.mark.unit
class TestInMemoryTrades:
    @pytest.mark.asyncio
    async def test_expired_listing_orders_by_expiry(self, uow_factory):
        now = datetime.now(UTC)
        user_id, portfolio_id = uuid4(), uuid4()

        def make(expires_in):
            return Trade(
                user_id=user_id,
                portfolio_id=portfolio_id,
                symbol="BTC/USDT",
                direction=TradeDirection.BUY,
                entry_price=Decimal("100"),
                quantity=Decimal("1"),
                expires_at=now + timedelta(seconds=expires_in),
            )

        later, sooner, future = make(-1), make(-10), make(60)
        async with uow_factory.create_unit_of_work() as uow:
            for trade in (later, sooner, future):
                await uow.trades.save_trade(trade)
            expired = await uow.trades.get_expired_active_trades(now)

        assert [t.id for t in expired] == [sooner.id, later.id]
