"""
Unit tests for the PostgreSQL repositories.

The adapter is mocked; tests check the statements' parameters and how empty
RETURNING results are turned into domain errors.
"""

# Standard library imports
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

# Third-party imports
import pytest

# Local imports
from tradedesk.application.interfaces.exceptions import (
    IntegrityError,
    PortfolioNotFoundError,
    RepositoryError,
    TradeNotFoundError,
)
from tradedesk.domain.entities.portfolio import Portfolio
from tradedesk.domain.entities.trade import Trade, TradeDirection, TradeStatus
from tradedesk.domain.entities.transaction import Transaction, TransactionStatus, TransactionType
from tradedesk.domain.exceptions import InsufficientBalanceError, InvalidTradeStateError
from tradedesk.infrastructure.repositories import (
    PostgreSQLPortfolioRepository,
    PostgreSQLTradeLeaseRepository,
    PostgreSQLTradeRepository,
    PostgreSQLTransactionRepository,
)


def portfolio_record(**overrides) -> dict:
    record = {
        "id": uuid4(),
        "user_id": uuid4(),
        "name": "Default Portfolio",
        "balance": Decimal("5000.00000000"),
        "demo_balance": Decimal("1000.00000000"),
        "total_realized_pnl": Decimal("0"),
        "is_default": True,
        "version": 1,
        "created_at": datetime.now(UTC),
        "updated_at": None,
    }
    record.update(overrides)
    return record


def trade_record(**overrides) -> dict:
    record = {
        "id": uuid4(),
        "user_id": uuid4(),
        "portfolio_id": uuid4(),
        "symbol": "BTC/USDT",
        "direction": "buy",
        "status": "active",
        "entry_price": Decimal("100"),
        "exit_price": None,
        "quantity": Decimal("10"),
        "leverage": Decimal("1"),
        "amount": Decimal("1000"),
        "stop_loss": None,
        "take_profit": None,
        "realized_pnl": None,
        "is_demo": True,
        "ai_recommended": False,
        "expires_at": None,
        "created_at": datetime.now(UTC),
        "closed_at": None,
    }
    record.update(overrides)
    return record


@pytest.mark.unit
class TestPortfolioRepository:
    @pytest.mark.asyncio
    async def test_debit_targets_demo_column(self, mock_adapter):
        record = portfolio_record(demo_balance=Decimal("600"))
        mock_adapter.fetch_one.return_value = record
        repo = PostgreSQLPortfolioRepository(mock_adapter)

        portfolio = await repo.debit_balance(record["id"], True, Decimal("400"))

        query, amount, _, portfolio_id, guard = mock_adapter.fetch_one.call_args.args
        assert "demo_balance = demo_balance - %s" in query
        assert "demo_balance >= %s" in query
        assert (amount, portfolio_id, guard) == (Decimal("400"), record["id"], Decimal("400"))
        assert portfolio.demo_balance == Decimal("600")

    @pytest.mark.asyncio
    async def test_debit_miss_reports_insufficient_balance(self, mock_adapter):
        record = portfolio_record(balance=Decimal("50"))
        mock_adapter.fetch_one.side_effect = [None, record]
        repo = PostgreSQLPortfolioRepository(mock_adapter)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await repo.debit_balance(record["id"], False, Decimal("75"))

        assert exc_info.value.available == Decimal("50")
        assert "SET balance = balance - %s" in mock_adapter.fetch_one.call_args_list[0].args[0]

    @pytest.mark.asyncio
    async def test_debit_miss_on_unknown_portfolio(self, mock_adapter):
        repo = PostgreSQLPortfolioRepository(mock_adapter)

        with pytest.raises(PortfolioNotFoundError):
            await repo.debit_balance(uuid4(), False, Decimal("1"))

    @pytest.mark.asyncio
    async def test_credit_floors_in_sql(self, mock_adapter):
        record = portfolio_record()
        mock_adapter.fetch_one.return_value = record
        repo = PostgreSQLPortfolioRepository(mock_adapter)

        await repo.credit_balance(record["id"], True, Decimal("-20"), Decimal("-120"))

        query, amount, pnl, *_ = mock_adapter.fetch_one.call_args.args
        assert "GREATEST(demo_balance + %s, 0)" in query
        assert (amount, pnl) == (Decimal("-20"), Decimal("-120"))

    @pytest.mark.asyncio
    async def test_credit_unknown_portfolio(self, mock_adapter):
        repo = PostgreSQLPortfolioRepository(mock_adapter)

        with pytest.raises(PortfolioNotFoundError):
            await repo.credit_balance(uuid4(), True, Decimal("1"), Decimal("0"))

    @pytest.mark.asyncio
    async def test_save_passes_integrity_errors_through(self, mock_adapter):
        mock_adapter.execute_query.side_effect = IntegrityError("uq_portfolios_default_per_user")
        repo = PostgreSQLPortfolioRepository(mock_adapter)

        with pytest.raises(IntegrityError):
            await repo.save_portfolio(Portfolio(user_id=uuid4()))

    @pytest.mark.asyncio
    async def test_adapter_failure_becomes_repository_error(self, mock_adapter):
        mock_adapter.fetch_one.side_effect = OSError("connection reset")
        repo = PostgreSQLPortfolioRepository(mock_adapter)

        with pytest.raises(RepositoryError):
            await repo.get_default_portfolio(uuid4())


@pytest.mark.unit
class TestTradeRepository:
    @pytest.mark.asyncio
    async def test_save_writes_enum_values(self, mock_adapter):
        repo = PostgreSQLTradeRepository(mock_adapter)
        trade = Trade(
            user_id=uuid4(),
            portfolio_id=uuid4(),
            symbol="ETH/USDT",
            direction=TradeDirection.SELL,
            entry_price=Decimal("2000"),
            quantity=Decimal("0.5"),
        )

        await repo.save_trade(trade)

        args = mock_adapter.execute_query.call_args.args
        assert args[5:7] == ("sell", "active")
        assert args[9:12] == (Decimal("0.5"), Decimal("1"), Decimal("1000"))

    @pytest.mark.asyncio
    async def test_maps_records(self, mock_adapter):
        mock_adapter.fetch_all.return_value = [trade_record(), trade_record(direction="sell")]
        repo = PostgreSQLTradeRepository(mock_adapter)

        trades = await repo.get_active_trades(uuid4())

        assert [t.direction for t in trades] == [TradeDirection.BUY, TradeDirection.SELL]
        assert mock_adapter.fetch_all.call_args.args[-1] == "active"

    @pytest.mark.asyncio
    async def test_principal_comes_from_stored_amount(self, mock_adapter):
        mock_adapter.fetch_one.return_value = trade_record(
            entry_price=Decimal("30000"),
            quantity=Decimal("0.000233333333"),
            amount=Decimal("7.00000000"),
        )
        repo = PostgreSQLTradeRepository(mock_adapter)

        trade = await repo.get_trade_by_id(uuid4())

        assert trade.principal == Decimal("7")

    @pytest.mark.asyncio
    async def test_expired_listing_passes_now(self, mock_adapter):
        repo = PostgreSQLTradeRepository(mock_adapter)
        now = datetime.now(UTC)

        await repo.get_expired_active_trades(now)

        query, status, passed_now = mock_adapter.fetch_all.call_args.args
        assert "expires_at <= %s" in query
        assert (status, passed_now) == ("active", now)

    @pytest.mark.asyncio
    async def test_complete_is_status_guarded(self, mock_adapter):
        closed_at = datetime.now(UTC)
        mock_adapter.fetch_one.return_value = trade_record(
            status="completed",
            exit_price=Decimal("110"),
            realized_pnl=Decimal("100"),
            closed_at=closed_at,
        )
        repo = PostgreSQLTradeRepository(mock_adapter)
        trade = Trade.open(
            uuid4(), uuid4(), "BTC/USDT", TradeDirection.BUY, Decimal("1000"), Decimal("100")
        )
        trade.complete(Decimal("110"), Decimal("100"), closed_at)

        completed = await repo.complete_trade(trade)

        query, *params = mock_adapter.fetch_one.call_args.args
        assert "WHERE id = %s AND status = %s" in query
        assert params[0] == "completed"
        assert params[-1] == "active"
        assert completed.status == TradeStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_complete_miss_on_closed_trade(self, mock_adapter):
        stored = trade_record(
            status="completed",
            exit_price=Decimal("105"),
            realized_pnl=Decimal("50"),
            closed_at=datetime.now(UTC),
        )
        mock_adapter.fetch_one.side_effect = [None, stored]
        repo = PostgreSQLTradeRepository(mock_adapter)
        trade = Trade.open(
            uuid4(), uuid4(), "BTC/USDT", TradeDirection.BUY, Decimal("1000"), Decimal("100")
        )

        with pytest.raises(InvalidTradeStateError) as exc_info:
            await repo.complete_trade(trade)

        assert exc_info.value.current_status == "completed"

    @pytest.mark.asyncio
    async def test_complete_miss_on_unknown_trade(self, mock_adapter):
        repo = PostgreSQLTradeRepository(mock_adapter)
        trade = Trade.open(
            uuid4(), uuid4(), "BTC/USDT", TradeDirection.BUY, Decimal("1000"), Decimal("100")
        )

        with pytest.raises(TradeNotFoundError):
            await repo.complete_trade(trade)


@pytest.mark.unit
class TestTransactionRepository:
    @pytest.mark.asyncio
    async def test_transition_reports_whether_row_matched(self, mock_adapter):
        repo = PostgreSQLTransactionRepository(mock_adapter)
        tx = Transaction(
            user_id=uuid4(),
            portfolio_id=uuid4(),
            type=TransactionType.DEPOSIT,
            amount=Decimal("10"),
            is_demo=False,
        )
        tx.mark_succeeded()

        assert await repo.transition_status(tx, TransactionStatus.PENDING)
        assert mock_adapter.execute_query.call_args.args[1:] == (
            "success",
            tx.completed_at,
            tx.id,
            "pending",
        )

        mock_adapter.execute_query.return_value = "EXECUTE 0"
        assert not await repo.transition_status(tx, TransactionStatus.PENDING)

    @pytest.mark.asyncio
    async def test_get_by_reference(self, mock_adapter):
        now = datetime.now(UTC)
        mock_adapter.fetch_one.return_value = {
            "id": uuid4(),
            "user_id": uuid4(),
            "portfolio_id": uuid4(),
            "type": "withdrawal",
            "amount": Decimal("25"),
            "method": "DANA",
            "status": "success",
            "is_demo": True,
            "reference_id": "DEMO-WTH-1-ABCDEF",
            "created_at": now,
            "completed_at": now,
        }
        repo = PostgreSQLTransactionRepository(mock_adapter)

        tx = await repo.get_by_reference("DEMO-WTH-1-ABCDEF")

        assert tx.type == TransactionType.WITHDRAWAL
        assert tx.status == TransactionStatus.SUCCESS


@pytest.mark.unit
class TestLeaseRepository:
    @pytest.mark.asyncio
    async def test_acquire(self, mock_adapter):
        mock_adapter.fetch_one.return_value = {"owner": "sweeper-a"}
        repo = PostgreSQLTradeLeaseRepository(mock_adapter)
        trade_id = uuid4()
        now = datetime.now(UTC)

        assert await repo.acquire(trade_id, "sweeper-a", now, 30)

        query, passed_id, owner, expires_at, passed_now = mock_adapter.fetch_one.call_args.args
        assert "ON CONFLICT (trade_id) DO UPDATE" in query
        assert (passed_id, owner, passed_now) == (trade_id, "sweeper-a", now)
        assert expires_at == now + timedelta(seconds=30)

    @pytest.mark.asyncio
    async def test_acquire_contended(self, mock_adapter):
        repo = PostgreSQLTradeLeaseRepository(mock_adapter)

        assert not await repo.acquire(uuid4(), "sweeper-a", datetime.now(UTC), 30)

    @pytest.mark.asyncio
    async def test_release_failure(self, mock_adapter):
        mock_adapter.execute_query.side_effect = OSError("gone")
        repo = PostgreSQLTradeLeaseRepository(mock_adapter)

        with pytest.raises(RepositoryError):
            await repo.release(uuid4(), "sweeper-a")
