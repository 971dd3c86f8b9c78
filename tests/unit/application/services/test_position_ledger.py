"""
Unit tests for PositionLedger.

Exercises debit, credit and read against the in-memory unit of work.
"""

# Standard library imports
import asyncio
import logging
from decimal import Decimal
from uuid import uuid4

# Third-party imports
import pytest

# Local imports
from tradedesk.application.interfaces.exceptions import PortfolioNotFoundError
from tradedesk.domain.exceptions import InsufficientBalanceError


@pytest.mark.unit
class TestPositionLedgerDebit:
    """Test the conditional debit."""

    @pytest.mark.asyncio
    async def test_debit_reduces_targeted_balance(self, ledger, portfolio):
        result = await ledger.debit(portfolio.id, True, Decimal("250"))

        assert result.demo_balance == Decimal("750.00")
        assert result.balance == Decimal("5000.00")

    @pytest.mark.asyncio
    async def test_debit_exactly_to_zero(self, ledger, portfolio):
        result = await ledger.debit(portfolio.id, True, Decimal("1000.00"))

        assert result.demo_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_insufficient_debit_changes_nothing(self, ledger, portfolio):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await ledger.debit(portfolio.id, True, Decimal("1000.01"))

        assert exc_info.value.is_demo is True
        current = await ledger.read(portfolio.id)
        assert current.demo_balance == Decimal("1000.00")

    @pytest.mark.asyncio
    async def test_non_positive_amount_is_rejected(self, ledger, portfolio):
        with pytest.raises(ValueError):
            await ledger.debit(portfolio.id, False, Decimal("0"))
        with pytest.raises(ValueError):
            await ledger.debit(portfolio.id, False, Decimal("-5"))

    @pytest.mark.asyncio
    async def test_unknown_portfolio(self, ledger):
        with pytest.raises(PortfolioNotFoundError):
            await ledger.debit(uuid4(), False, Decimal("1"))

    @pytest.mark.asyncio
    async def test_concurrent_debits_never_overdraw(self, ledger, portfolio):
        results = await asyncio.gather(
            *(ledger.debit(portfolio.id, True, Decimal("300")) for _ in range(5)),
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, InsufficientBalanceError)]
        assert len(succeeded) == 3
        assert len(rejected) == 2
        current = await ledger.read(portfolio.id)
        assert current.demo_balance == Decimal("100.00")


@pytest.mark.unit
class TestPositionLedgerCredit:
    """Test credits and realized P&L accumulation."""

    @pytest.mark.asyncio
    async def test_credit_adds_amount_and_pnl(self, ledger, portfolio):
        result = await ledger.credit(portfolio.id, False, Decimal("1100"), Decimal("100"))

        assert result.balance == Decimal("6100.00")
        assert result.total_realized_pnl == Decimal("100")

    @pytest.mark.asyncio
    async def test_negative_credit_floors_at_zero(self, ledger, portfolio):
        await ledger.debit(portfolio.id, True, Decimal("1000"))

        result = await ledger.credit(portfolio.id, True, Decimal("-200"), Decimal("-1200"))

        assert result.demo_balance == Decimal("0")
        assert result.total_realized_pnl == Decimal("-1200")

    @pytest.mark.asyncio
    async def test_floored_credit_is_logged(self, ledger, portfolio, caplog):
        await ledger.debit(portfolio.id, True, Decimal("1000"))

        with caplog.at_level(logging.WARNING):
            await ledger.credit(portfolio.id, True, Decimal("-200"), Decimal("-1200"))

        assert any("realized P&L records the full -1200" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_unknown_portfolio(self, ledger):
        with pytest.raises(PortfolioNotFoundError):
            await ledger.credit(uuid4(), True, Decimal("10"))


@pytest.mark.unit
class TestPositionLedgerRead:
    @pytest.mark.asyncio
    async def test_read_returns_snapshot(self, ledger, portfolio):
        snapshot = await ledger.read(portfolio.id)
        snapshot.demo_balance = Decimal("0")

        current = await ledger.read(portfolio.id)
        assert current.demo_balance == Decimal("1000.00")

    @pytest.mark.asyncio
    async def test_read_unknown_portfolio(self, ledger):
        with pytest.raises(PortfolioNotFoundError):
            await ledger.read(uuid4())

    @pytest.mark.asyncio
    async def test_joined_unit_of_work_rolls_back_together(self, ledger, portfolio, uow_factory):
        with pytest.raises(RuntimeError):
            async with uow_factory.create_unit_of_work() as uow:
                await ledger.debit(portfolio.id, True, Decimal("400"), uow=uow)
                raise RuntimeError("trade insert failed")

        current = await ledger.read(portfolio.id)
        assert current.demo_balance == Decimal("1000.00")
