"""Unit tests for PostgreSQLUnitOfWork and its factory."""

# Standard library imports
import asyncio
from unittest.mock import Mock

# Third-party imports
import pytest

# Local imports
from tradedesk.application.interfaces.exceptions import (
    ConnectionError,
    FactoryError,
    TransactionAlreadyActiveError,
    TransactionCommitError,
    TransactionNotActiveError,
)
from tradedesk.infrastructure.repositories import (
    PostgreSQLPortfolioRepository,
    PostgreSQLUnitOfWork,
    PostgreSQLUnitOfWorkFactory,
)


@pytest.fixture
def adapter(mock_adapter):
    mock_adapter.has_active_transaction = False

    async def begin():
        mock_adapter.has_active_transaction = True

    async def finish():
        mock_adapter.has_active_transaction = False

    mock_adapter.begin_transaction.side_effect = begin
    mock_adapter.commit_transaction.side_effect = finish
    mock_adapter.rollback_transaction.side_effect = finish
    return mock_adapter


@pytest.mark.unit
class TestPostgreSQLUnitOfWork:
    def test_repositories_share_adapter(self, adapter):
        uow = PostgreSQLUnitOfWork(adapter)

        assert isinstance(uow.portfolios, PostgreSQLPortfolioRepository)
        assert uow.portfolios.adapter is adapter
        assert uow.trades.adapter is adapter
        assert uow.leases.adapter is adapter

    @pytest.mark.asyncio
    async def test_context_commits_on_success(self, adapter):
        async with PostgreSQLUnitOfWork(adapter) as uow:
            assert await uow.is_active()

        adapter.commit_transaction.assert_awaited_once()
        adapter.rollback_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_rolls_back_on_error(self, adapter):
        with pytest.raises(ValueError):
            async with PostgreSQLUnitOfWork(adapter):
                raise ValueError("boom")

        adapter.rollback_transaction.assert_awaited_once()
        adapter.commit_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_rolls_back_on_cancellation(self, adapter):
        with pytest.raises(asyncio.CancelledError):
            async with PostgreSQLUnitOfWork(adapter):
                raise asyncio.CancelledError()

        adapter.rollback_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_commit_rolls_back_and_raises(self, adapter):
        adapter.commit_transaction.side_effect = RuntimeError("serialization failure")

        with pytest.raises(TransactionCommitError):
            async with PostgreSQLUnitOfWork(adapter):
                pass

        adapter.rollback_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_double_begin(self, adapter):
        uow = PostgreSQLUnitOfWork(adapter)
        await uow.begin_transaction()

        with pytest.raises(TransactionAlreadyActiveError):
            await uow.begin_transaction()

    @pytest.mark.asyncio
    async def test_commit_without_transaction(self, adapter):
        with pytest.raises(TransactionNotActiveError):
            await PostgreSQLUnitOfWork(adapter).commit()

    @pytest.mark.asyncio
    async def test_rollback_without_transaction_is_noop(self, adapter):
        await PostgreSQLUnitOfWork(adapter).rollback()

        adapter.rollback_transaction.assert_not_awaited()


@pytest.mark.unit
class TestPostgreSQLUnitOfWorkFactory:
    def test_creates_unit_over_pool(self):
        connection = Mock()
        connection.config.command_timeout = 15.0

        uow = PostgreSQLUnitOfWorkFactory(connection).create_unit_of_work()

        assert isinstance(uow, PostgreSQLUnitOfWork)
        assert uow.adapter.pool is connection.pool

    def test_disconnected_database(self):
        class Disconnected:
            config = Mock(command_timeout=15.0)

            @property
            def pool(self):
                raise ConnectionError("Database is not connected")

        connection = Disconnected()

        with pytest.raises(FactoryError):
            PostgreSQLUnitOfWorkFactory(connection).create_unit_of_work()

