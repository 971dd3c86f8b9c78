"""
PostgreSQL Unit of Work Implementation

Concrete implementation of IUnitOfWork using PostgreSQL database.
Manages transactions across multiple repositories ensuring data consistency.
"""

# Standard library imports
import logging

# Local imports
from tradedesk.application.interfaces.exceptions import (
    FactoryError,
    TransactionAlreadyActiveError,
    TransactionCommitError,
    TransactionError,
    TransactionNotActiveError,
    TransactionRollbackError,
)
from tradedesk.application.interfaces.repositories import (
    IPortfolioRepository,
    ITradeLeaseRepository,
    ITradeRepository,
    ITransactionRepository,
)
from tradedesk.application.interfaces.unit_of_work import IUnitOfWork, IUnitOfWorkFactory
from tradedesk.infrastructure.database.adapter import PostgreSQLAdapter
from tradedesk.infrastructure.database.connection import DatabaseConnection

from .lease_repository import PostgreSQLTradeLeaseRepository
from .portfolio_repository import PostgreSQLPortfolioRepository
from .trade_repository import PostgreSQLTradeRepository
from .transaction_repository import PostgreSQLTransactionRepository

logger = logging.getLogger(__name__)


class PostgreSQLUnitOfWork(IUnitOfWork):
    """
    PostgreSQL implementation of IUnitOfWork.

    Manages database transactions across multiple repositories.
    All repositories share the unit's adapter, so they run on the same
    connection once a transaction is open.
    """

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        """
        Initialize Unit of Work with database adapter.

        Args:
            adapter: PostgreSQL database adapter
        """
        self.adapter = adapter
        self._portfolios = PostgreSQLPortfolioRepository(adapter)
        self._trades = PostgreSQLTradeRepository(adapter)
        self._transactions = PostgreSQLTransactionRepository(adapter)
        self._leases = PostgreSQLTradeLeaseRepository(adapter)

    @property
    def portfolios(self) -> IPortfolioRepository:
        """Get the portfolios repository."""
        return self._portfolios

    @property
    def trades(self) -> ITradeRepository:
        """Get the trades repository."""
        return self._trades

    @property
    def transactions(self) -> ITransactionRepository:
        """Get the wallet transactions repository."""
        return self._transactions

    @property
    def leases(self) -> ITradeLeaseRepository:
        """Get the sweeper lease repository."""
        return self._leases

    async def begin_transaction(self) -> None:
        """
        Begin a new database transaction.

        Raises:
            TransactionAlreadyActiveError: If a transaction is already open
            TransactionError: If transaction cannot be started
        """
        if self.adapter.has_active_transaction:
            raise TransactionAlreadyActiveError()

        try:
            await self.adapter.begin_transaction()
            logger.debug("Unit of Work transaction started")
        except Exception as e:
            logger.error(f"Failed to begin transaction: {e}")
            raise TransactionError(f"Failed to begin transaction: {e}") from e

    async def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            TransactionNotActiveError: If no transaction is open
            TransactionCommitError: If commit fails
        """
        if not self.adapter.has_active_transaction:
            raise TransactionNotActiveError()

        try:
            await self.adapter.commit_transaction()
            logger.debug("Unit of Work transaction committed")
        except Exception as e:
            logger.error(f"Failed to commit transaction: {e}")
            raise TransactionCommitError(e) from e

    async def rollback(self) -> None:
        """
        Rollback the current transaction.

        Raises:
            TransactionRollbackError: If rollback fails
        """
        if not self.adapter.has_active_transaction:
            logger.warning("No active transaction to rollback")
            return

        try:
            await self.adapter.rollback_transaction()
            logger.debug("Unit of Work transaction rolled back")
        except Exception as e:
            logger.error(f"Failed to rollback transaction: {e}")
            raise TransactionRollbackError(e) from e

    async def is_active(self) -> bool:
        """Check if a transaction is currently active."""
        return self.adapter.has_active_transaction

    async def __aenter__(self):
        await self.begin_transaction()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """
        Commit on success, roll back on any exception.

        Cancellation arrives here as ``asyncio.CancelledError`` and is
        rolled back like any other failure.
        """
        if exc_type is None:
            try:
                await self.commit()
            except Exception as commit_error:
                logger.error(f"Failed to commit in context manager: {commit_error}")
                try:
                    await self.rollback()
                except Exception as rollback_error:
                    logger.error(f"Failed to rollback after commit error: {rollback_error}")
                raise
        else:
            try:
                await self.rollback()
            except Exception as rollback_error:
                # Don't mask the original exception
                logger.error(f"Failed to rollback in context manager: {rollback_error}")

        return False


class PostgreSQLUnitOfWorkFactory(IUnitOfWorkFactory):
    """
    Factory for creating PostgreSQL Unit of Work instances.

    Each unit of work gets its own adapter over the shared pool, so
    concurrent units never share a transaction.
    """

    def __init__(self, connection: DatabaseConnection) -> None:
        """
        Initialize the factory.

        Args:
            connection: Connected database connection manager
        """
        self._connection = connection

    def create_unit_of_work(self) -> IUnitOfWork:
        """
        Create a new Unit of Work instance.

        Raises:
            FactoryError: If the database is not connected
        """
        try:
            adapter = PostgreSQLAdapter(
                self._connection.pool, command_timeout=self._connection.config.command_timeout
            )
        except Exception as e:
            logger.error(f"Failed to create Unit of Work: {e}")
            raise FactoryError(
                "PostgreSQLUnitOfWorkFactory", f"Failed to create Unit of Work: {e}"
            ) from e

        logger.debug("Created new PostgreSQL Unit of Work")
        return PostgreSQLUnitOfWork(adapter)
