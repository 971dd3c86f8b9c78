"""
Unit of Work Interface

Defines the contract for managing transactions across multiple repositories.
Implements the Unit of Work pattern for atomic operations.
"""

# Standard library imports
from abc import abstractmethod
from typing import Protocol

from .repositories import (
    IPortfolioRepository,
    ITradeLeaseRepository,
    ITradeRepository,
    ITransactionRepository,
)


class IUnitOfWork(Protocol):
    """
    Unit of Work interface for transaction management.

    Provides atomic operations across multiple repositories. Opening a trade
    (debit + insert) and closing it (credit + complete) each run inside one
    unit of work, so either both writes land or neither does.
    """

    # Repository access
    portfolios: IPortfolioRepository
    trades: ITradeRepository
    transactions: ITransactionRepository
    leases: ITradeLeaseRepository

    @abstractmethod
    async def begin_transaction(self) -> None:
        """
        Begin a new database transaction.

        Raises:
            TransactionError: If transaction cannot be started
        """
        ...

    @abstractmethod
    async def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            TransactionError: If commit fails
        """
        ...

    @abstractmethod
    async def rollback(self) -> None:
        """
        Rollback the current transaction.

        Raises:
            TransactionError: If rollback fails
        """
        ...

    @abstractmethod
    async def is_active(self) -> bool:
        """
        Check if a transaction is currently active.

        Returns:
            True if transaction is active, False otherwise
        """
        ...

    @abstractmethod
    async def __aenter__(self):
        """
        Async context manager entry.

        Automatically begins a transaction.
        """
        ...

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """
        Async context manager exit.

        Automatically commits on success or rolls back on exception,
        including task cancellation.
        """
        ...


class IUnitOfWorkFactory(Protocol):
    """
    Factory interface for creating Unit of Work instances.

    Allows for different implementations (e.g., for testing vs production).
    """

    @abstractmethod
    def create_unit_of_work(self) -> IUnitOfWork:
        """
        Create a new Unit of Work instance.

        Raises:
            FactoryError: If Unit of Work cannot be created
        """
        ...
