"""
Repository Interface Definitions

Defines the contracts that infrastructure repositories must implement.
Following the Repository pattern and clean architecture principles.
"""

# Standard library imports
from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

# Local imports
from tradedesk.domain.entities.portfolio import Portfolio
from tradedesk.domain.entities.trade import Trade
from tradedesk.domain.entities.transaction import Transaction, TransactionStatus


class IPortfolioRepository(Protocol):
    """
    Portfolio repository interface.

    Balance mutations are expressed as conditional updates rather than
    read-modify-write so that concurrent debits and credits on the same
    portfolio serialise at the store.
    """

    @abstractmethod
    async def save_portfolio(self, portfolio: Portfolio) -> Portfolio:
        """
        Insert a new portfolio.

        Raises:
            IntegrityError: If the user already has a default portfolio
            RepositoryError: If save operation fails
        """
        ...

    @abstractmethod
    async def get_portfolio_by_id(self, portfolio_id: UUID) -> Portfolio | None:
        """
        Retrieve a portfolio by its ID.

        Args:
            portfolio_id: The unique identifier of the portfolio

        Returns:
            The portfolio entity if found, None otherwise

        Raises:
            RepositoryError: If retrieval operation fails
        """
        ...

    @abstractmethod
    async def get_default_portfolio(self, user_id: UUID) -> Portfolio | None:
        """
        Retrieve the user's default portfolio.

        Args:
            user_id: Owner of the portfolio

        Returns:
            The default portfolio if the user has one, None otherwise
        """
        ...

    @abstractmethod
    async def debit_balance(self, portfolio_id: UUID, is_demo: bool, amount: Decimal) -> Portfolio:
        """
        Decrease the targeted balance field if it covers the amount.

        Args:
            portfolio_id: Portfolio to debit
            is_demo: Selects demo_balance when True, balance otherwise
            amount: Positive amount to remove

        Returns:
            The portfolio after the debit

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            InsufficientBalanceError: If amount exceeds the targeted field
        """
        ...

    @abstractmethod
    async def credit_balance(
        self,
        portfolio_id: UUID,
        is_demo: bool,
        amount: Decimal,
        realized_pnl_delta: Decimal,
    ) -> Portfolio:
        """
        Increase the targeted balance field and accumulate realized P/L.

        Returns:
            The portfolio after the credit

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        ...


class ITradeRepository(Protocol):
    """
    Trade repository interface.

    Defines operations for persisting and retrieving Trade entities.
    """

    @abstractmethod
    async def save_trade(self, trade: Trade) -> Trade:
        """
        Insert a new trade.

        Raises:
            RepositoryError: If save operation fails
        """
        ...

    @abstractmethod
    async def get_trade_by_id(self, trade_id: UUID) -> Trade | None:
        """
        Retrieve a trade by its ID.

        Returns:
            The trade entity if found, None otherwise
        """
        ...

    @abstractmethod
    async def get_active_trades(self, user_id: UUID) -> list[Trade]:
        """
        Retrieve a user's active trades, newest first.

        Returns:
            List of active trades, empty if none found
        """
        ...

    @abstractmethod
    async def get_trades_by_user(self, user_id: UUID, limit: int = 50) -> list[Trade]:
        """
        Retrieve a user's trades of any status, newest first.
        """
        ...

    @abstractmethod
    async def get_expired_active_trades(self, now: datetime) -> list[Trade]:
        """
        Retrieve active trades whose expiry is at or before ``now``.

        Args:
            now: Reference time for the expiry comparison

        Returns:
            Active trades with a non-null expires_at <= now
        """
        ...

    @abstractmethod
    async def complete_trade(self, trade: Trade) -> Trade:
        """
        Persist the completion of a trade.

        The write only applies while the stored trade is still active.

        Args:
            trade: Trade already completed in memory

        Returns:
            The completed trade

        Raises:
            InvalidTradeStateError: If the stored trade is no longer active
            TradeNotFoundError: If the trade does not exist
        """
        ...


class ITransactionRepository(Protocol):
    """Wallet transaction repository interface."""

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert a new transaction.

        Raises:
            RepositoryError: If save operation fails
        """
        ...

    @abstractmethod
    async def get_by_reference(self, reference_id: str) -> Transaction | None:
        """Retrieve a transaction by its reference id."""
        ...

    @abstractmethod
    async def get_transactions_by_user(self, user_id: UUID, limit: int = 20) -> list[Transaction]:
        """Retrieve a user's transactions, newest first."""
        ...

    @abstractmethod
    async def transition_status(
        self,
        transaction: Transaction,
        expected: TransactionStatus,
    ) -> bool:
        """
        Persist the transaction's status if the stored status equals ``expected``.

        Args:
            transaction: Transaction carrying the new status and completion time
            expected: Status the stored row must still have

        Returns:
            True if the row was updated, False if another writer got there first
        """
        ...


class ITradeLeaseRepository(Protocol):
    """
    Lease repository interface.

    A lease is a time-limited claim on a trade held by one sweeper instance.
    It keeps two sweeper processes from closing the same trade while their
    leases overlap.
    """

    @abstractmethod
    async def acquire(self, trade_id: UUID, owner: str, now: datetime, ttl_seconds: float) -> bool:
        """
        Try to take the lease on a trade.

        Succeeds when no lease exists, the existing lease has expired, or the
        caller already owns it.

        Returns:
            True if the caller holds the lease afterwards
        """
        ...

    @abstractmethod
    async def release(self, trade_id: UUID, owner: str) -> None:
        """Drop the caller's lease on a trade, if it holds one."""
        ...
