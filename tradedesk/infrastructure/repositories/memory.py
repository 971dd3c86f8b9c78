"""
In-Memory Persistence

Dict-backed implementations of the repository and unit of work interfaces.
They mirror the PostgreSQL semantics (conditional debit, status-guarded
completion, lease TTL) and back local runs and tests without a database.

Units of work over one store are serialised by the store lock; rollback
restores the snapshot taken at begin.
"""

# Standard library imports
import asyncio
import copy
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

# Local imports
from tradedesk.application.interfaces.exceptions import (
    IntegrityError,
    PortfolioNotFoundError,
    TradeNotFoundError,
    TransactionAlreadyActiveError,
    TransactionNotActiveError,
)
from tradedesk.application.interfaces.repositories import (
    IPortfolioRepository,
    ITradeLeaseRepository,
    ITradeRepository,
    ITransactionRepository,
)
from tradedesk.application.interfaces.unit_of_work import IUnitOfWork, IUnitOfWorkFactory
from tradedesk.domain.entities.portfolio import Portfolio
from tradedesk.domain.entities.trade import Trade, TradeStatus
from tradedesk.domain.entities.transaction import Transaction, TransactionStatus
from tradedesk.domain.exceptions import InvalidTradeStateError

logger = logging.getLogger(__name__)


@dataclass
class Lease:
    owner: str
    expires_at: datetime


@dataclass
class InMemoryStore:
    """Shared state behind every in-memory unit of work."""

    portfolios: dict[UUID, Portfolio] = field(default_factory=dict)
    trades: dict[UUID, Trade] = field(default_factory=dict)
    transactions: dict[UUID, Transaction] = field(default_factory=dict)
    leases: dict[UUID, Lease] = field(default_factory=dict)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def snapshot(self) -> dict:
        return copy.deepcopy(
            {
                "portfolios": self.portfolios,
                "trades": self.trades,
                "transactions": self.transactions,
                "leases": self.leases,
            }
        )

    def restore(self, snapshot: dict) -> None:
        self.portfolios = snapshot["portfolios"]
        self.trades = snapshot["trades"]
        self.transactions = snapshot["transactions"]
        self.leases = snapshot["leases"]


class InMemoryPortfolioRepository(IPortfolioRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def save_portfolio(self, portfolio: Portfolio) -> Portfolio:
        if portfolio.is_default and await self.get_default_portfolio(portfolio.user_id):
            raise IntegrityError("uq_portfolios_default_per_user")
        self.store.portfolios[portfolio.id] = replace(portfolio)
        return portfolio

    async def get_portfolio_by_id(self, portfolio_id: UUID) -> Portfolio | None:
        portfolio = self.store.portfolios.get(portfolio_id)
        return replace(portfolio) if portfolio else None

    async def get_default_portfolio(self, user_id: UUID) -> Portfolio | None:
        for portfolio in self.store.portfolios.values():
            if portfolio.user_id == user_id and portfolio.is_default:
                return replace(portfolio)
        return None

    async def debit_balance(self, portfolio_id: UUID, is_demo: bool, amount: Decimal) -> Portfolio:
        portfolio = self._stored(portfolio_id)
        # Entity debit raises InsufficientBalanceError before mutating
        portfolio.debit(is_demo, amount)
        return replace(portfolio)

    async def credit_balance(
        self,
        portfolio_id: UUID,
        is_demo: bool,
        amount: Decimal,
        realized_pnl_delta: Decimal,
    ) -> Portfolio:
        portfolio = self._stored(portfolio_id)
        portfolio.credit(is_demo, amount, realized_pnl_delta)
        return replace(portfolio)

    def _stored(self, portfolio_id: UUID) -> Portfolio:
        portfolio = self.store.portfolios.get(portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio


class InMemoryTradeRepository(ITradeRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def save_trade(self, trade: Trade) -> Trade:
        self.store.trades[trade.id] = replace(trade)
        return trade

    async def get_trade_by_id(self, trade_id: UUID) -> Trade | None:
        trade = self.store.trades.get(trade_id)
        return replace(trade) if trade else None

    async def get_active_trades(self, user_id: UUID) -> list[Trade]:
        trades = [
            t for t in self.store.trades.values() if t.user_id == user_id and t.is_active()
        ]
        return [replace(t) for t in sorted(trades, key=lambda t: t.created_at, reverse=True)]

    async def get_trades_by_user(self, user_id: UUID, limit: int = 50) -> list[Trade]:
        trades = [t for t in self.store.trades.values() if t.user_id == user_id]
        trades.sort(key=lambda t: t.created_at, reverse=True)
        return [replace(t) for t in trades[:limit]]

    async def get_expired_active_trades(self, now: datetime) -> list[Trade]:
        trades = [
            t
            for t in self.store.trades.values()
            if t.is_active() and t.expires_at is not None and t.expires_at <= now
        ]
        return [replace(t) for t in sorted(trades, key=lambda t: t.expires_at)]

    async def complete_trade(self, trade: Trade) -> Trade:
        stored = self.store.trades.get(trade.id)
        if stored is None:
            raise TradeNotFoundError(trade.id)
        if stored.status != TradeStatus.ACTIVE:
            raise InvalidTradeStateError(trade.id, stored.status.value)

        stored.complete(trade.exit_price, trade.realized_pnl, trade.closed_at)
        return replace(stored)


class InMemoryTransactionRepository(ITransactionRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        for existing in self.store.transactions.values():
            if existing.reference_id == transaction.reference_id and existing.id != transaction.id:
                raise IntegrityError("transactions_reference_id_key")
        self.store.transactions[transaction.id] = replace(transaction)
        return transaction

    async def get_by_reference(self, reference_id: str) -> Transaction | None:
        for transaction in self.store.transactions.values():
            if transaction.reference_id == reference_id:
                return replace(transaction)
        return None

    async def get_transactions_by_user(self, user_id: UUID, limit: int = 20) -> list[Transaction]:
        transactions = [t for t in self.store.transactions.values() if t.user_id == user_id]
        transactions.sort(key=lambda t: t.created_at, reverse=True)
        return [replace(t) for t in transactions[:limit]]

    async def transition_status(
        self, transaction: Transaction, expected: TransactionStatus
    ) -> bool:
        stored = self.store.transactions.get(transaction.id)
        if stored is None or stored.status != expected:
            return False
        stored.status = transaction.status
        stored.completed_at = transaction.completed_at
        return True


class InMemoryTradeLeaseRepository(ITradeLeaseRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def acquire(self, trade_id: UUID, owner: str, now: datetime, ttl_seconds: float) -> bool:
        current = self.store.leases.get(trade_id)
        if current is not None and current.owner != owner and current.expires_at > now:
            return False
        self.store.leases[trade_id] = Lease(owner, now + timedelta(seconds=ttl_seconds))
        return True

    async def release(self, trade_id: UUID, owner: str) -> None:
        current = self.store.leases.get(trade_id)
        if current is not None and current.owner == owner:
            del self.store.leases[trade_id]


class InMemoryUnitOfWork(IUnitOfWork):
    """
    Unit of work over an InMemoryStore.

    Holds the store lock from begin until commit or rollback.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.portfolios = InMemoryPortfolioRepository(store)
        self.trades = InMemoryTradeRepository(store)
        self.transactions = InMemoryTransactionRepository(store)
        self.leases = InMemoryTradeLeaseRepository(store)
        self._snapshot: dict | None = None
        self._active = False

    async def begin_transaction(self) -> None:
        if self._active:
            raise TransactionAlreadyActiveError()
        await self.store.lock.acquire()
        self._snapshot = self.store.snapshot()
        self._active = True

    async def commit(self) -> None:
        if not self._active:
            raise TransactionNotActiveError()
        self._finish()

    async def rollback(self) -> None:
        if not self._active:
            logger.warning("No active transaction to rollback")
            return
        self.store.restore(self._snapshot)
        self._finish()

    async def is_active(self) -> bool:
        return self._active

    def _finish(self) -> None:
        self._snapshot = None
        self._active = False
        self.store.lock.release()

    async def __aenter__(self):
        await self.begin_transaction()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()
        return False


class InMemoryUnitOfWorkFactory(IUnitOfWorkFactory):
    """Creates units of work over one shared store."""

    def __init__(self, store: InMemoryStore | None = None) -> None:
        self.store = store or InMemoryStore()

    def create_unit_of_work(self) -> IUnitOfWork:
        return InMemoryUnitOfWork(self.store)

    async def add_portfolio(self, portfolio: Portfolio) -> Portfolio:
        """Seed a portfolio outside any trade flow."""
        async with self.create_unit_of_work() as uow:
            return await uow.portfolios.save_portfolio(portfolio)
