"""Repository implementations - PostgreSQL and in-memory."""

from .lease_repository import PostgreSQLTradeLeaseRepository
from .memory import InMemoryStore, InMemoryUnitOfWork, InMemoryUnitOfWorkFactory
from .portfolio_repository import PostgreSQLPortfolioRepository
from .trade_repository import PostgreSQLTradeRepository
from .transaction_repository import PostgreSQLTransactionRepository
from .unit_of_work import PostgreSQLUnitOfWork, PostgreSQLUnitOfWorkFactory

__all__ = [
    "InMemoryStore",
    "InMemoryUnitOfWork",
    "InMemoryUnitOfWorkFactory",
    "PostgreSQLPortfolioRepository",
    "PostgreSQLTradeLeaseRepository",
    "PostgreSQLTradeRepository",
    "PostgreSQLTransactionRepository",
    "PostgreSQLUnitOfWork",
    "PostgreSQLUnitOfWorkFactory",
]
