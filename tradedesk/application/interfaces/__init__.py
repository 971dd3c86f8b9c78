"""
Application interfaces.

Protocols the core depends on; infrastructure provides the implementations.
"""

from .exceptions import (
    ConnectionError,
    EntityNotFoundError,
    FactoryError,
    IntegrityError,
    PortfolioNotFoundError,
    RepositoryError,
    TimeoutError,
    TradeNotFoundError,
    TransactionAlreadyActiveError,
    TransactionCommitError,
    TransactionError,
    TransactionNotActiveError,
    TransactionNotFoundError,
    TransactionRollbackError,
)
from .notifications import ITradeEventPublisher, TradeEvent, TradeEventHandler, TradeEventType
from .price_feed import IPriceFeed, Mark, format_symbol, normalize_symbol
from .repositories import (
    IPortfolioRepository,
    ITradeLeaseRepository,
    ITradeRepository,
    ITransactionRepository,
)
from .unit_of_work import IUnitOfWork, IUnitOfWorkFactory

__all__ = [
    # Repository interfaces
    "IPortfolioRepository",
    "ITradeRepository",
    "ITransactionRepository",
    "ITradeLeaseRepository",
    # Unit of Work interfaces
    "IUnitOfWork",
    "IUnitOfWorkFactory",
    # Feed and notifications
    "IPriceFeed",
    "Mark",
    "format_symbol",
    "normalize_symbol",
    "ITradeEventPublisher",
    "TradeEvent",
    "TradeEventHandler",
    "TradeEventType",
    # Exceptions
    "RepositoryError",
    "EntityNotFoundError",
    "PortfolioNotFoundError",
    "TradeNotFoundError",
    "TransactionNotFoundError",
    "TransactionError",
    "TransactionNotActiveError",
    "TransactionAlreadyActiveError",
    "TransactionCommitError",
    "TransactionRollbackError",
    "ConnectionError",
    "TimeoutError",
    "IntegrityError",
    "FactoryError",
]
