"""Domain entities with business logic."""

from .portfolio import Portfolio
from .trade import Trade, TradeDirection, TradeStatus
from .transaction import Transaction, TransactionStatus, TransactionType

__all__ = [
    "Portfolio",
    "Trade",
    "TradeDirection",
    "TradeStatus",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
]
