"""
Price Feed Interface Definitions

Defines the contract for price feeds consumed by the trade lifecycle and the
mark structure they deliver.
"""

# Standard library imports
from abc import abstractmethod
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Protocol


def normalize_symbol(symbol: str) -> str:
    """Map ``btcusdt`` and ``btc/usdt`` alike to ``BTC/USDT``."""
    symbol = symbol.strip().upper()
    if "/" in symbol:
        return symbol
    return format_symbol(symbol)


def format_symbol(raw: str) -> str:
    """Convert an exchange symbol such as ``BTCUSDT`` to ``BTC/USDT``."""
    return f"{raw[:-4].upper()}/USDT"


@dataclass(frozen=True)
class Mark:
    """
    The most recently observed price for an instrument.

    Attributes:
        symbol: Instrument pair, e.g. "BTC/USDT"
        price: Last traded price
        change_percent: 24h price change in percent
        volume: 24h quote volume
        timestamp: When the exchange produced the update
    """

    symbol: str
    price: Decimal
    change_percent: Decimal
    volume: Decimal
    timestamp: datetime

    def __post_init__(self) -> None:
        """Validate mark data after initialization."""
        if self.price <= 0:
            raise ValueError(f"Mark price must be positive: {self.price}")
        if self.volume < 0:
            raise ValueError(f"Volume cannot be negative: {self.volume}")

    def age(self, now: datetime | None = None) -> timedelta:
        """Time elapsed since the mark was produced."""
        return (now or datetime.now(UTC)) - self.timestamp


class IPriceFeed(Protocol):
    """
    Price feed interface.

    Delivery is at-least-once, unordered across symbols and best-effort ordered
    within a symbol. A mark is never retracted: while the transport is down,
    ``get_latest`` keeps returning the last-known mark. ``None`` means the
    symbol was never received, which callers must treat differently from a
    stale mark.
    """

    @abstractmethod
    def subscribe(self, symbols: Iterable[str]) -> AsyncIterator[Mark]:
        """
        Stream marks for the given symbols.

        Args:
            symbols: Instrument pairs to receive

        Returns:
            Async iterator of marks, ending when the feed stops
        """
        ...

    @abstractmethod
    def get_latest(self, symbol: str) -> Mark | None:
        """
        Get the last-known mark for a symbol.

        Args:
            symbol: Instrument pair

        Returns:
            The latest mark, or None if none was ever received
        """
        ...

    @abstractmethod
    def is_stale(self, symbol: str, max_age: timedelta | None = None) -> bool:
        """
        Check whether the last-known mark is older than ``max_age``.

        Returns:
            True if a mark exists and is older than max_age, False otherwise
        """
        ...
