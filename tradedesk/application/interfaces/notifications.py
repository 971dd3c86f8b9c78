"""
Trade Event Interface

Change notification for trade rows. Subscribers are scoped to a user id so a
dashboard session only hears about its own trades.
"""

from abc import abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from tradedesk.domain.entities.trade import Trade


class TradeEventType(Enum):
    OPENED = "opened"
    CLOSED = "closed"


@dataclass(frozen=True)
class TradeEvent:
    """A trade row changed."""

    event_type: TradeEventType
    trade: Trade
    reason: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def user_id(self) -> UUID:
        return self.trade.user_id


TradeEventHandler = Callable[[TradeEvent], Awaitable[None]]


class ITradeEventPublisher(Protocol):
    """Publishes trade events after the change has been committed."""

    @abstractmethod
    async def publish(self, event: TradeEvent) -> None:
        """
        Deliver an event to the subscribers of the trade's user.

        Delivery is best-effort: subscriber failures never propagate to the
        publisher.
        """
        ...
