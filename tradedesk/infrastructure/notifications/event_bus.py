"""
In-Process Trade Event Bus

Fans committed trade changes out to handlers registered per user id.
"""

# Standard library imports
import logging
from collections import defaultdict
from collections.abc import Callable
from uuid import UUID

# Local imports
from tradedesk.application.interfaces.notifications import (
    ITradeEventPublisher,
    TradeEvent,
    TradeEventHandler,
)

logger = logging.getLogger(__name__)


class InProcessTradeEventBus(ITradeEventPublisher):
    """
    Publish/subscribe for trade events within one process.

    Handlers run sequentially in registration order. A failing handler is
    logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[UUID, list[TradeEventHandler]] = defaultdict(list)

    def subscribe(self, user_id: UUID, handler: TradeEventHandler) -> Callable[[], None]:
        """
        Register a handler for one user's trade events.

        Returns:
            A callable that removes the handler
        """
        self._handlers[user_id].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(user_id)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[user_id]

        return unsubscribe

    def subscriber_count(self, user_id: UUID) -> int:
        return len(self._handlers.get(user_id, ()))

    async def publish(self, event: TradeEvent) -> None:
        for handler in list(self._handlers.get(event.user_id, ())):
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    f"Trade event handler failed for {event.event_type.value} "
                    f"of trade {event.trade.id}: {e}",
                    exc_info=True,
                )
