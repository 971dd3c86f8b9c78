"""
Streaming Price Feed

In-process mark cache with fan-out to subscribers. Transports (see
``binance.py``) push marks in through ``publish``; the lifecycle reads them
through ``get_latest``.
"""

# Standard library imports
import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from datetime import UTC, datetime, timedelta

# Local imports
from tradedesk.application.interfaces.price_feed import (
    IPriceFeed,
    Mark,
    normalize_symbol,
)

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(seconds=30)
DEFAULT_QUEUE_SIZE = 1000


class StreamingPriceFeed(IPriceFeed):
    """
    Last-known mark per symbol plus a queue per subscriber.

    A mark older than the stored one for its symbol is dropped, so a
    late-arriving update never replaces a newer price. A subscriber that
    falls behind loses its oldest queued marks first.
    """

    def __init__(
        self,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.stale_after = stale_after
        self.queue_size = queue_size
        self._latest: dict[str, Mark] = {}
        self._subscribers: list[tuple[frozenset[str], asyncio.Queue]] = []
        self._closed = False

    @property
    def symbols(self) -> list[str]:
        """Symbols with at least one mark."""
        return sorted(self._latest)

    def publish(self, mark: Mark) -> bool:
        """
        Record a mark and push it to matching subscribers.

        Returns:
            False if the mark was older than the stored one and was dropped
        """
        current = self._latest.get(mark.symbol)
        if current is not None and mark.timestamp < current.timestamp:
            logger.debug(f"Dropping out-of-order mark for {mark.symbol}")
            return False

        self._latest[mark.symbol] = mark
        for wanted, queue in self._subscribers:
            if mark.symbol in wanted:
                self._offer(queue, mark)
        return True

    async def subscribe(self, symbols: Iterable[str]) -> AsyncIterator[Mark]:
        """
        Stream marks for ``symbols``, starting with their last-known marks.

        The stream ends when the feed is closed.
        """
        wanted = frozenset(normalize_symbol(s) for s in symbols)
        queue: asyncio.Queue[Mark | None] = asyncio.Queue(maxsize=self.queue_size)
        entry = (wanted, queue)
        self._subscribers.append(entry)
        try:
            for symbol in sorted(wanted):
                mark = self._latest.get(symbol)
                if mark is not None:
                    self._offer(queue, mark)
            if self._closed:
                self._offer(queue, None)

            while True:
                mark = await queue.get()
                if mark is None:
                    return
                yield mark
        finally:
            self._subscribers.remove(entry)

    def get_latest(self, symbol: str) -> Mark | None:
        return self._latest.get(normalize_symbol(symbol))

    def is_stale(self, symbol: str, max_age: timedelta | None = None) -> bool:
        mark = self.get_latest(symbol)
        if mark is None:
            return False
        return mark.age(datetime.now(UTC)) > (max_age or self.stale_after)

    def close(self) -> None:
        """End every subscriber stream. Cached marks stay readable."""
        self._closed = True
        for _, queue in self._subscribers:
            self._offer(queue, None)

    @staticmethod
    def _offer(queue: asyncio.Queue, item: Mark | None) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(item)
