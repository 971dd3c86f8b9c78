"""
Binance Price Feed

Streams 24h ticker updates from the Binance combined websocket stream into a
StreamingPriceFeed, reconnecting with exponential backoff. A REST snapshot
seeds the cache on start and after every reconnect so marks missed while
disconnected are caught up.
"""

# Standard library imports
import asyncio
import json
import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

# Third-party imports
import httpx
import websockets

# Local imports
from tradedesk.application.config import PriceFeedConfig
from tradedesk.application.interfaces.price_feed import Mark, format_symbol
from tradedesk.infrastructure.resilience.retry import ExponentialBackoff, RetryConfig

from .feed import StreamingPriceFeed

logger = logging.getLogger(__name__)

PING_INTERVAL_SECONDS = 20.0


def _from_millis(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=UTC)


def parse_ticker(payload: dict[str, Any]) -> Mark | None:
    """
    Map a websocket ``24hrTicker`` event to a Mark.

    Combined-stream envelopes (``{"stream": ..., "data": {...}}``) are
    unwrapped. Returns None for payloads that are not ticker updates, such
    as subscription acknowledgements.

    Raises:
        ValueError: If a ticker field is malformed
    """
    if not isinstance(payload, dict):
        return None
    data = payload.get("data", payload)
    if not isinstance(data, dict) or "s" not in data or "c" not in data:
        return None

    try:
        price = Decimal(str(data["c"]))
        volume = Decimal(str(data.get("v", "0"))) * price
        change = Decimal(str(data.get("P", "0")))
    except InvalidOperation as e:
        raise ValueError(f"Malformed ticker numbers: {e}") from e

    timestamp = _from_millis(data["E"]) if "E" in data else datetime.now(UTC)
    return Mark(
        symbol=format_symbol(data["s"]),
        price=price,
        change_percent=change,
        volume=volume,
        timestamp=timestamp,
    )


def parse_rest_ticker(item: dict[str, Any]) -> Mark:
    """
    Map one entry of the ``/api/v3/ticker/24hr`` response to a Mark.

    Raises:
        ValueError: If a field is missing or malformed
    """
    try:
        price = Decimal(str(item["lastPrice"]))
        return Mark(
            symbol=format_symbol(item["symbol"]),
            price=price,
            change_percent=Decimal(str(item.get("priceChangePercent", "0"))),
            volume=Decimal(str(item.get("volume", "0"))) * price,
            timestamp=(
                _from_millis(item["closeTime"]) if "closeTime" in item else datetime.now(UTC)
            ),
        )
    except (KeyError, InvalidOperation) as e:
        raise ValueError(f"Malformed ticker snapshot entry: {e}") from e


def format_volume(volume: Decimal | float) -> str:
    """Render a quote volume for display: ``28.5B``, ``14.2M``, ``3.1K`` or ``950``."""
    value = float(volume)
    if value >= 1e9:
        return f"{value / 1e9:.1f}B"
    if value >= 1e6:
        return f"{value / 1e6:.1f}M"
    if value >= 1e3:
        return f"{value / 1e3:.1f}K"
    return f"{value:.0f}"


class BinancePriceFeed(StreamingPriceFeed):
    """
    Price feed backed by Binance public market data.

    Call ``start()`` to launch the background stream task and ``stop()`` to
    shut it down. Marks stay readable after a disconnect.
    """

    def __init__(self, config: PriceFeedConfig | None = None) -> None:
        config = config or PriceFeedConfig()
        super().__init__(stale_after=timedelta(seconds=config.stale_after_seconds))
        self.config = config
        self._backoff = ExponentialBackoff(
            RetryConfig(
                initial_delay=config.reconnect_initial_delay,
                max_delay=config.reconnect_max_delay,
            )
        )
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()
        self._connected = False
        self.connection_count = 0

    @property
    def stream_url(self) -> str:
        streams = "/".join(f"{symbol.lower()}@ticker" for symbol in self.config.symbols)
        return f"{self.config.ws_url.rstrip('/')}/{streams}"

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def start(self) -> None:
        """Seed the cache from REST and start streaming."""
        if self._task is not None and not self._task.done():
            return
        self._stopping.clear()
        await self.fetch_snapshot()
        self._task = asyncio.create_task(self._run(), name="binance-price-feed")

    async def stop(self) -> None:
        """Stop streaming and end subscriber streams."""
        self._stopping.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.close()
        logger.info("Binance price feed stopped")

    async def fetch_snapshot(self) -> list[Mark]:
        """
        Fetch current tickers over REST and publish them.

        Failures are logged; the stream keeps running without the snapshot.
        """
        symbols = json.dumps([s.upper() for s in self.config.symbols], separators=(",", ":"))
        try:
            async with httpx.AsyncClient(timeout=self.config.request_timeout) as client:
                response = await client.get(self.config.rest_url, params={"symbols": symbols})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Ticker snapshot failed: {e}")
            return []

        marks = []
        for item in payload:
            try:
                mark = parse_rest_ticker(item)
            except ValueError as e:
                logger.warning(f"Skipping snapshot entry: {e}")
                continue
            if self.publish(mark):
                marks.append(mark)

        logger.debug(f"Ticker snapshot published {len(marks)} marks")
        return marks

    def handle_message(self, message: str | bytes) -> Mark | None:
        """Parse and publish one websocket message, dropping malformed payloads."""
        try:
            mark = parse_ticker(json.loads(message))
        except ValueError as e:
            logger.warning(f"Dropping malformed ticker payload: {e}")
            return None

        if mark is None:
            return None
        return mark if self.publish(mark) else None

    async def _run(self) -> None:
        attempt = 0
        while not self._stopping.is_set():
            try:
                async with websockets.connect(
                    self.stream_url,
                    ping_interval=PING_INTERVAL_SECONDS,
                    ping_timeout=PING_INTERVAL_SECONDS,
                ) as ws:
                    self._connected = True
                    self.connection_count += 1
                    attempt = 0
                    logger.info(f"Connected to Binance stream for {len(self.config.symbols)} symbols")

                    if self.connection_count > 1:
                        await self.fetch_snapshot()

                    async for message in ws:
                        self.handle_message(message)

                logger.warning("Binance stream closed by server")
            except (websockets.exceptions.WebSocketException, OSError) as e:
                logger.warning(f"Binance stream error: {e}")
            finally:
                self._connected = False

            if self._stopping.is_set():
                break

            delay = self._backoff.get_delay(attempt)
            attempt += 1
            logger.info(f"Reconnecting to Binance stream in {delay:.1f}s (attempt {attempt})")
            try:
                async with asyncio.timeout(delay):
                    await self._stopping.wait()
            except TimeoutError:
                pass
