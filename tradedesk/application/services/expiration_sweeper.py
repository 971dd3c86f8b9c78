"""
Expiration Sweeper - Closes trades whose expiry has passed.

Every tick lists active trades with ``expires_at <= now`` and closes each at
the latest mark. A trade is claimed twice before it is closed: once in an
in-process set, which keeps overlapping ticks of this instance apart, and once
through a persistent lease with a TTL, which keeps a second sweeper process
apart. Running one sweeper remains the operational expectation.
"""

import asyncio
import logging
import os
import socket
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from tradedesk.application.interfaces.unit_of_work import IUnitOfWorkFactory
from tradedesk.domain.exceptions import InvalidTradeStateError

from .trade_lifecycle import TradeLifecycle

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 1.0
DEFAULT_LEASE_TTL_SECONDS = 30.0


@dataclass
class SweepResult:
    """Outcome of one sweep tick."""

    closed: list[UUID] = field(default_factory=list)
    already_closed: list[UUID] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)

    @property
    def examined(self) -> int:
        return len(self.closed) + len(self.already_closed) + len(self.skipped) + len(self.failed)


class ExpirationSweeper:
    """Recurring close of past-expiry trades, each exactly once."""

    def __init__(
        self,
        lifecycle: TradeLifecycle,
        unit_of_work_factory: IUnitOfWorkFactory,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        lease_ttl_seconds: float = DEFAULT_LEASE_TTL_SECONDS,
        owner_id: str | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Sweep interval must be positive")
        if lease_ttl_seconds <= 0:
            raise ValueError("Lease TTL must be positive")

        self.lifecycle = lifecycle
        self.unit_of_work_factory = unit_of_work_factory
        self.interval_seconds = interval_seconds
        self.lease_ttl_seconds = lease_ttl_seconds
        self.owner_id = owner_id or f"{socket.gethostname()}:{os.getpid()}:{uuid4().hex[:8]}"

        self._claimed: set[UUID] = set()
        self._in_flight: set[UUID] = set()
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def claimed(self) -> frozenset[UUID]:
        return frozenset(self._claimed)

    async def sweep_once(self, now: datetime | None = None) -> SweepResult:
        """
        Run a single sweep tick.

        Args:
            now: Reference time for expiry, defaults to the current time

        Returns:
            What happened to each past-expiry trade
        """
        now = now or datetime.now(UTC)
        result = SweepResult()

        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            expired = await uow.trades.get_expired_active_trades(now)

        # Completed trades drop out of the listing; their claims go with them
        listed = {trade.id for trade in expired}
        self._claimed = {
            trade_id
            for trade_id in self._claimed
            if trade_id in listed or trade_id in self._in_flight
        }

        for trade in expired:
            if trade.id in self._claimed:
                result.skipped.append(trade.id)
                continue

            # Claimed before the first await so an overlapping tick sees it
            self._claimed.add(trade.id)
            self._in_flight.add(trade.id)
            try:
                await self._sweep_trade(trade.id, now, result)
            finally:
                self._in_flight.discard(trade.id)

        if result.examined:
            logger.info(
                f"Sweep at {now.isoformat()}: {len(result.closed)} closed, "
                f"{len(result.already_closed)} already closed, {len(result.skipped)} skipped, "
                f"{len(result.failed)} failed"
            )
        return result

    async def _sweep_trade(self, trade_id: UUID, now: datetime, result: SweepResult) -> None:
        try:
            async with self.unit_of_work_factory.create_unit_of_work() as uow:
                leased = await uow.leases.acquire(
                    trade_id, self.owner_id, now, self.lease_ttl_seconds
                )
        except Exception as e:
            logger.error(f"Failed to lease expired trade {trade_id}: {e}", exc_info=True)
            self._claimed.discard(trade_id)
            result.failed.append(trade_id)
            return

        if not leased:
            logger.debug(f"Trade {trade_id} is leased by another sweeper")
            self._claimed.discard(trade_id)
            result.skipped.append(trade_id)
            return

        try:
            await self.lifecycle.close_at_market(trade_id, reason="expired")
            result.closed.append(trade_id)
        except InvalidTradeStateError as e:
            logger.info(f"Expired trade {trade_id} was already closed ({e.current_status})")
            result.already_closed.append(trade_id)
        except Exception as e:
            logger.error(f"Failed to close expired trade {trade_id}: {e}", exc_info=True)
            self._claimed.discard(trade_id)
            result.failed.append(trade_id)
        finally:
            await self._release_lease(trade_id)

    async def _release_lease(self, trade_id: UUID) -> None:
        try:
            async with self.unit_of_work_factory.create_unit_of_work() as uow:
                await uow.leases.release(trade_id, self.owner_id)
        except Exception as e:
            # The lease lapses on its own once the TTL passes
            logger.warning(f"Failed to release lease on trade {trade_id}: {e}")

    async def run(self) -> None:
        """Sweep every ``interval_seconds`` until ``stop()`` is called."""
        if self._running:
            raise RuntimeError("Expiration sweeper is already running")

        self._running = True
        self._stop_event.clear()
        logger.info(
            f"Expiration sweeper {self.owner_id} started (interval {self.interval_seconds}s)"
        )

        try:
            while not self._stop_event.is_set():
                try:
                    await self.sweep_once()
                except Exception as e:
                    logger.error(f"Sweep tick failed: {e}", exc_info=True)

                try:
                    async with asyncio.timeout(self.interval_seconds):
                        await self._stop_event.wait()
                except TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info(f"Expiration sweeper {self.owner_id} stopped")

    def stop(self) -> None:
        """Ask the run loop to exit after the current tick."""
        self._stop_event.set()
