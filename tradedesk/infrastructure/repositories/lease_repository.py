"""PostgreSQL Trade Lease Repository - time-limited sweeper claims on trades."""

# Standard library imports
import logging
from datetime import datetime, timedelta
from uuid import UUID

# Local imports
from tradedesk.application.interfaces.exceptions import RepositoryError
from tradedesk.application.interfaces.repositories import ITradeLeaseRepository
from tradedesk.infrastructure.database.adapter import PostgreSQLAdapter

logger = logging.getLogger(__name__)


class PostgreSQLTradeLeaseRepository(ITradeLeaseRepository):
    """
    Lease rows keyed by trade id.

    Acquisition is a single upsert that only overwrites a lease that has
    expired or already belongs to the caller.
    """

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        self.adapter = adapter

    async def acquire(self, trade_id: UUID, owner: str, now: datetime, ttl_seconds: float) -> bool:
        upsert_query = """
        INSERT INTO trade_leases (trade_id, owner, expires_at)
        VALUES (%s, %s, %s)
        ON CONFLICT (trade_id) DO UPDATE
        SET owner = EXCLUDED.owner, expires_at = EXCLUDED.expires_at
        WHERE trade_leases.expires_at <= %s OR trade_leases.owner = EXCLUDED.owner
        RETURNING owner
        """
        try:
            record = await self.adapter.fetch_one(
                upsert_query, trade_id, owner, now + timedelta(seconds=ttl_seconds), now
            )
        except Exception as e:
            logger.error(f"Failed to acquire lease on trade {trade_id}: {e}")
            raise RepositoryError(f"Failed to acquire lease: {e}") from e
        return record is not None

    async def release(self, trade_id: UUID, owner: str) -> None:
        try:
            await self.adapter.execute_query(
                "DELETE FROM trade_leases WHERE trade_id = %s AND owner = %s", trade_id, owner
            )
        except Exception as e:
            logger.error(f"Failed to release lease on trade {trade_id}: {e}")
            raise RepositoryError(f"Failed to release lease: {e}") from e
