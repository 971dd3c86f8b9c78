"""
PostgreSQL Trade Repository Implementation

Concrete implementation of ITradeRepository using PostgreSQL database.
Completion is a status-guarded UPDATE: it only applies while the stored trade
is still active, which is what makes a second close fail.
"""

# Standard library imports
import logging
from datetime import datetime
from uuid import UUID

# Local imports
from tradedesk.application.interfaces.exceptions import RepositoryError, TradeNotFoundError
from tradedesk.application.interfaces.repositories import ITradeRepository
from tradedesk.domain.entities.trade import Trade, TradeStatus
from tradedesk.domain.exceptions import InvalidTradeStateError
from tradedesk.infrastructure.database.adapter import PostgreSQLAdapter, Row

logger = logging.getLogger(__name__)

TRADE_COLUMNS = """
    id, user_id, portfolio_id, symbol, direction, status, entry_price, exit_price,
    quantity, leverage, amount, stop_loss, take_profit, realized_pnl, is_demo,
    ai_recommended, expires_at, created_at, closed_at
"""


class PostgreSQLTradeRepository(ITradeRepository):
    """
    PostgreSQL implementation of ITradeRepository.

    Maps between Trade domain entities and database records.
    """

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        """
        Initialize repository with database adapter.

        Args:
            adapter: PostgreSQL database adapter
        """
        self.adapter = adapter

    async def save_trade(self, trade: Trade) -> Trade:
        """
        Insert a new trade.

        Raises:
            RepositoryError: If save operation fails
        """
        insert_query = f"""
        INSERT INTO trades ({TRADE_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        try:
            await self.adapter.execute_query(
                insert_query,
                trade.id,
                trade.user_id,
                trade.portfolio_id,
                trade.symbol,
                trade.direction.value,
                trade.status.value,
                trade.entry_price,
                trade.exit_price,
                trade.quantity,
                trade.leverage,
                trade.amount,
                trade.stop_loss,
                trade.take_profit,
                trade.realized_pnl,
                trade.is_demo,
                trade.ai_recommended,
                trade.expires_at,
                trade.created_at,
                trade.closed_at,
            )
        except Exception as e:
            logger.error(f"Failed to save trade {trade.id}: {e}")
            raise RepositoryError(f"Failed to save trade: {e}") from e

        logger.debug(f"Inserted trade {trade.id}")
        return trade

    async def get_trade_by_id(self, trade_id: UUID) -> Trade | None:
        """
        Retrieve a trade by its ID.

        Raises:
            RepositoryError: If retrieval operation fails
        """
        try:
            record = await self.adapter.fetch_one(
                f"SELECT {TRADE_COLUMNS} FROM trades WHERE id = %s", trade_id
            )
        except Exception as e:
            logger.error(f"Failed to get trade {trade_id}: {e}")
            raise RepositoryError(f"Failed to retrieve trade: {e}") from e

        if record is None:
            return None
        return self._map_record_to_trade(record)

    async def get_active_trades(self, user_id: UUID) -> list[Trade]:
        """Retrieve a user's active trades, newest first."""
        query = f"""
        SELECT {TRADE_COLUMNS} FROM trades
        WHERE user_id = %s AND status = %s
        ORDER BY created_at DESC
        """
        return await self._fetch_trades(query, user_id, TradeStatus.ACTIVE.value)

    async def get_trades_by_user(self, user_id: UUID, limit: int = 50) -> list[Trade]:
        """Retrieve a user's trades of any status, newest first."""
        query = f"""
        SELECT {TRADE_COLUMNS} FROM trades
        WHERE user_id = %s
        ORDER BY created_at DESC
        LIMIT %s
        """
        return await self._fetch_trades(query, user_id, limit)

    async def get_expired_active_trades(self, now: datetime) -> list[Trade]:
        """Retrieve active trades whose expiry is at or before ``now``, oldest expiry first."""
        query = f"""
        SELECT {TRADE_COLUMNS} FROM trades
        WHERE status = %s AND expires_at IS NOT NULL AND expires_at <= %s
        ORDER BY expires_at ASC
        """
        return await self._fetch_trades(query, TradeStatus.ACTIVE.value, now)

    async def complete_trade(self, trade: Trade) -> Trade:
        """
        Persist the completion of a trade while it is still active.

        Raises:
            InvalidTradeStateError: If the stored trade is no longer active
            TradeNotFoundError: If the trade does not exist
            RepositoryError: If the update fails
        """
        update_query = f"""
        UPDATE trades
        SET status = %s, exit_price = %s, realized_pnl = %s, closed_at = %s
        WHERE id = %s AND status = %s
        RETURNING {TRADE_COLUMNS}
        """
        try:
            record = await self.adapter.fetch_one(
                update_query,
                TradeStatus.COMPLETED.value,
                trade.exit_price,
                trade.realized_pnl,
                trade.closed_at,
                trade.id,
                TradeStatus.ACTIVE.value,
            )
        except Exception as e:
            logger.error(f"Failed to complete trade {trade.id}: {e}")
            raise RepositoryError(f"Failed to complete trade: {e}") from e

        if record is not None:
            return self._map_record_to_trade(record)

        stored = await self.get_trade_by_id(trade.id)
        if stored is None:
            raise TradeNotFoundError(trade.id)
        raise InvalidTradeStateError(trade.id, stored.status.value)

    async def _fetch_trades(self, query: str, *args) -> list[Trade]:
        try:
            records = await self.adapter.fetch_all(query, *args)
        except Exception as e:
            logger.error(f"Failed to list trades: {e}")
            raise RepositoryError(f"Failed to retrieve trades: {e}") from e
        return [self._map_record_to_trade(record) for record in records]

    def _map_record_to_trade(self, record: Row) -> Trade:
        """
        Map database record to Trade entity.

        Args:
            record: Database record

        Returns:
            Trade entity
        """
        return Trade(
            id=record["id"],
            user_id=record["user_id"],
            portfolio_id=record["portfolio_id"],
            symbol=record["symbol"],
            direction=record["direction"],
            status=record["status"],
            entry_price=record["entry_price"],
            exit_price=record["exit_price"],
            quantity=record["quantity"],
            leverage=record["leverage"],
            amount=record["amount"],
            stop_loss=record["stop_loss"],
            take_profit=record["take_profit"],
            realized_pnl=record["realized_pnl"],
            is_demo=record["is_demo"],
            ai_recommended=record["ai_recommended"],
            expires_at=record["expires_at"],
            created_at=record["created_at"],
            closed_at=record["closed_at"],
        )
