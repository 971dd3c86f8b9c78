"""
PostgreSQL Portfolio Repository Implementation

Concrete implementation of IPortfolioRepository using PostgreSQL database.
Balance changes are single conditional UPDATE ... RETURNING statements, so two
sessions debiting the same portfolio serialise on the row lock instead of
overwriting each other.
"""

# Standard library imports
import logging
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

# Local imports
from tradedesk.application.interfaces.exceptions import (
    IntegrityError,
    PortfolioNotFoundError,
    RepositoryError,
)
from tradedesk.application.interfaces.repositories import IPortfolioRepository
from tradedesk.domain.entities.portfolio import Portfolio
from tradedesk.domain.exceptions import InsufficientBalanceError
from tradedesk.infrastructure.database.adapter import PostgreSQLAdapter, Row

logger = logging.getLogger(__name__)

PORTFOLIO_COLUMNS = """
    id, user_id, name, balance, demo_balance, total_realized_pnl,
    is_default, version, created_at, updated_at
"""

# Column names are constants keyed by the demo flag, never caller input
_BALANCE_COLUMNS = {True: "demo_balance", False: "balance"}


class PostgreSQLPortfolioRepository(IPortfolioRepository):
    """
    PostgreSQL implementation of IPortfolioRepository.

    Maps between Portfolio domain entities and database records. Every
    balance mutation bumps ``version``.
    """

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        """
        Initialize repository with database adapter.

        Args:
            adapter: PostgreSQL database adapter
        """
        self.adapter = adapter

    async def save_portfolio(self, portfolio: Portfolio) -> Portfolio:
        """
        Insert a new portfolio.

        Raises:
            IntegrityError: If the user already has a default portfolio
            RepositoryError: If save operation fails
        """
        insert_query = f"""
        INSERT INTO portfolios ({PORTFOLIO_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        try:
            await self.adapter.execute_query(
                insert_query,
                portfolio.id,
                portfolio.user_id,
                portfolio.name,
                portfolio.balance,
                portfolio.demo_balance,
                portfolio.total_realized_pnl,
                portfolio.is_default,
                portfolio.version,
                portfolio.created_at,
                portfolio.updated_at,
            )
        except IntegrityError:
            raise
        except Exception as e:
            logger.error(f"Failed to save portfolio {portfolio.id}: {e}")
            raise RepositoryError(f"Failed to save portfolio: {e}") from e

        logger.info(f"Created portfolio {portfolio.id} for user {portfolio.user_id}")
        return portfolio

    async def get_portfolio_by_id(self, portfolio_id: UUID) -> Portfolio | None:
        """
        Retrieve a portfolio by its ID.

        Raises:
            RepositoryError: If retrieval operation fails
        """
        try:
            record = await self.adapter.fetch_one(
                f"SELECT {PORTFOLIO_COLUMNS} FROM portfolios WHERE id = %s", portfolio_id
            )
        except Exception as e:
            logger.error(f"Failed to get portfolio {portfolio_id}: {e}")
            raise RepositoryError(f"Failed to retrieve portfolio: {e}") from e

        if record is None:
            return None
        return self._map_record_to_portfolio(record)

    async def get_default_portfolio(self, user_id: UUID) -> Portfolio | None:
        """
        Retrieve the user's default portfolio.

        Raises:
            RepositoryError: If retrieval operation fails
        """
        try:
            record = await self.adapter.fetch_one(
                f"SELECT {PORTFOLIO_COLUMNS} FROM portfolios WHERE user_id = %s AND is_default",
                user_id,
            )
        except Exception as e:
            logger.error(f"Failed to get default portfolio of user {user_id}: {e}")
            raise RepositoryError(f"Failed to retrieve portfolio: {e}") from e

        if record is None:
            return None
        return self._map_record_to_portfolio(record)

    async def debit_balance(self, portfolio_id: UUID, is_demo: bool, amount: Decimal) -> Portfolio:
        """
        Decrease the targeted balance only while it still covers the amount.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            InsufficientBalanceError: If amount exceeds the targeted field
            RepositoryError: If the update fails
        """
        column = _BALANCE_COLUMNS[is_demo]
        update_query = f"""
        UPDATE portfolios
        SET {column} = {column} - %s, version = version + 1, updated_at = %s
        WHERE id = %s AND {column} >= %s
        RETURNING {PORTFOLIO_COLUMNS}
        """
        try:
            record = await self.adapter.fetch_one(
                update_query, amount, datetime.now(UTC), portfolio_id, amount
            )
        except Exception as e:
            logger.error(f"Failed to debit portfolio {portfolio_id}: {e}")
            raise RepositoryError(f"Failed to debit portfolio: {e}") from e

        if record is not None:
            return self._map_record_to_portfolio(record)

        # No row matched: either the portfolio is missing or the balance is short
        current = await self.get_portfolio_by_id(portfolio_id)
        if current is None:
            raise PortfolioNotFoundError(portfolio_id)
        raise InsufficientBalanceError(portfolio_id, amount, current.balance_for(is_demo), is_demo)

    async def credit_balance(
        self,
        portfolio_id: UUID,
        is_demo: bool,
        amount: Decimal,
        realized_pnl_delta: Decimal,
    ) -> Portfolio:
        """
        Increase the targeted balance, floored at zero, and accumulate realized P/L.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            RepositoryError: If the update fails
        """
        column = _BALANCE_COLUMNS[is_demo]
        update_query = f"""
        UPDATE portfolios
        SET {column} = GREATEST({column} + %s, 0),
            total_realized_pnl = total_realized_pnl + %s,
            version = version + 1,
            updated_at = %s
        WHERE id = %s
        RETURNING {PORTFOLIO_COLUMNS}
        """
        try:
            record = await self.adapter.fetch_one(
                update_query, amount, realized_pnl_delta, datetime.now(UTC), portfolio_id
            )
        except Exception as e:
            logger.error(f"Failed to credit portfolio {portfolio_id}: {e}")
            raise RepositoryError(f"Failed to credit portfolio: {e}") from e

        if record is None:
            raise PortfolioNotFoundError(portfolio_id)
        return self._map_record_to_portfolio(record)

    def _map_record_to_portfolio(self, record: Row) -> Portfolio:
        """
        Map database record to Portfolio entity.

        Args:
            record: Database record

        Returns:
            Portfolio entity
        """
        return Portfolio(
            id=record["id"],
            user_id=record["user_id"],
            name=record["name"],
            balance=record["balance"],
            demo_balance=record["demo_balance"],
            total_realized_pnl=record["total_realized_pnl"],
            is_default=record["is_default"],
            version=record["version"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )
