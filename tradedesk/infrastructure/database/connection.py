"""
Database Connection Management

Provides the psycopg3 connection pool lifecycle: DSN construction, startup
with retry and shutdown.
"""

# Standard library imports
import logging

# Third-party imports
import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import AsyncConnectionPool

# Local imports
from tradedesk.application.config import DatabaseConfig
from tradedesk.application.interfaces.exceptions import ConnectionError
from tradedesk.infrastructure.resilience.retry import (
    RetryConfig,
    RetryExhaustedException,
    retry_async,
)

logger = logging.getLogger(__name__)


def build_dsn(config: DatabaseConfig) -> str:
    """Build a libpq connection string from the database configuration."""
    params = {
        "host": config.host,
        "port": config.port,
        "dbname": config.database,
        "user": config.user,
    }
    if config.password:
        params["password"] = config.password
    return make_conninfo(**params)


class DatabaseConnection:
    """
    Database connection manager.

    Owns a single psycopg3 connection pool shared by every unit of work.
    """

    def __init__(self, config: DatabaseConfig, retry_config: RetryConfig | None = None) -> None:
        """
        Initialize connection manager.

        Args:
            config: Database configuration
            retry_config: Startup retry policy
        """
        self.config = config
        self._pool: AsyncConnectionPool | None = None
        self._retry_config = retry_config or RetryConfig(
            max_retries=4,
            initial_delay=0.5,
            max_delay=30.0,
            retryable_exceptions=(psycopg.OperationalError, TimeoutError, OSError),
        )

    @property
    def is_connected(self) -> bool:
        """Check if connection pool is active."""
        return self._pool is not None and not self._pool.closed

    @property
    def pool(self) -> AsyncConnectionPool:
        """
        Get the open pool.

        Raises:
            ConnectionError: If connect() has not completed
        """
        if self._pool is None or self._pool.closed:
            raise ConnectionError("Database is not connected")
        return self._pool

    async def connect(self) -> AsyncConnectionPool:
        """
        Establish database connection pool with retry logic.

        Returns:
            psycopg3 async connection pool

        Raises:
            ConnectionError: If connection fails after all retries
        """
        if self.is_connected and self._pool is not None:
            return self._pool

        logger.info(
            f"Connecting to database: {self.config.host}:{self.config.port}/{self.config.database}"
        )
        try:
            self._pool = await retry_async(self._open_pool, config=self._retry_config)
        except RetryExhaustedException as e:
            logger.error(f"Failed to connect to database: {e}")
            raise ConnectionError(f"Failed to connect to database: {e.last_exception}") from e

        logger.info(
            f"Database connected. Pool size: {self.config.min_pool_size}-{self.config.max_pool_size}"
        )
        return self._pool

    async def _open_pool(self) -> AsyncConnectionPool:
        pool = AsyncConnectionPool(
            conninfo=build_dsn(self.config),
            min_size=self.config.min_pool_size,
            max_size=self.config.max_pool_size,
            timeout=self.config.command_timeout,
            open=False,
        )
        try:
            await pool.open(wait=True, timeout=self.config.command_timeout)
            async with pool.connection() as conn, conn.cursor() as cur:
                await cur.execute("SELECT 1")
                await cur.fetchone()
        except BaseException:
            await pool.close()
            raise
        return pool

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self._pool is None:
            return

        logger.info("Disconnecting from database...")
        await self._pool.close()
        self._pool = None
        logger.info("Database disconnected")

    def __str__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        return (
            f"DatabaseConnection({self.config.host}:{self.config.port}/"
            f"{self.config.database}, {status})"
        )
