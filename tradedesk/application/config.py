"""
Application Configuration - Central configuration management.

This module provides configuration management for the application: database
connection, price feed transport, sweeper cadence, wallet limits and logging.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class DatabaseConfig:
    """Database configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "tradedesk"
    user: str = "postgres"
    password: str = ""
    min_pool_size: int = 5
    max_pool_size: int = 20
    command_timeout: float = 60.0

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create configuration from environment variables."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "tradedesk"),
            user=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD", ""),
            min_pool_size=int(os.getenv("DB_MIN_POOL_SIZE", "5")),
            max_pool_size=int(os.getenv("DB_MAX_POOL_SIZE", "20")),
            command_timeout=float(os.getenv("DB_COMMAND_TIMEOUT", "60")),
        )


DEFAULT_FEED_SYMBOLS = ("btcusdt", "ethusdt", "bnbusdt", "solusdt")


@dataclass
class PriceFeedConfig:
    """Price feed configuration."""

    ws_url: str = "wss://stream.binance.com:9443/ws"
    rest_url: str = "https://api.binance.com/api/v3/ticker/24hr"
    symbols: list[str] = field(default_factory=lambda: list(DEFAULT_FEED_SYMBOLS))
    stale_after_seconds: float = 30.0
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 30.0
    request_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "PriceFeedConfig":
        """Create configuration from environment variables."""
        symbols = os.getenv("FEED_SYMBOLS")
        return cls(
            ws_url=os.getenv("FEED_WS_URL", "wss://stream.binance.com:9443/ws"),
            rest_url=os.getenv("FEED_REST_URL", "https://api.binance.com/api/v3/ticker/24hr"),
            symbols=(
                [s.strip().lower() for s in symbols.split(",") if s.strip()]
                if symbols
                else list(DEFAULT_FEED_SYMBOLS)
            ),
            stale_after_seconds=float(os.getenv("FEED_STALE_AFTER_SECONDS", "30")),
            reconnect_initial_delay=float(os.getenv("FEED_RECONNECT_INITIAL_DELAY", "1")),
            reconnect_max_delay=float(os.getenv("FEED_RECONNECT_MAX_DELAY", "30")),
            request_timeout=float(os.getenv("FEED_REQUEST_TIMEOUT", "10")),
        )


@dataclass
class SweeperConfig:
    """Expiration sweeper configuration."""

    interval_seconds: float = 1.0
    lease_ttl_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "SweeperConfig":
        """Create configuration from environment variables."""
        return cls(
            interval_seconds=float(os.getenv("SWEEPER_INTERVAL_SECONDS", "1")),
            lease_ttl_seconds=float(os.getenv("SWEEPER_LEASE_TTL_SECONDS", "30")),
        )


@dataclass
class WalletConfig:
    """Wallet configuration."""

    min_withdrawal: Decimal = Decimal("10")

    @classmethod
    def from_env(cls) -> "WalletConfig":
        """Create configuration from environment variables."""
        return cls(min_withdrawal=Decimal(os.getenv("WALLET_MIN_WITHDRAWAL", "10")))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False
    file: str | None = None
    max_bytes: int = 10485760  # 10MB
    backup_count: int = 5

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Create configuration from environment variables."""
        file_path = os.getenv("LOG_FILE")
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            json=_env_bool("LOG_JSON", "false"),
            file=file_path if file_path else None,
            max_bytes=int(os.getenv("LOG_MAX_BYTES", "10485760")),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
        )


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    environment: Environment = Environment.DEVELOPMENT
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    feed: PriceFeedConfig = field(default_factory=PriceFeedConfig)
    sweeper: SweeperConfig = field(default_factory=SweeperConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "environment": self.environment.value,
            "database": {
                "host": self.database.host,
                "port": self.database.port,
                "database": self.database.database,
                "user": self.database.user,
                "password": self.database.password,
                "min_pool_size": self.database.min_pool_size,
                "max_pool_size": self.database.max_pool_size,
                "command_timeout": self.database.command_timeout,
            },
            "feed": {
                "ws_url": self.feed.ws_url,
                "rest_url": self.feed.rest_url,
                "symbols": list(self.feed.symbols),
                "stale_after_seconds": self.feed.stale_after_seconds,
                "reconnect_initial_delay": self.feed.reconnect_initial_delay,
                "reconnect_max_delay": self.feed.reconnect_max_delay,
                "request_timeout": self.feed.request_timeout,
            },
            "sweeper": {
                "interval_seconds": self.sweeper.interval_seconds,
                "lease_ttl_seconds": self.sweeper.lease_ttl_seconds,
            },
            "wallet": {
                "min_withdrawal": str(self.wallet.min_withdrawal),
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "json": self.logging.json,
                "file": self.logging.file,
                "max_bytes": self.logging.max_bytes,
                "backup_count": self.logging.backup_count,
            },
        }

    def validate(self) -> bool:
        """
        Validate the configuration.

        Returns:
            True if valid, raises exception otherwise
        """
        if self.environment == Environment.PRODUCTION and not self.database.password:
            raise ValueError("Database password required for production")

        if self.database.min_pool_size > self.database.max_pool_size:
            raise ValueError("Database min pool size cannot exceed max pool size")

        if not self.feed.symbols:
            raise ValueError("At least one feed symbol is required")
        if self.feed.reconnect_initial_delay > self.feed.reconnect_max_delay:
            raise ValueError("Feed reconnect initial delay cannot exceed max delay")

        if self.sweeper.interval_seconds <= 0:
            raise ValueError("Sweeper interval must be positive")
        if self.sweeper.lease_ttl_seconds <= self.sweeper.interval_seconds:
            raise ValueError("Sweeper lease TTL must be longer than the sweep interval")

        if self.wallet.min_withdrawal < 0:
            raise ValueError("Minimum withdrawal cannot be negative")

        return True


# Global configuration singleton
_config: ApplicationConfig | None = None


def get_config() -> ApplicationConfig:
    """
    Get the application configuration singleton.

    Returns:
        ApplicationConfig: The application configuration
    """
    global _config
    if _config is None:
        # Imported here, config_loader imports this module
        from tradedesk.application.config_loader import ConfigLoader

        _config = ConfigLoader.from_env()
    return _config


def set_config(config: ApplicationConfig) -> None:
    """
    Set the application configuration.

    Args:
        config: The new configuration
    """
    global _config
    _config = config


def reset_config() -> None:
    """Reset the configuration singleton."""
    global _config
    _config = None
