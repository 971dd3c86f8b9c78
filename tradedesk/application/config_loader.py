"""
Configuration Loader - Handles IO operations for configuration management.

This module is responsible for loading and saving configuration from/to
various sources (YAML files, environment variables and ``.env`` files) while
keeping the ApplicationConfig class focused on data representation and
validation.
"""

import os
from decimal import Decimal

import yaml
from dotenv import load_dotenv

from tradedesk.application.config import (
    ApplicationConfig,
    DatabaseConfig,
    Environment,
    LoggingConfig,
    PriceFeedConfig,
    SweeperConfig,
    WalletConfig,
)


class ConfigLoader:
    """Handles loading and saving of configuration from various sources."""

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> ApplicationConfig:
        """
        Create configuration from environment variables.

        Values from a ``.env`` file are loaded first; variables already set in
        the process environment take precedence.

        Args:
            dotenv_path: Explicit .env file, defaults to searching upwards

        Returns:
            ApplicationConfig: Configuration loaded from environment
        """
        load_dotenv(dotenv_path)

        env_str = os.getenv("ENVIRONMENT", "development")
        try:
            environment = Environment(env_str)
        except ValueError:
            raise ValueError(f"Invalid environment: {env_str}")

        return ApplicationConfig(
            environment=environment,
            database=DatabaseConfig.from_env(),
            feed=PriceFeedConfig.from_env(),
            sweeper=SweeperConfig.from_env(),
            wallet=WalletConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_yaml(cls, path: str) -> ApplicationConfig:
        """
        Load configuration from YAML file.

        Sections and keys that are absent keep their defaults.

        Args:
            path: Path to YAML configuration file

        Returns:
            ApplicationConfig: Configuration loaded from YAML file
        """
        with open(path) as f:
            data = yaml.safe_load(f)

        config = ApplicationConfig()

        # Handle empty or null YAML files
        if not data:
            return config

        if "environment" in data:
            config.environment = Environment(data["environment"])

        if "database" in data:
            db_data = data["database"]
            config.database = DatabaseConfig(
                host=db_data.get("host", config.database.host),
                port=db_data.get("port", config.database.port),
                database=db_data.get("database", config.database.database),
                user=db_data.get("user", config.database.user),
                password=db_data.get("password", config.database.password),
                min_pool_size=db_data.get("min_pool_size", config.database.min_pool_size),
                max_pool_size=db_data.get("max_pool_size", config.database.max_pool_size),
                command_timeout=db_data.get("command_timeout", config.database.command_timeout),
            )

        if "feed" in data:
            feed_data = data["feed"]
            config.feed = PriceFeedConfig(
                ws_url=feed_data.get("ws_url", config.feed.ws_url),
                rest_url=feed_data.get("rest_url", config.feed.rest_url),
                symbols=[s.lower() for s in feed_data.get("symbols", config.feed.symbols)],
                stale_after_seconds=feed_data.get(
                    "stale_after_seconds", config.feed.stale_after_seconds
                ),
                reconnect_initial_delay=feed_data.get(
                    "reconnect_initial_delay", config.feed.reconnect_initial_delay
                ),
                reconnect_max_delay=feed_data.get(
                    "reconnect_max_delay", config.feed.reconnect_max_delay
                ),
                request_timeout=feed_data.get("request_timeout", config.feed.request_timeout),
            )

        if "sweeper" in data:
            sweeper_data = data["sweeper"]
            config.sweeper = SweeperConfig(
                interval_seconds=sweeper_data.get(
                    "interval_seconds", config.sweeper.interval_seconds
                ),
                lease_ttl_seconds=sweeper_data.get(
                    "lease_ttl_seconds", config.sweeper.lease_ttl_seconds
                ),
            )

        if "wallet" in data:
            wallet_data = data["wallet"]
            config.wallet = WalletConfig(
                min_withdrawal=Decimal(
                    str(wallet_data.get("min_withdrawal", config.wallet.min_withdrawal))
                ),
            )

        if "logging" in data:
            log_data = data["logging"]
            config.logging = LoggingConfig(
                level=log_data.get("level", config.logging.level),
                format=log_data.get("format", config.logging.format),
                json=log_data.get("json", config.logging.json),
                file=log_data.get("file", config.logging.file),
                max_bytes=log_data.get("max_bytes", config.logging.max_bytes),
                backup_count=log_data.get("backup_count", config.logging.backup_count),
            )

        return config

    @classmethod
    def to_yaml(cls, config: ApplicationConfig) -> str:
        """
        Convert configuration to YAML string.

        Args:
            config: ApplicationConfig instance to convert

        Returns:
            str: YAML representation of the configuration
        """
        return yaml.dump(config.to_dict(), default_flow_style=False)

    @classmethod
    def save_to_yaml(cls, config: ApplicationConfig, path: str) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            f.write(cls.to_yaml(config))
