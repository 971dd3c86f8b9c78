"""
Command-line entry point.

    python -m tradedesk migrate
    python -m tradedesk sweeper
    python -m tradedesk prices [--symbols btcusdt,ethusdt]
"""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from tradedesk.application.config import ApplicationConfig, set_config
from tradedesk.application.config_loader import ConfigLoader
from tradedesk.application.services import ExpirationSweeper, TradeLifecycle
from tradedesk.infrastructure.database import DatabaseConnection, MigrationManager, PostgreSQLAdapter
from tradedesk.infrastructure.market_data import BinancePriceFeed, format_volume
from tradedesk.infrastructure.monitoring import setup_logging
from tradedesk.infrastructure.notifications import InProcessTradeEventBus
from tradedesk.infrastructure.repositories import PostgreSQLUnitOfWorkFactory

logger = logging.getLogger("tradedesk")


async def run_migrations(config: ApplicationConfig) -> int:
    connection = DatabaseConnection(config.database)
    pool = await connection.connect()
    try:
        manager = MigrationManager(PostgreSQLAdapter(pool, config.database.command_timeout))
        applied = await manager.migrate_to_latest()
        status = await manager.get_status()
        logger.info(f"Schema at version {status['current_version']} ({applied} applied)")
    finally:
        await connection.disconnect()
    return 0


async def run_sweeper(config: ApplicationConfig) -> int:
    connection = DatabaseConnection(config.database)
    await connection.connect()
    feed = BinancePriceFeed(config.feed)
    await feed.start()

    factory = PostgreSQLUnitOfWorkFactory(connection)
    lifecycle = TradeLifecycle(factory, feed, event_publisher=InProcessTradeEventBus())
    sweeper = ExpirationSweeper(
        lifecycle,
        factory,
        interval_seconds=config.sweeper.interval_seconds,
        lease_ttl_seconds=config.sweeper.lease_ttl_seconds,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, sweeper.stop)

    logger.info(f"Sweeper {sweeper.owner_id} running every {sweeper.interval_seconds}s")
    try:
        await sweeper.run()
    finally:
        await feed.stop()
        await connection.disconnect()
    return 0


async def stream_prices(config: ApplicationConfig) -> int:
    feed = BinancePriceFeed(config.feed)
    await feed.start()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, feed.close)

    try:
        async for mark in feed.subscribe(config.feed.symbols):
            print(
                f"{mark.timestamp:%H:%M:%S} {mark.symbol:<10} {mark.price:>14} "
                f"{mark.change_percent:>+7}% vol {format_volume(mark.volume)}",
                flush=True,
            )
    finally:
        await feed.stop()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tradedesk", description="Trade lifecycle engine")
    parser.add_argument("--config", help="YAML configuration file (default: environment)")
    parser.add_argument("--env-file", help="dotenv file loaded before reading the environment")
    parser.add_argument("--log-level", help="Override the configured log level")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("migrate", help="Apply pending schema migrations")
    commands.add_parser("sweeper", help="Close expired trades until interrupted")
    prices = commands.add_parser("prices", help="Stream marks to stdout")
    prices.add_argument("--symbols", help="Comma-separated symbols, e.g. btcusdt,ethusdt")
    return parser


def load_config(args: argparse.Namespace) -> ApplicationConfig:
    if args.config:
        config = ConfigLoader.from_yaml(args.config)
    else:
        config = ConfigLoader.from_env(args.env_file)

    if args.log_level:
        config.logging.level = args.log_level
    if getattr(args, "symbols", None):
        config.feed.symbols = [s.strip().lower() for s in args.symbols.split(",") if s.strip()]

    config.validate()
    set_config(config)
    return config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args)
    setup_logging(config.logging)

    commands = {
        "migrate": run_migrations,
        "sweeper": run_sweeper,
        "prices": stream_prices,
    }
    try:
        return asyncio.run(commands[args.command](config))
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
