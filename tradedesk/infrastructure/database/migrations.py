"""
Database Migration System

Provides schema versioning and migration management.
Handles database schema evolution and rollback capabilities.
"""

# Standard library imports
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

# Local imports
from tradedesk.application.interfaces.exceptions import RepositoryError

from .adapter import PostgreSQLAdapter
from .schema import MIGRATIONS

logger = logging.getLogger(__name__)


@dataclass
class Migration:
    """Represents a database migration."""

    version: str
    name: str
    up_sql: str
    down_sql: str
    applied_at: datetime | None = None

    @property
    def is_applied(self) -> bool:
        """Check if migration has been applied."""
        return self.applied_at is not None


class MigrationManager:
    """
    Manages database schema migrations.

    Applies and rolls back versioned schema changes and records them in a
    tracking table.
    """

    # Migration table name is a constant - not user input
    MIGRATIONS_TABLE = "schema_migrations"

    def __init__(self, adapter: PostgreSQLAdapter, include_schema: bool = True) -> None:
        """
        Initialize migration manager.

        Args:
            adapter: Database adapter for executing migrations
            include_schema: Register the trade lifecycle schema
        """
        self.adapter = adapter
        self._migrations: list[Migration] = []
        if include_schema:
            for version, name, up_sql, down_sql in MIGRATIONS:
                self.add_migration(version, name, up_sql, down_sql)

    async def initialize(self) -> None:
        """Create the migrations tracking table if it doesn't exist."""
        create_table_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.MIGRATIONS_TABLE} (
            version VARCHAR(50) PRIMARY KEY,
            name VARCHAR(200) NOT NULL,
            applied_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            execution_time_ms INTEGER
        );
        """

        await self.adapter.execute_query(create_table_sql)
        logger.info("Migration system initialized")

    def add_migration(self, version: str, name: str, up_sql: str, down_sql: str = "") -> None:
        """
        Add a migration to the manager.

        Args:
            version: Migration version (e.g., "001")
            name: Migration name (e.g., "create_trades")
            up_sql: SQL to apply the migration
            down_sql: SQL to rollback the migration
        """
        self._migrations.append(
            Migration(version=version, name=name, up_sql=up_sql, down_sql=down_sql)
        )
        logger.debug(f"Added migration: {version} - {name}")

    async def get_applied_migrations(self) -> list[Migration]:
        """
        Get list of applied migrations from database.

        Returns:
            Applied migrations, oldest first
        """
        # nosec B608 - table name is a constant, not user input
        records = await self.adapter.fetch_all(
            f"SELECT version, name, applied_at FROM {self.MIGRATIONS_TABLE} ORDER BY version ASC"
        )

        known = {m.version: m for m in self._migrations}
        applied = []
        for record in records:
            definition = known.get(record["version"])
            applied.append(
                Migration(
                    version=record["version"],
                    name=record["name"],
                    up_sql=definition.up_sql if definition else "",
                    down_sql=definition.down_sql if definition else "",
                    applied_at=record["applied_at"],
                )
            )
        return applied

    async def get_pending_migrations(self) -> list[Migration]:
        """Get migrations not yet applied, in version order."""
        applied_versions = {m.version for m in await self.get_applied_migrations()}
        return [
            m
            for m in sorted(self._migrations, key=lambda x: x.version)
            if m.version not in applied_versions
        ]

    async def apply_migration(self, migration: Migration) -> None:
        """
        Apply a single migration in its own transaction.

        Raises:
            RepositoryError: If migration fails
        """
        start_time = datetime.now(UTC)
        logger.info(f"Applying migration {migration.version}: {migration.name}")

        try:
            await self.adapter.begin_transaction()
            await self.adapter.execute_query(migration.up_sql)

            execution_time = int((datetime.now(UTC) - start_time).total_seconds() * 1000)
            # nosec B608 - table name is a constant, not user input
            await self.adapter.execute_query(
                f"INSERT INTO {self.MIGRATIONS_TABLE} (version, name, applied_at, execution_time_ms) "
                "VALUES (%s, %s, %s, %s)",
                migration.version,
                migration.name,
                start_time,
                execution_time,
            )

            await self.adapter.commit_transaction()

            migration.applied_at = start_time
            logger.info(f"Migration {migration.version} applied successfully in {execution_time}ms")

        except Exception as e:
            await self.adapter.rollback_transaction()
            logger.error(f"Failed to apply migration {migration.version}: {e}")
            raise RepositoryError(f"Migration {migration.version} failed: {e}") from e

    async def rollback_migration(self, migration: Migration) -> None:
        """
        Rollback a single migration.

        Raises:
            RepositoryError: If rollback fails
        """
        if not migration.down_sql:
            raise RepositoryError(f"Migration {migration.version} has no rollback SQL")

        logger.info(f"Rolling back migration {migration.version}: {migration.name}")

        try:
            await self.adapter.begin_transaction()
            await self.adapter.execute_query(migration.down_sql)
            # nosec B608 - table name is a constant, not user input
            await self.adapter.execute_query(
                f"DELETE FROM {self.MIGRATIONS_TABLE} WHERE version = %s", migration.version
            )
            await self.adapter.commit_transaction()

            migration.applied_at = None
            logger.info(f"Migration {migration.version} rolled back successfully")

        except Exception as e:
            await self.adapter.rollback_transaction()
            logger.error(f"Failed to rollback migration {migration.version}: {e}")
            raise RepositoryError(f"Migration rollback {migration.version} failed: {e}") from e

    async def migrate_to_latest(self) -> int:
        """
        Apply all pending migrations.

        Returns:
            Number of migrations applied

        Raises:
            RepositoryError: If any migration fails
        """
        await self.initialize()
        pending_migrations = await self.get_pending_migrations()

        if not pending_migrations:
            logger.info("No pending migrations")
            return 0

        logger.info(f"Applying {len(pending_migrations)} pending migrations")
        for migration in pending_migrations:
            await self.apply_migration(migration)

        logger.info(f"Applied {len(pending_migrations)} migrations successfully")
        return len(pending_migrations)

    async def get_status(self) -> dict[str, Any]:
        """Get migration status."""
        applied = await self.get_applied_migrations()
        pending = await self.get_pending_migrations()
        return {
            "applied_count": len(applied),
            "pending_count": len(pending),
            "current_version": applied[-1].version if applied else None,
            "pending_versions": [m.version for m in pending],
        }
