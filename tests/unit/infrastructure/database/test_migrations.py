"""Unit tests for MigrationManager and the schema it applies."""

# Standard library imports
from datetime import UTC, datetime

# Third-party imports
import pytest

# Local imports
from tradedesk.application.config import DatabaseConfig
from tradedesk.application.interfaces.exceptions import RepositoryError
from tradedesk.infrastructure.database.connection import build_dsn
from tradedesk.infrastructure.database.migrations import MigrationManager
from tradedesk.infrastructure.database.schema import MIGRATIONS


@pytest.mark.unit
class TestSchema:
    def test_versions_are_ordered_and_unique(self):
        versions = [version for version, *_ in MIGRATIONS]

        assert versions == sorted(versions)
        assert len(set(versions)) == len(versions)

    def test_tables_are_created(self):
        up_sql = "\n".join(up for _, _, up, _ in MIGRATIONS)

        for table in ("portfolios", "trades", "transactions", "trade_leases"):
            assert f"CREATE TABLE IF NOT EXISTS {table}" in up_sql


@pytest.mark.unit
class TestMigrationManager:
    @pytest.mark.asyncio
    async def test_applies_pending_in_order(self, mock_adapter):
        manager = MigrationManager(mock_adapter)

        applied = await manager.migrate_to_latest()

        assert applied == len(MIGRATIONS)
        assert mock_adapter.begin_transaction.await_count == len(MIGRATIONS)
        assert mock_adapter.commit_transaction.await_count == len(MIGRATIONS)
        inserted = [
            c.args[1]
            for c in mock_adapter.execute_query.call_args_list
            if c.args[0].startswith("INSERT INTO schema_migrations")
        ]
        assert inserted == [version for version, *_ in MIGRATIONS]

    @pytest.mark.asyncio
    async def test_skips_applied(self, mock_adapter):
        first_version, first_name, *_ = MIGRATIONS[0]
        mock_adapter.fetch_all.return_value = [
            {"version": first_version, "name": first_name, "applied_at": datetime.now(UTC)}
        ]
        manager = MigrationManager(mock_adapter)

        status = await manager.get_status()

        assert status["applied_count"] == 1
        assert status["current_version"] == first_version
        assert status["pending_count"] == len(MIGRATIONS) - 1

    @pytest.mark.asyncio
    async def test_failure_rolls_back(self, mock_adapter):
        mock_adapter.execute_query.side_effect = ["EXECUTE 0", OSError("syntax")]
        manager = MigrationManager(mock_adapter)

        with pytest.raises(RepositoryError):
            await manager.migrate_to_latest()

        mock_adapter.rollback_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rollback_requires_down_sql(self, mock_adapter):
        manager = MigrationManager(mock_adapter, include_schema=False)
        manager.add_migration("900", "irreversible", "SELECT 1")

        with pytest.raises(RepositoryError):
            await manager.rollback_migration((await manager.get_pending_migrations())[0])


@pytest.mark.unit
class TestBuildDsn:
    def test_dsn_without_password(self):
        dsn = build_dsn(DatabaseConfig(host="db", port=5433, database="desk", user="app"))

        assert "host=db" in dsn
        assert "port=5433" in dsn
        assert "dbname=desk" in dsn
        assert "password" not in dsn

    def test_dsn_with_password(self):
        dsn = build_dsn(DatabaseConfig(password="s3cret"))

        assert "password=s3cret" in dsn
