"""
Database infrastructure.

psycopg3 adapter, connection pool lifecycle and schema migrations.
"""

from .adapter import PostgreSQLAdapter
from .connection import DatabaseConnection, build_dsn
from .migrations import Migration, MigrationManager

__all__ = [
    "DatabaseConnection",
    "Migration",
    "MigrationManager",
    "PostgreSQLAdapter",
    "build_dsn",
]
