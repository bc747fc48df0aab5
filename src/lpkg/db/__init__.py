"""lpkg package store (SQLite)."""

from lpkg.db.connection import Database, database_url
from lpkg.db.migrations import MIGRATIONS, run_migrations
from lpkg.db.repository import PackageRepository
from lpkg.db.schema import initialize

__all__ = [
    "Database",
    "database_url",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "PackageRepository",
]
