"""SQLite connection layer for the package store."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

DEFAULT_DB_URL = "lpkg.db"


def database_url() -> str:
    """Resolve the store path from ``LPKG_DATABASE_URL``, defaulting to ``lpkg.db`` in the CWD."""
    return os.environ.get("LPKG_DATABASE_URL") or DEFAULT_DB_URL


class Database:
    """Package store database; one short-lived connection per logical operation."""

    def __init__(self, db_path: Path | str | None = None) -> None:
        """Store the database path. Call connect() to open a connection.

        Args:
            db_path: Path to the SQLite file (created if missing). Defaults to
                :func:`database_url`.
        """
        self.db_path = Path(db_path if db_path is not None else database_url())
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection with row access by column name."""
        if self.db_path.parent != Path("."):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None
