"""Database connection management for the SQLite store.

One connection per database path, WAL mode, migrations applied on open.
"""

from __future__ import annotations

import atexit
import os
import sqlite3
from pathlib import Path

from platformdirs import user_data_dir

from taskbridge.adapters.sqlite.migrations.m001_initial_schema import initial_migration
from taskbridge.adapters.sqlite.migrations.runner import MigrationRunner

MIGRATIONS = [
    initial_migration,
]


def default_db_path() -> Path:
    return Path(user_data_dir("taskbridge")) / "taskbridge.db"


class DatabaseConnection:
    """Process-wide connection cache keyed by database path."""

    _connections: dict[str, sqlite3.Connection] = {}
    _atexit_registered = False

    @classmethod
    def get_connection(cls, db_path: str | Path | None = None) -> sqlite3.Connection:
        """Get or create a configured connection for *db_path*.

        ``":memory:"`` yields a fresh private database each call.
        """
        if db_path == ":memory:":
            return cls._open(":memory:")

        path = Path(db_path) if db_path is not None else default_db_path()
        key = str(path)
        if key in cls._connections:
            return cls._connections[key]

        path.parent.mkdir(parents=True, exist_ok=True)
        is_new_database = not path.exists()

        connection = cls._open(key)

        # Owner read/write only: the file holds OAuth tokens
        if is_new_database:
            os.chmod(path, 0o600)

        cls._connections[key] = connection
        if not cls._atexit_registered:
            atexit.register(cls.close_all)
            cls._atexit_registered = True
        return connection

    @classmethod
    def _open(cls, target: str) -> sqlite3.Connection:
        connection = sqlite3.connect(target, check_same_thread=False, timeout=30.0)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        if target != ":memory:":
            connection.execute("PRAGMA journal_mode = WAL")
        MigrationRunner(connection).run_migrations(MIGRATIONS)
        return connection

    @classmethod
    def close_all(cls) -> None:
        """Close every cached connection."""
        for key, connection in list(cls._connections.items()):
            try:
                connection.commit()
                connection.close()
            except sqlite3.Error:
                pass
            finally:
                cls._connections.pop(key, None)


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """Helper function to get a database connection."""
    return DatabaseConnection.get_connection(db_path)
