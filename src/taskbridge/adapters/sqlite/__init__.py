"""SQLite adapter module - local database storage implementation."""

from taskbridge.adapters.sqlite.connection import get_connection
from taskbridge.adapters.sqlite.credential_repository import SqliteCredentialRepository
from taskbridge.adapters.sqlite.task_repository import SqliteTaskRepository

__all__ = [
    "SqliteCredentialRepository",
    "SqliteTaskRepository",
    "get_connection",
]
