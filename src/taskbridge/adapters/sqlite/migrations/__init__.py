"""Database migration system for the SQLite store."""

from .runner import Migration, MigrationRunner

__all__ = ["Migration", "MigrationRunner"]
