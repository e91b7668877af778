"""Database schema definitions for the local SQLite store."""

from __future__ import annotations

# Schema version tracking
SCHEMA_VERSION = 1

# One row per (user, provider); the primary key enforces a single live credential
CREATE_CREDENTIALS_TABLE = """
CREATE TABLE IF NOT EXISTS credentials (
    user_id TEXT NOT NULL,
    provider TEXT NOT NULL,
    access_token TEXT NOT NULL,
    refresh_token TEXT,
    expires_at DATETIME NOT NULL,
    scopes TEXT NOT NULL DEFAULT '',
    updated_at DATETIME NOT NULL,
    PRIMARY KEY (user_id, provider)
)
"""

CREATE_TASKS_TABLE = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    due_at DATETIME,
    completed BOOLEAN NOT NULL DEFAULT 0,
    completed_at DATETIME,
    external_id TEXT,
    created_at DATETIME NOT NULL,
    modified_at DATETIME NOT NULL
)
"""

CREATE_TASKS_EXTERNAL_ID_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_user_external_id
ON tasks (user_id, external_id)
WHERE external_id IS NOT NULL
"""

CREATE_TASKS_USER_INDEX = """
CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks (user_id)
"""

ALL_TABLES = [
    CREATE_CREDENTIALS_TABLE,
    CREATE_TASKS_TABLE,
]

ALL_INDEXES = [
    CREATE_TASKS_EXTERNAL_ID_INDEX,
    CREATE_TASKS_USER_INDEX,
]
