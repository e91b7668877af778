"""SQLite implementation of TaskRepository."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from taskbridge.adapters.sqlite.connection import get_connection
from taskbridge.adapters.utils import (
    generate_uuid,
    now_utc,
    parse_datetime,
    row_to_dict,
    to_iso,
)
from taskbridge.models import LocalTask, LocalTaskFields, SyncStats
from taskbridge.repositories import TaskRepository

_DATETIME_COLUMNS = ("due_at", "completed_at", "created_at", "modified_at")


def _row_to_task(row: sqlite3.Row) -> LocalTask:
    data = row_to_dict(row)
    for column in _DATETIME_COLUMNS:
        data[column] = parse_datetime(data[column])
    data["completed"] = bool(data["completed"])
    return LocalTask(**data)


def _to_column(name: str, value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso(value)
    if name == "completed":
        return int(bool(value))
    return value


class SqliteTaskRepository(TaskRepository):
    """SQLite task store.

    ``update_task`` runs its read-compare-write inside ``BEGIN IMMEDIATE`` so
    the conditional update is atomic against other writers.
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        connection: sqlite3.Connection | None = None,
    ):
        self.db_path = db_path
        self._connection = connection

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self._connection = get_connection(self.db_path)
        return self._connection

    async def find_by_external_id(
        self, user_id: str, external_id: str
    ) -> LocalTask | None:
        row = self.connection.execute(
            "SELECT * FROM tasks WHERE user_id = ? AND external_id = ?",
            (user_id, external_id),
        ).fetchone()
        return _row_to_task(row) if row else None

    async def get_task(self, local_id: str) -> LocalTask | None:
        row = self.connection.execute(
            "SELECT * FROM tasks WHERE id = ?", (local_id,)
        ).fetchone()
        return _row_to_task(row) if row else None

    async def create_task(self, user_id: str, fields: LocalTaskFields) -> LocalTask:
        now = now_utc()
        task_id = generate_uuid()
        try:
            with self.connection:
                self.connection.execute(
                    """
                    INSERT INTO tasks (
                        id, user_id, title, description, due_at, completed,
                        completed_at, external_id, created_at, modified_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        task_id,
                        user_id,
                        fields.title or "",
                        fields.description or "",
                        to_iso(fields.due_at),
                        int(bool(fields.completed)),
                        to_iso(fields.completed_at),
                        fields.external_id,
                        to_iso(now),
                        to_iso(fields.modified_at or now),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ValueError(
                f"External id {fields.external_id!r} is already linked for user {user_id!r}"
            ) from e

        task = await self.get_task(task_id)
        assert task is not None
        return task

    async def update_task(
        self,
        local_id: str,
        fields: LocalTaskFields,
        if_modified_before: datetime | None = None,
    ) -> LocalTask | None:
        changes = fields.model_dump(exclude_unset=True)
        if changes.get("modified_at") is None:
            changes["modified_at"] = now_utc()

        conn = self.connection
        conn.execute("BEGIN IMMEDIATE")
        try:
            row = conn.execute(
                "SELECT modified_at FROM tasks WHERE id = ?", (local_id,)
            ).fetchone()
            if row is None:
                raise KeyError(f"Task not found: {local_id}")

            stored = parse_datetime(row["modified_at"])
            if if_modified_before is not None and stored >= if_modified_before:
                conn.rollback()
                return None

            assignments = ", ".join(f"{name} = ?" for name in changes)
            params = [_to_column(name, value) for name, value in changes.items()]
            conn.execute(
                f"UPDATE tasks SET {assignments} WHERE id = ?",
                (*params, local_id),
            )
            conn.commit()
        except BaseException:
            conn.rollback()
            raise

        return await self.get_task(local_id)

    async def sync_stats(self, user_id: str) -> SyncStats:
        row = self.connection.execute(
            """
            SELECT
                COUNT(*) AS total_tasks,
                COUNT(external_id) AS synced_tasks,
                MAX(CASE WHEN external_id IS NOT NULL THEN modified_at END) AS last_sync
            FROM tasks
            WHERE user_id = ?
            """,
            (user_id,),
        ).fetchone()
        return SyncStats(
            total_tasks=row["total_tasks"],
            synced_tasks=row["synced_tasks"],
            last_sync=parse_datetime(row["last_sync"]),
        )

    async def clear_external_ids(self, user_id: str) -> int:
        with self.connection:
            cursor = self.connection.execute(
                "UPDATE tasks SET external_id = NULL WHERE user_id = ? AND external_id IS NOT NULL",
                (user_id,),
            )
        return cursor.rowcount
