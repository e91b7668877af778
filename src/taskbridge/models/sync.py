"""Sync result models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .task import LocalTask


class PerItemSyncError(BaseModel):
    """Failure while processing a single remote item. Carried, never raised."""

    external_id: str | None = None
    error_type: str
    message: str


class SyncResult(BaseModel):
    """Aggregate outcome of one sync invocation."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    tasks: list[LocalTask] = Field(default_factory=list)
    errors: list[PerItemSyncError] = Field(default_factory=list)
    truncated: bool = False
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.skipped + self.errored

    @property
    def success(self) -> bool:
        return self.errored == 0 and not self.truncated

    def add_error(self, error: PerItemSyncError) -> None:
        self.errors.append(error)
        self.errored += 1

    def summary(self) -> dict[str, Any]:
        """JSON-serializable summary for controllers and the CLI."""
        return {
            "success": self.success,
            "truncated": self.truncated,
            "results": {
                "created": self.created,
                "updated": self.updated,
                "skipped": self.skipped,
                "errors": self.errored,
            },
            "tasks": [
                {
                    "id": task.id,
                    "title": task.title,
                    "completed": task.completed,
                    "due_at": task.due_at.isoformat() if task.due_at else None,
                    "external_id": task.external_id,
                }
                for task in self.tasks
            ],
            "errors": [error.model_dump() for error in self.errors],
        }


class SyncStats(BaseModel):
    """Per-user sync statistics derived from the task store."""

    total_tasks: int = 0
    synced_tasks: int = 0
    last_sync: datetime | None = None
