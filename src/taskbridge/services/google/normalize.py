"""Normalisation of Google Tasks items into RemoteTask snapshots."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from taskbridge.models import RemoteTask
from taskbridge.services.fetcher import NormalizationError

from .models import GoogleTask

# Provider status -> completion flag. Statuses missing here count as incomplete.
STATUS_COMPLETION: dict[str, bool] = {
    "completed": True,
    "needsAction": False,
}
DEFAULT_COMPLETION = False


def completion_for(status: str | None) -> bool:
    """Look up the completion flag for a Google task status."""
    if status is None:
        return DEFAULT_COMPLETION
    return STATUS_COMPLETION.get(status, DEFAULT_COMPLETION)


def parse_rfc3339(value: str) -> datetime:
    """Parse a Tasks API timestamp into an aware UTC datetime."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def has_title(raw: dict[str, Any]) -> bool:
    """Google keeps empty placeholder rows; those carry no title.

    Non-dict items count as titled so normalisation reports them.
    """
    if not isinstance(raw, dict):
        return True
    title = raw.get("title")
    if title is None:
        return False
    return not isinstance(title, str) or bool(title.strip())


def normalize_task(raw: dict[str, Any]) -> RemoteTask:
    """Convert one raw Google task into a RemoteTask.

    ``due`` only carries a date on Google's side; it arrives as midnight
    UTC and is kept that way.

    Raises:
        NormalizationError: If the item is malformed or lacks an
            ``updated`` timestamp
    """
    external_id = raw.get("id") if isinstance(raw, dict) else None
    try:
        task = GoogleTask.model_validate(raw)
        if not task.updated:
            raise NormalizationError("Task has no updated timestamp", task.id)
        completed = completion_for(task.status)
        return RemoteTask(
            external_id=task.id,
            title=task.title.strip() if task.title else "",
            body=task.notes or "",
            due_at=parse_rfc3339(task.due) if task.due else None,
            completed=completed,
            completed_at=parse_rfc3339(task.completed) if completed and task.completed else None,
            last_modified=parse_rfc3339(task.updated),
        )
    except NormalizationError:
        raise
    except (ValidationError, ValueError) as e:
        raise NormalizationError(f"Malformed task: {e}", external_id) from e
