"""Normalisation of Graph To Do tasks into RemoteTask snapshots."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from taskbridge.models import RemoteTask
from taskbridge.services.fetcher import NormalizationError

from .models import GraphDateTimeTimeZone, GraphTodoTask

UNTITLED_TASK = "Untitled Task"

# Provider status -> completion flag. Statuses missing here count as incomplete.
STATUS_COMPLETION: dict[str, bool] = {
    "completed": True,
    "notStarted": False,
    "inProgress": False,
    "waitingOnOthers": False,
    "deferred": False,
}
DEFAULT_COMPLETION = False

# Graph emits 7 fractional digits; datetime accepts at most 6
_FRACTION = re.compile(r"(\.\d{6})\d+")


def completion_for(status: str | None) -> bool:
    """Look up the completion flag for a provider status value."""
    if status is None:
        return DEFAULT_COMPLETION
    return STATUS_COMPLETION.get(status, DEFAULT_COMPLETION)


def parse_graph_datetime(value: str, time_zone: str | None = "UTC") -> datetime:
    """Parse a Graph timestamp into an aware UTC datetime.

    Naive values are interpreted in *time_zone*; unknown zones fall back
    to UTC.
    """
    dt = datetime.fromisoformat(_FRACTION.sub(r"\1", value.replace("Z", "+00:00")))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_zone(time_zone))
    return dt.astimezone(UTC)


def _zone(name: str | None):
    if not name or name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return UTC


def _parse_dtz(value: GraphDateTimeTimeZone | None) -> datetime | None:
    if value is None or not value.dateTime:
        return None
    return parse_graph_datetime(value.dateTime, value.timeZone)


def normalize_task(raw: dict[str, Any]) -> RemoteTask:
    """Convert one raw Graph task into a RemoteTask.

    Raises:
        NormalizationError: If the item is malformed or lacks a
            last-modified timestamp
    """
    external_id = raw.get("id") if isinstance(raw, dict) else None
    try:
        task = GraphTodoTask.model_validate(raw)
        if not task.lastModifiedDateTime:
            raise NormalizationError("Task has no lastModifiedDateTime", task.id)
        completed = completion_for(task.status)
        return RemoteTask(
            external_id=task.id,
            title=task.title or UNTITLED_TASK,
            body=task.body.content if task.body else "",
            due_at=_parse_dtz(task.dueDateTime),
            completed=completed,
            completed_at=_parse_dtz(task.completedDateTime) if completed else None,
            last_modified=parse_graph_datetime(task.lastModifiedDateTime),
        )
    except NormalizationError:
        raise
    except (ValidationError, ValueError) as e:
        raise NormalizationError(f"Malformed task: {e}", external_id) from e
