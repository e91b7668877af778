"""Pydantic models for Google Tasks API responses.

Field names follow the Tasks API wire format.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class GoogleTaskList(BaseModel):
    """A ``tasklists`` resource."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    updated: str | None = None


class GoogleTask(BaseModel):
    """A ``tasks`` resource."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str | None = None
    notes: str | None = None
    status: str | None = None
    due: str | None = None
    completed: str | None = None
    updated: str | None = None
    parent: str | None = None
    deleted: bool = False
    hidden: bool = False
