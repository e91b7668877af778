"""Task data models.

RemoteTask is the provider-agnostic snapshot produced by a fetch. LocalTask
is the system of record, owned by the task store.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ListFilter(BaseModel):
    """Selects which remote list to pull and how."""

    list_id: str | None = None
    list_name: str | None = None
    include_completed: bool = True


class RemoteTaskList(BaseModel):
    """A task list on the provider side."""

    id: str
    display_name: str
    is_owner: bool = True
    is_shared: bool = False
    wellknown_list_name: str | None = None


class RemoteTask(BaseModel):
    """Immutable, normalised view of one external task."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    title: str
    body: str = ""
    due_at: datetime | None = None
    completed: bool = False
    completed_at: datetime | None = None
    last_modified: datetime


class LocalTask(BaseModel):
    """Locally owned task record.

    ``external_id`` is a weak back-reference used only for matching; it is
    None for locally authored tasks.
    """

    id: str
    user_id: str
    title: str
    description: str = ""
    due_at: datetime | None = None
    completed: bool = False
    completed_at: datetime | None = None
    external_id: str | None = None
    created_at: datetime
    modified_at: datetime


class LocalTaskFields(BaseModel):
    """Writable fields for creating or updating a LocalTask.

    Only fields that are explicitly set are applied on update.
    """

    title: str | None = None
    description: str | None = None
    due_at: datetime | None = None
    completed: bool | None = None
    completed_at: datetime | None = None
    external_id: str | None = None
    modified_at: datetime | None = Field(default=None)
