"""Pydantic models for Microsoft Graph To Do responses.

Field names follow the Graph wire format.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class GraphItemBody(BaseModel):
    """Task body (``itemBody`` resource)."""

    content: str = ""
    contentType: str = "text"


class GraphDateTimeTimeZone(BaseModel):
    """Local date-time plus an IANA or Windows time zone name."""

    dateTime: str
    timeZone: str | None = "UTC"


class GraphTodoList(BaseModel):
    """A To Do task list."""

    model_config = ConfigDict(extra="ignore")

    id: str
    displayName: str
    isOwner: bool = True
    isShared: bool = False
    wellknownListName: str | None = None


class GraphTodoTask(BaseModel):
    """A To Do task."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str | None = None
    status: str | None = None
    importance: str | None = None
    body: GraphItemBody | None = None
    dueDateTime: GraphDateTimeTimeZone | None = None
    completedDateTime: GraphDateTimeTimeZone | None = None
    createdDateTime: str | None = None
    lastModifiedDateTime: str | None = None
