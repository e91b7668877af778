"""Provider-neutral remote task fetching.

Defines the page model and the Protocol the reconciliation engine speaks,
plus a small httpx base class shared by the concrete provider fetchers.
Fetchers never retry and never refresh tokens; both are the orchestrator's
job.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, Field

from taskbridge.exceptions import ProviderRejected, ProviderUnavailable
from taskbridge.models import ListFilter, PerItemSyncError, RemoteTask, RemoteTaskList
from taskbridge.services.provider_http import raise_for_provider_status
from taskbridge.utils.logger import get_logger

DEFAULT_TIMEOUT = 30.0


class NormalizationError(ValueError):
    """Raised when a raw provider item cannot become a RemoteTask."""

    def __init__(self, message: str, external_id: str | None = None):
        super().__init__(message)
        self.external_id = external_id


class RemotePage(BaseModel):
    """One page of a remote task listing."""

    tasks: list[RemoteTask] = Field(default_factory=list)
    failures: list[PerItemSyncError] = Field(default_factory=list)
    next_link: str | None = None


@runtime_checkable
class TaskFetcherProtocol(Protocol):
    """Abstract interface for pulling tasks from the provider."""

    async def first_link(self, access_token: str, list_filter: ListFilter) -> str | None:
        """Return the URL of the first page, or None if no list matches."""
        ...

    async def fetch_page(self, access_token: str, link: str) -> RemotePage:
        """Fetch and normalise one page."""
        ...

    def fetch_all(
        self, access_token: str, list_filter: ListFilter | None = None
    ) -> AsyncIterator[RemoteTask]:
        """Lazily yield every task across all pages."""
        ...

    async def list_task_lists(self, access_token: str) -> list[RemoteTaskList]:
        """Return the user's task lists."""
        ...


class HttpTaskFetcher:
    """Bearer-token JSON reads against one API origin.

    Subclasses implement ``list_task_lists``, ``first_link`` and
    ``fetch_page``.

    Args:
        base_url: API base URL; links to any other origin are refused
        timeout: HTTP request timeout in seconds
        transport: Optional httpx transport override (useful for testing)
    """

    api_name = "Provider"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        base = httpx.URL(self._base_url)
        self._origin = (base.scheme, base.host, base.port)
        self._timeout = timeout
        self._transport = transport
        self._logger = get_logger("fetch")

    async def first_link(self, access_token: str, list_filter: ListFilter) -> str | None:
        raise NotImplementedError

    async def fetch_page(self, access_token: str, link: str) -> RemotePage:
        raise NotImplementedError

    async def fetch_all(
        self, access_token: str, list_filter: ListFilter | None = None
    ) -> AsyncIterator[RemoteTask]:
        """Yield every task in the selected list, page by page.

        Each call starts from the first page, so the sequence can be
        re-iterated by calling again.
        """
        link = await self.first_link(access_token, list_filter or ListFilter())
        while link:
            page = await self.fetch_page(access_token, link)
            for failure in page.failures:
                self._logger.warning(
                    "skipping malformed task %s: %s", failure.external_id, failure.message
                )
            for task in page.tasks:
                yield task
            link = page.next_link

    @staticmethod
    def _normalize_into(
        page: RemotePage,
        items: list[dict[str, Any]],
        normalize: Callable[[dict[str, Any]], RemoteTask],
    ) -> RemotePage:
        """Normalise *items* into *page*; failures are recorded, not raised."""
        for raw in items:
            try:
                page.tasks.append(normalize(raw))
            except NormalizationError as e:
                page.failures.append(
                    PerItemSyncError(
                        external_id=e.external_id,
                        error_type=type(e).__name__,
                        message=str(e),
                    )
                )
        return page

    async def _get(self, access_token: str, url: str | httpx.URL) -> dict[str, Any]:
        """Execute a GET request, mapping failures onto the error taxonomy."""
        target = httpx.URL(url)
        if (target.scheme, target.host, target.port) != self._origin:
            # Never send the bearer token to another host
            raise ProviderRejected(f"Refusing to follow link to foreign host {target.host}")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    target,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            raise ProviderUnavailable(
                f"{self.api_name} request failed: {type(e).__name__}"
            ) from e

        raise_for_provider_status(response, f"GET {target.path}")
        return response.json()
