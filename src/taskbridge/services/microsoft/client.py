"""Microsoft Graph To Do task fetcher."""

from __future__ import annotations

import httpx

from taskbridge.models import ListFilter, RemoteTaskList
from taskbridge.services.fetcher import (
    DEFAULT_TIMEOUT,
    HttpTaskFetcher,
    RemotePage,
    TaskFetcherProtocol,
)

from .models import GraphTodoList
from .normalize import normalize_task

_BASE_URL = "https://graph.microsoft.com/v1.0"
_MAX_PAGE_SIZE = 999  # Graph caps $top at 999
_DEFAULT_LIST = "defaultList"

__all__ = ["GraphTaskFetcher", "RemotePage", "TaskFetcherProtocol"]


class GraphTaskFetcher(HttpTaskFetcher):
    """Concrete Microsoft Graph To Do fetcher.

    Args:
        base_url: Graph API base URL
        timeout: HTTP request timeout in seconds
        page_size: Requested page size (capped at 999)
        transport: Optional httpx transport override (useful for testing)
    """

    api_name = "Graph"

    def __init__(
        self,
        base_url: str = _BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        page_size: int = _MAX_PAGE_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self._page_size = min(page_size, _MAX_PAGE_SIZE)

    async def list_task_lists(self, access_token: str) -> list[RemoteTaskList]:
        """Return every To Do list visible to the user."""
        lists: list[RemoteTaskList] = []
        link: str | None = f"{self._base_url}/me/todo/lists"
        while link:
            data = await self._get(access_token, link)
            for item in data.get("value", []):
                graph_list = GraphTodoList.model_validate(item)
                lists.append(
                    RemoteTaskList(
                        id=graph_list.id,
                        display_name=graph_list.displayName,
                        is_owner=graph_list.isOwner,
                        is_shared=graph_list.isShared,
                        wellknown_list_name=graph_list.wellknownListName,
                    )
                )
            link = data.get("@odata.nextLink")
        return lists

    async def resolve_list_id(self, access_token: str, list_filter: ListFilter) -> str | None:
        """Pick the list to sync: explicit id, then name, then the default list."""
        if list_filter.list_id:
            return list_filter.list_id

        lists = await self.list_task_lists(access_token)
        if list_filter.list_name:
            wanted = list_filter.list_name.casefold()
            match = next((lst for lst in lists if lst.display_name.casefold() == wanted), None)
        else:
            match = next(
                (
                    lst
                    for lst in lists
                    if lst.wellknown_list_name == _DEFAULT_LIST
                    or lst.display_name.casefold() == "tasks"
                ),
                None,
            )
        return match.id if match else None

    async def first_link(self, access_token: str, list_filter: ListFilter) -> str | None:
        list_id = await self.resolve_list_id(access_token, list_filter)
        if list_id is None:
            self._logger.warning("no matching task list found (%s)", list_filter.model_dump())
            return None

        params: dict[str, str | int] = {"$top": self._page_size}
        if not list_filter.include_completed:
            params["$filter"] = "status ne 'completed'"
        url = httpx.URL(f"{self._base_url}/me/todo/lists/{list_id}/tasks", params=params)
        return str(url)

    async def fetch_page(self, access_token: str, link: str) -> RemotePage:
        """Fetch one page and normalise its items.

        Items that fail normalisation are reported in ``failures`` rather
        than aborting the page.
        """
        data = await self._get(access_token, link)
        page = RemotePage(next_link=data.get("@odata.nextLink"))
        return self._normalize_into(page, data.get("value", []), normalize_task)
