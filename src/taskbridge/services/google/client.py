"""Google Tasks API task fetcher."""

from __future__ import annotations

import httpx

from taskbridge.models import ListFilter, RemoteTaskList
from taskbridge.services.fetcher import DEFAULT_TIMEOUT, HttpTaskFetcher, RemotePage

from .models import GoogleTaskList
from .normalize import has_title, normalize_task

_BASE_URL = "https://tasks.googleapis.com/tasks/v1"
_MAX_PAGE_SIZE = 100  # Tasks API caps maxResults at 100
_DEFAULT_LIST = "@default"


class GoogleTaskFetcher(HttpTaskFetcher):
    """Concrete Google Tasks fetcher.

    The API pages with ``nextPageToken``; the fetcher turns each token into
    a full link so the engine can page the same way as for any provider.

    Args:
        base_url: Tasks API base URL
        timeout: HTTP request timeout in seconds
        page_size: Requested page size (capped at 100)
        transport: Optional httpx transport override (useful for testing)
    """

    api_name = "Google Tasks"

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
        """Return every task list of the user; the first one is the default."""
        lists: list[RemoteTaskList] = []
        url = httpx.URL(
            f"{self._base_url}/users/@me/lists", params={"maxResults": _MAX_PAGE_SIZE}
        )
        link: httpx.URL | None = url
        while link is not None:
            data = await self._get(access_token, link)
            for item in data.get("items", []):
                task_list = GoogleTaskList.model_validate(item)
                lists.append(
                    RemoteTaskList(
                        id=task_list.id,
                        display_name=task_list.title,
                        wellknown_list_name=_DEFAULT_LIST if not lists else None,
                    )
                )
            token = data.get("nextPageToken")
            link = url.copy_set_param("pageToken", token) if token else None
        return lists

    async def resolve_list_id(self, access_token: str, list_filter: ListFilter) -> str | None:
        """Pick the list to sync: explicit id, then name, then ``@default``."""
        if list_filter.list_id:
            return list_filter.list_id
        if not list_filter.list_name:
            return _DEFAULT_LIST

        wanted = list_filter.list_name.casefold()
        lists = await self.list_task_lists(access_token)
        match = next((lst for lst in lists if lst.display_name.casefold() == wanted), None)
        return match.id if match else None

    async def first_link(self, access_token: str, list_filter: ListFilter) -> str | None:
        list_id = await self.resolve_list_id(access_token, list_filter)
        if list_id is None:
            self._logger.warning("no matching task list found (%s)", list_filter.model_dump())
            return None

        show = "true" if list_filter.include_completed else "false"
        url = httpx.URL(
            f"{self._base_url}/lists/{list_id}/tasks",
            params={
                "maxResults": self._page_size,
                # Completed tasks cleared from the UI are hidden, not deleted
                "showCompleted": show,
                "showHidden": show,
            },
        )
        return str(url)

    async def fetch_page(self, access_token: str, link: str) -> RemotePage:
        """Fetch one page and normalise its items.

        Untitled placeholder tasks are dropped. Items that fail
        normalisation are reported in ``failures``.
        """
        data = await self._get(access_token, link)
        token = data.get("nextPageToken")
        next_link = str(httpx.URL(link).copy_set_param("pageToken", token)) if token else None

        items = data.get("items", [])
        titled = [raw for raw in items if has_title(raw)]
        if len(titled) < len(items):
            self._logger.debug("skipped %d untitled tasks", len(items) - len(titled))
        page = RemotePage(next_link=next_link)
        return self._normalize_into(page, titled, normalize_task)
