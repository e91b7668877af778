"""Periodic sync for every connected user."""

from __future__ import annotations

import asyncio

from taskbridge.exceptions import TaskBridgeError
from taskbridge.models import ListFilter, SyncResult
from taskbridge.repositories import CredentialRepository
from taskbridge.services.sync_service import ReconciliationEngine
from taskbridge.utils.logger import get_logger


class SyncScheduler:
    """Runs a sync for each connected user on a fixed interval.

    Per-user failures are logged and do not stop the other users or the
    loop.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        credentials: CredentialRepository,
        provider: str,
        *,
        interval: float = 300.0,
        list_filter: ListFilter | None = None,
        deadline: float | None = None,
    ) -> None:
        self._engine = engine
        self._credentials = credentials
        self._provider = provider
        self.interval = interval
        self._list_filter = list_filter
        self._deadline = deadline
        self._logger = get_logger("scheduler")

    async def run_once(self) -> dict[str, SyncResult]:
        """Sync every connected user once, one after another.

        A failed user is logged and skipped; the remaining users still run.
        """
        results: dict[str, SyncResult] = {}
        for user_id in await self._credentials.list_user_ids(self._provider):
            try:
                results[user_id] = await self._engine.sync(
                    user_id, self._list_filter, deadline=self._deadline
                )
            except TaskBridgeError as e:
                self._logger.warning(
                    "scheduled sync for user %s failed: %s: %s", user_id, type(e).__name__, e
                )
            except Exception as e:
                self._logger.error(
                    "scheduled sync for user %s crashed: %s", user_id, e, exc_info=True
                )
        return results

    async def run_forever(self, stop: asyncio.Event | None = None) -> None:
        """Loop ``run_once`` until *stop* is set."""
        stop = stop or asyncio.Event()
        self._logger.info("scheduler started, interval %.0fs", self.interval)
        while not stop.is_set():
            try:
                await self.run_once()
            except Exception as e:
                self._logger.error("scheduled sync pass failed: %s", e, exc_info=True)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval)
            except TimeoutError:
                continue
        self._logger.info("scheduler stopped")
