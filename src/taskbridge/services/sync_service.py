"""Reconciliation engine: pulls remote tasks into the local task store.

For each remote task, in fetch order:

* no local task with that external id -> create it
* remote strictly newer than local -> overwrite the local task
* otherwise -> skip (local wins ties)

A failure on one item is recorded and the batch continues. Local tasks are
never deleted. Only one sync per user may run at a time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from taskbridge.exceptions import SyncInProgress, Unauthorized
from taskbridge.models import (
    ListFilter,
    LocalTask,
    LocalTaskFields,
    PerItemSyncError,
    RemoteTask,
    SyncResult,
    SyncStats,
)
from taskbridge.repositories import TaskRepository
from taskbridge.services.fetcher import TaskFetcherProtocol
from taskbridge.services.oauth.manager import TokenLifecycleManager
from taskbridge.services.retry import RetryPolicy
from taskbridge.services.sync_conflicts import SyncConflict, SyncConflictTracker
from taskbridge.utils.logger import get_logger

T = TypeVar("T")


class _FetchSession:
    """Access token state for one sync run.

    Holds the current token and whether the one allowed forced refresh
    after an ``Unauthorized`` has been spent.
    """

    def __init__(self, user_id: str, token: str):
        self.user_id = user_id
        self.token = token
        self.refreshed_after_rejection = False


class ReconciliationEngine:
    """Orchestrates token acquisition, fetching, and upserts for one provider.

    Args:
        token_manager: Supplies and refreshes access tokens
        fetcher: Remote task fetcher
        tasks: Local task store
        retry: Backoff policy for transient fetch failures
        conflict_tracker: Receives conflicts where local edits were kept
        clock: Returns "now" as an aware datetime (replaceable in tests)
    """

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        fetcher: TaskFetcherProtocol,
        tasks: TaskRepository,
        *,
        retry: RetryPolicy | None = None,
        conflict_tracker: SyncConflictTracker | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._tokens = token_manager
        self._fetcher = fetcher
        self._tasks = tasks
        self._retry = retry or RetryPolicy()
        self.conflict_tracker = (
            conflict_tracker if conflict_tracker is not None else SyncConflictTracker()
        )
        self._now = clock or (lambda: datetime.now(UTC))
        self._running: set[str] = set()
        self._logger = get_logger("sync")

    def is_running(self, user_id: str) -> bool:
        return user_id in self._running

    async def sync(
        self,
        user_id: str,
        list_filter: ListFilter | None = None,
        deadline: float | None = None,
    ) -> SyncResult:
        """Pull remote tasks for *user_id* and reconcile them.

        Args:
            user_id: User to sync
            list_filter: Which remote list to pull (default list if None)
            deadline: Seconds after which the run stops; items already
                written stay written and the result is marked truncated

        Raises:
            SyncInProgress: Another sync for this user is running
            NotConnected: The user has no credential
            RefreshFailed: The credential could not be refreshed
            Unauthorized: The provider rejected a freshly refreshed token
            RateLimited, ProviderUnavailable: Transient errors persisted
                through every retry
        """
        # No await between the check and the add: the guard is atomic
        if user_id in self._running:
            raise SyncInProgress(f"Sync already running for user {user_id}")
        self._running.add(user_id)

        result = SyncResult(started_at=self._now())
        list_filter = list_filter or ListFilter()
        self._logger.info("sync started for user %s", user_id)
        try:
            if deadline is None:
                await self._run(user_id, list_filter, result)
            else:
                try:
                    async with asyncio.timeout(deadline):
                        await self._run(user_id, list_filter, result)
                except TimeoutError:
                    result.truncated = True
                    self._logger.warning(
                        "sync for user %s hit its %.1fs deadline after %d items",
                        user_id,
                        deadline,
                        result.processed,
                    )
        finally:
            self._running.discard(user_id)
            result.finished_at = self._now()
            self.conflict_tracker.save()

        self._logger.info(
            "sync completed for user %s: %d created, %d updated, %d skipped, %d errors",
            user_id,
            result.created,
            result.updated,
            result.skipped,
            result.errored,
        )
        return result

    async def get_sync_stats(self, user_id: str) -> SyncStats:
        return await self._tasks.sync_stats(user_id)

    async def unlink_tasks(self, user_id: str) -> int:
        """Clear every external-id link for *user_id*, keeping the tasks."""
        count = await self._tasks.clear_external_ids(user_id)
        self._logger.info("cleared sync links from %d tasks for user %s", count, user_id)
        return count

    # ------------------------------------------------------------------
    # Fetch loop
    # ------------------------------------------------------------------

    async def _run(self, user_id: str, list_filter: ListFilter, result: SyncResult) -> None:
        token = await self._tokens.get_valid_access_token(user_id)
        session = _FetchSession(user_id, token)

        link = await self._call_with_token(session, self._fetcher.first_link, list_filter)
        while link:
            page = await self._call_with_token(session, self._fetcher.fetch_page, link)
            for failure in page.failures:
                self._logger.warning(
                    "remote task %s could not be read: %s", failure.external_id, failure.message
                )
                result.add_error(failure)
            for remote in page.tasks:
                await self._reconcile(user_id, remote, result)
            link = page.next_link

    async def _call_with_token(
        self,
        session: _FetchSession,
        func: Callable[[str, Any], Awaitable[T]],
        arg: Any,
    ) -> T:
        """Call a fetcher method with retry and one forced refresh on 401.

        A second ``Unauthorized`` after the refresh propagates.
        """
        while True:
            try:
                return await self._retry.call(func, session.token, arg)
            except Unauthorized:
                if session.refreshed_after_rejection:
                    raise
                session.refreshed_after_rejection = True
                self._logger.info(
                    "access token rejected for user %s, refreshing once", session.user_id
                )
                session.token = await self._tokens.refresh_after_rejection(
                    session.user_id, session.token
                )

    # ------------------------------------------------------------------
    # Per-item decision
    # ------------------------------------------------------------------

    async def _reconcile(self, user_id: str, remote: RemoteTask, result: SyncResult) -> None:
        try:
            local = await self._tasks.find_by_external_id(user_id, remote.external_id)
            if local is None:
                created = await self._tasks.create_task(
                    user_id, self._fields_from(remote, link=True)
                )
                result.created += 1
                result.tasks.append(created)
                return

            comparison = SyncConflictTracker.compare_timestamps(
                local.modified_at, remote.last_modified
            )
            if comparison != "remote":
                result.skipped += 1
                if self._differs(local, remote):
                    self._record_conflict(user_id, local, remote, "local_wins")
                return

            # Conditional write: a local edit made after the remote change wins
            updated = await self._tasks.update_task(
                local.id,
                self._fields_from(remote, link=False),
                if_modified_before=remote.last_modified,
            )
            if updated is None:
                result.skipped += 1
                self._record_conflict(user_id, local, remote, "local_edited_during_sync")
                return
            result.updated += 1
            result.tasks.append(updated)
        except Exception as e:  # noqa: BLE001
            self._logger.error(
                "failed to sync remote task %s for user %s: %s",
                remote.external_id,
                user_id,
                e,
                exc_info=True,
            )
            result.add_error(
                PerItemSyncError(
                    external_id=remote.external_id,
                    error_type=type(e).__name__,
                    message=str(e),
                )
            )

    def _fields_from(self, remote: RemoteTask, *, link: bool) -> LocalTaskFields:
        fields = LocalTaskFields(
            title=remote.title,
            description=remote.body,
            due_at=remote.due_at,
            completed=remote.completed,
            completed_at=remote.completed_at,
            modified_at=self._now(),
        )
        if link:
            fields.external_id = remote.external_id
        return fields

    @staticmethod
    def _differs(local: LocalTask, remote: RemoteTask) -> bool:
        return (
            local.title != remote.title
            or local.description != remote.body
            or local.due_at != remote.due_at
            or local.completed != remote.completed
        )

    def _record_conflict(
        self, user_id: str, local: LocalTask, remote: RemoteTask, resolution: str
    ) -> None:
        recorded = self.conflict_tracker.add_conflict(
            SyncConflict(
                user_id=user_id,
                external_id=remote.external_id,
                local_id=local.id,
                local_modified=local.modified_at,
                remote_modified=remote.last_modified,
                resolution=resolution,
            )
        )
        if recorded:
            self._logger.info(
                "kept local task %s over remote %s (%s)",
                local.id,
                remote.external_id,
                resolution,
            )
