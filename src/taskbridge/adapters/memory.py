"""In-memory repository implementations.

Used by tests and for ephemeral runs. Each method does its work without
awaiting, so every call is atomic with respect to other coroutines on the
same event loop.
"""

from __future__ import annotations

from datetime import datetime

from taskbridge.adapters.utils import generate_uuid, now_utc
from taskbridge.models import Credential, LocalTask, LocalTaskFields, SyncStats
from taskbridge.repositories import CredentialRepository, TaskRepository


class InMemoryCredentialRepository(CredentialRepository):
    """Credential store keyed by (user_id, provider)."""

    def __init__(self) -> None:
        self._credentials: dict[tuple[str, str], Credential] = {}

    async def get_credential(self, user_id: str, provider: str) -> Credential | None:
        credential = self._credentials.get((user_id, provider))
        return credential.model_copy() if credential else None

    async def put_credential(
        self, user_id: str, provider: str, credential: Credential
    ) -> None:
        self._credentials[(user_id, provider)] = credential.model_copy()

    async def delete_credential(self, user_id: str, provider: str) -> bool:
        return self._credentials.pop((user_id, provider), None) is not None

    async def list_user_ids(self, provider: str) -> list[str]:
        return sorted(uid for uid, prov in self._credentials if prov == provider)


class InMemoryTaskRepository(TaskRepository):
    """Task store holding LocalTask records in a dict."""

    def __init__(self) -> None:
        self._tasks: dict[str, LocalTask] = {}

    async def find_by_external_id(
        self, user_id: str, external_id: str
    ) -> LocalTask | None:
        for task in self._tasks.values():
            if task.user_id == user_id and task.external_id == external_id:
                return task.model_copy()
        return None

    async def get_task(self, local_id: str) -> LocalTask | None:
        task = self._tasks.get(local_id)
        return task.model_copy() if task else None

    async def create_task(self, user_id: str, fields: LocalTaskFields) -> LocalTask:
        if fields.external_id is not None:
            self._ensure_unlinked(user_id, fields.external_id)
        now = now_utc()
        task = LocalTask(
            id=generate_uuid(),
            user_id=user_id,
            title=fields.title or "",
            description=fields.description or "",
            due_at=fields.due_at,
            completed=bool(fields.completed),
            completed_at=fields.completed_at,
            external_id=fields.external_id,
            created_at=now,
            modified_at=fields.modified_at or now,
        )
        self._tasks[task.id] = task
        return task.model_copy()

    async def update_task(
        self,
        local_id: str,
        fields: LocalTaskFields,
        if_modified_before: datetime | None = None,
    ) -> LocalTask | None:
        current = self._tasks.get(local_id)
        if current is None:
            raise KeyError(f"Task not found: {local_id}")
        if if_modified_before is not None and current.modified_at >= if_modified_before:
            return None

        changes = fields.model_dump(exclude_unset=True)
        if changes.get("external_id") is not None:
            self._ensure_unlinked(current.user_id, changes["external_id"], local_id)
        if changes.get("modified_at") is None:
            changes["modified_at"] = now_utc()

        updated = current.model_copy(update=changes)
        self._tasks[local_id] = updated
        return updated.model_copy()

    async def sync_stats(self, user_id: str) -> SyncStats:
        owned = [t for t in self._tasks.values() if t.user_id == user_id]
        linked = [t for t in owned if t.external_id is not None]
        return SyncStats(
            total_tasks=len(owned),
            synced_tasks=len(linked),
            last_sync=max((t.modified_at for t in linked), default=None),
        )

    async def clear_external_ids(self, user_id: str) -> int:
        count = 0
        for task_id, task in list(self._tasks.items()):
            if task.user_id == user_id and task.external_id is not None:
                self._tasks[task_id] = task.model_copy(update={"external_id": None})
                count += 1
        return count

    def _ensure_unlinked(
        self, user_id: str, external_id: str, except_id: str | None = None
    ) -> None:
        for task in self._tasks.values():
            if (
                task.user_id == user_id
                and task.external_id == external_id
                and task.id != except_id
            ):
                raise ValueError(
                    f"External id {external_id!r} is already linked for user {user_id!r}"
                )
