"""Repository abstraction layer for TaskBridge.

The sync engine talks to persistence only through these two narrow
contracts, following the Ports & Adapters pattern. Concrete adapters live
in ``taskbridge.adapters``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from taskbridge.models import Credential, LocalTask, LocalTaskFields, SyncStats


class CredentialRepository(ABC):
    """Keyed store mapping (user_id, provider) to a Credential.

    All credential mutation goes through ``put_credential`` and
    ``delete_credential``.
    """

    @abstractmethod
    async def get_credential(self, user_id: str, provider: str) -> Credential | None:
        """Return the stored credential, or None if the user is not connected."""
        raise NotImplementedError(
            "CredentialRepository.get_credential() must be implemented by adapter"
        )

    @abstractmethod
    async def put_credential(
        self, user_id: str, provider: str, credential: Credential
    ) -> None:
        """Atomically replace the credential for (user_id, provider)."""
        raise NotImplementedError(
            "CredentialRepository.put_credential() must be implemented by adapter"
        )

    @abstractmethod
    async def delete_credential(self, user_id: str, provider: str) -> bool:
        """Delete the credential. Returns True if one existed."""
        raise NotImplementedError(
            "CredentialRepository.delete_credential() must be implemented by adapter"
        )

    @abstractmethod
    async def list_user_ids(self, provider: str) -> list[str]:
        """Return the ids of all users connected to *provider*."""
        raise NotImplementedError(
            "CredentialRepository.list_user_ids() must be implemented by adapter"
        )


class TaskRepository(ABC):
    """Local task store contract consumed by the sync engine."""

    @abstractmethod
    async def find_by_external_id(
        self, user_id: str, external_id: str
    ) -> LocalTask | None:
        """Find the user's task linked to *external_id*.

        Args:
            user_id: Owning user
            external_id: Provider-side task id

        Returns:
            The matching LocalTask, or None
        """
        raise NotImplementedError(
            "TaskRepository.find_by_external_id() must be implemented by adapter"
        )

    @abstractmethod
    async def get_task(self, local_id: str) -> LocalTask | None:
        """Return a task by its local id, or None."""
        raise NotImplementedError("TaskRepository.get_task() must be implemented by adapter")

    @abstractmethod
    async def create_task(self, user_id: str, fields: LocalTaskFields) -> LocalTask:
        """Insert a new task owned by *user_id*.

        Raises:
            ValueError: If ``fields.external_id`` is already linked for this user
        """
        raise NotImplementedError(
            "TaskRepository.create_task() must be implemented by adapter"
        )

    @abstractmethod
    async def update_task(
        self,
        local_id: str,
        fields: LocalTaskFields,
        if_modified_before: datetime | None = None,
    ) -> LocalTask | None:
        """Apply *fields* to one task as a single atomic operation.

        Args:
            local_id: Task to update
            fields: Fields to write (only explicitly set fields are applied)
            if_modified_before: When given, the write only happens if the
                stored ``modified_at`` is strictly earlier than this instant

        Returns:
            The updated task, or None if the precondition did not hold

        Raises:
            KeyError: If the task does not exist
        """
        raise NotImplementedError(
            "TaskRepository.update_task() must be implemented by adapter"
        )

    @abstractmethod
    async def sync_stats(self, user_id: str) -> SyncStats:
        """Return total and linked task counts for *user_id*."""
        raise NotImplementedError(
            "TaskRepository.sync_stats() must be implemented by adapter"
        )

    @abstractmethod
    async def clear_external_ids(self, user_id: str) -> int:
        """Drop every external-id link for *user_id*. Returns rows changed."""
        raise NotImplementedError(
            "TaskRepository.clear_external_ids() must be implemented by adapter"
        )
