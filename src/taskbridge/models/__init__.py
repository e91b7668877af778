"""TaskBridge domain models.

Pydantic models for credentials, remote and local tasks, and sync results.
"""

from .credential import (
    AuthorizationRequest,
    Credential,
    PendingAuthorization,
    TokenGrant,
)
from .sync import PerItemSyncError, SyncResult, SyncStats
from .task import ListFilter, LocalTask, LocalTaskFields, RemoteTask, RemoteTaskList

__all__ = [
    # Credential models
    "Credential",
    "TokenGrant",
    "AuthorizationRequest",
    "PendingAuthorization",
    # Task models
    "ListFilter",
    "RemoteTask",
    "RemoteTaskList",
    "LocalTask",
    "LocalTaskFields",
    # Sync models
    "PerItemSyncError",
    "SyncResult",
    "SyncStats",
]
