"""Microsoft To Do (Graph) integration package."""

from .client import GraphTaskFetcher, RemotePage, TaskFetcherProtocol
from .normalize import STATUS_COMPLETION, NormalizationError, completion_for, normalize_task

__all__ = [
    "GraphTaskFetcher",
    "RemotePage",
    "TaskFetcherProtocol",
    "STATUS_COMPLETION",
    "NormalizationError",
    "completion_for",
    "normalize_task",
]
