"""Google Tasks integration package."""

from .client import GoogleTaskFetcher
from .normalize import STATUS_COMPLETION, completion_for, normalize_task

__all__ = [
    "GoogleTaskFetcher",
    "STATUS_COMPLETION",
    "completion_for",
    "normalize_task",
]
