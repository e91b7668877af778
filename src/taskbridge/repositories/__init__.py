"""Repository interfaces."""

from .repository import CredentialRepository, TaskRepository

__all__ = ["CredentialRepository", "TaskRepository"]
