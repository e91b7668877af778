"""Pending authorization state store.

Maps opaque state values to the user and redirect URI they were issued
for. States are single-use and expire after a TTL.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

from taskbridge.models import PendingAuthorization


class OAuthStateStore:
    """In-memory keyed store of issued state values."""

    def __init__(self, ttl: timedelta = timedelta(minutes=10)):
        self.ttl = ttl
        self._pending: dict[str, PendingAuthorization] = {}

    def issue(self, user_id: str, redirect_uri: str, now: datetime | None = None) -> str:
        """Create and remember a fresh state value for *user_id*."""
        now = now or datetime.now(UTC)
        self.purge_expired(now)
        state = secrets.token_hex(32)
        self._pending[state] = PendingAuthorization(
            user_id=user_id, redirect_uri=redirect_uri, created_at=now
        )
        return state

    def consume(self, state: str, now: datetime | None = None) -> PendingAuthorization | None:
        """Remove and return the pending record, or None if unknown or expired."""
        pending = self._pending.pop(state, None)
        if pending is None:
            return None
        now = now or datetime.now(UTC)
        if now - pending.created_at > self.ttl:
            return None
        return pending

    def purge_expired(self, now: datetime | None = None) -> int:
        """Drop expired states. Returns how many were removed."""
        now = now or datetime.now(UTC)
        expired = [
            state
            for state, pending in self._pending.items()
            if now - pending.created_at > self.ttl
        ]
        for state in expired:
            del self._pending[state]
        return len(expired)

    def __len__(self) -> int:
        return len(self._pending)
