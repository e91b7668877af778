"""Sync conflict tracker.

Records items where the local copy was kept even though its content
differs from the remote copy, so operators can see which user edits a sync
chose to preserve.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

Comparison = Literal["local", "remote", "equal"]
ConflictKey = tuple[str, str, str, str]

# Oldest entries are dropped from the conflicts file beyond this many
MAX_SAVED_CONFLICTS = 1000


def _key_from_dict(data: dict[str, Any]) -> ConflictKey:
    return (
        data.get("user_id", ""),
        data.get("external_id", ""),
        data.get("local_modified", ""),
        data.get("remote_modified", ""),
    )


class SyncConflict:
    """Represents a single sync conflict."""

    def __init__(
        self,
        user_id: str,
        external_id: str,
        local_id: str,
        local_modified: datetime,
        remote_modified: datetime,
        resolution: str,
    ):
        """Initialize a sync conflict.

        Args:
            user_id: Owning user
            external_id: Provider-side task id
            local_id: Local task id
            local_modified: Local last-modified instant
            remote_modified: Provider last-modified instant
            resolution: How it was resolved (local_wins, local_edited_during_sync)
        """
        self.user_id = user_id
        self.external_id = external_id
        self.local_id = local_id
        self.local_modified = local_modified
        self.remote_modified = remote_modified
        self.resolution = resolution
        self.detected_at = datetime.now(UTC)

    @property
    def key(self) -> ConflictKey:
        """Identity of the conflict; unchanged until either side is edited again."""
        return (
            self.user_id,
            self.external_id,
            self.local_modified.isoformat(),
            self.remote_modified.isoformat(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "external_id": self.external_id,
            "local_id": self.local_id,
            "local_modified": self.local_modified.isoformat(),
            "remote_modified": self.remote_modified.isoformat(),
            "resolution": self.resolution,
            "detected_at": self.detected_at.isoformat(),
        }


class SyncConflictTracker:
    """Collects conflicts for the current session; optionally persists them."""

    def __init__(self, conflicts_file: Path | None = None):
        """Initialize conflict tracker.

        Args:
            conflicts_file: JSON file to append conflicts to on ``save()``.
                None keeps conflicts in memory only.
        """
        self.conflicts_file = Path(conflicts_file) if conflicts_file else None
        self._conflicts: list[SyncConflict] = []
        self._keys: set[ConflictKey] = set()
        self._saved = 0

    def add_conflict(self, conflict: SyncConflict) -> bool:
        """Record *conflict* unless the same one is already recorded.

        Returns:
            True if the conflict was new
        """
        if conflict.key in self._keys:
            return False
        self._keys.add(conflict.key)
        self._conflicts.append(conflict)
        return True

    def save(self) -> None:
        """Append conflicts not yet written to the conflicts file.

        Conflicts already in the file (from an earlier run) are not written
        again, and the file keeps at most ``MAX_SAVED_CONFLICTS`` entries.
        """
        pending = self._conflicts[self._saved:]
        if not pending or self.conflicts_file is None:
            return

        self.conflicts_file.parent.mkdir(parents=True, exist_ok=True)

        existing: list[dict[str, Any]] = []
        if self.conflicts_file.exists():
            try:
                with open(self.conflicts_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, list):
                    existing = [entry for entry in data if isinstance(entry, dict)]
            except (OSError, ValueError):
                existing = []  # Start fresh if file is corrupted

        on_file = {_key_from_dict(entry) for entry in existing}
        entries = existing + [c.to_dict() for c in pending if c.key not in on_file]

        with open(self.conflicts_file, "w", encoding="utf-8") as f:
            json.dump(entries[-MAX_SAVED_CONFLICTS:], f, indent=2)
        self._saved = len(self._conflicts)

    def get_conflicts(self) -> list[SyncConflict]:
        return self._conflicts.copy()

    def clear(self) -> None:
        self._conflicts.clear()
        self._keys.clear()
        self._saved = 0

    def count(self) -> int:
        return len(self._conflicts)

    def has_conflicts(self) -> bool:
        return len(self._conflicts) > 0

    @staticmethod
    def compare_timestamps(local_modified: datetime, remote_modified: datetime) -> Comparison:
        """Return which side was modified more recently.

        Returns:
            "local" if local is newer, "remote" if remote is newer, "equal" if same
        """
        if local_modified > remote_modified:
            return "local"
        if remote_modified > local_modified:
            return "remote"
        return "equal"
