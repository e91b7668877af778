"""Unit tests for credential, task, and sync result models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from taskbridge.models import (
    Credential,
    LocalTask,
    LocalTaskFields,
    PerItemSyncError,
    RemoteTask,
    SyncResult,
    TokenGrant,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Credential
# ---------------------------------------------------------------------------


class TestCredential:
    def _credential(self, expires_at: datetime) -> Credential:
        return Credential(
            user_id="u1",
            provider="microsoft",
            access_token="secret-access",
            refresh_token="secret-refresh",
            expires_at=expires_at,
        )

    def test_expires_within_margin(self):
        cred = self._credential(NOW + timedelta(seconds=30))
        assert cred.expires_within(timedelta(seconds=60), now=NOW)

    def test_not_expiring_outside_margin(self):
        cred = self._credential(NOW + timedelta(minutes=10))
        assert not cred.expires_within(timedelta(seconds=60), now=NOW)

    def test_naive_expiry_treated_as_utc(self):
        cred = self._credential(datetime(2024, 5, 1, 12, 0, 30))
        assert cred.expires_within(timedelta(seconds=60), now=NOW)

    def test_repr_hides_tokens(self):
        text = repr(self._credential(NOW))
        assert "secret-access" not in text
        assert "secret-refresh" not in text
        assert "u1" in text

    def test_str_and_format_hide_tokens(self):
        cred = self._credential(NOW)
        for text in (str(cred), "%s" % cred, f"{cred}", str(cred.model_copy())):
            assert "secret-access" not in text
            assert "secret-refresh" not in text
        assert "u1" in str(cred)

    def test_token_grant_hides_tokens(self):
        grant = TokenGrant(
            access_token="secret-access", refresh_token="secret-refresh", expires_at=NOW
        )
        assert "secret-access" not in str(grant)
        assert "secret-refresh" not in repr(grant)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TestRemoteTask:
    def test_is_immutable(self):
        task = RemoteTask(external_id="e1", title="A", last_modified=NOW)
        with pytest.raises(ValidationError):
            task.title = "B"

    def test_defaults(self):
        task = RemoteTask(external_id="e1", title="A", last_modified=NOW)
        assert task.body == ""
        assert task.due_at is None
        assert task.completed is False


class TestLocalTaskFields:
    def test_only_set_fields_are_dumped(self):
        fields = LocalTaskFields(title="New")
        assert fields.model_dump(exclude_unset=True) == {"title": "New"}

    def test_local_task_requires_timestamps(self):
        with pytest.raises(ValidationError):
            LocalTask(id="1", user_id="u1", title="A")


# ---------------------------------------------------------------------------
# SyncResult
# ---------------------------------------------------------------------------


class TestSyncResult:
    def test_empty_result_is_success(self):
        result = SyncResult()
        assert result.success
        assert result.processed == 0

    def test_add_error_counts(self):
        result = SyncResult(created=2)
        result.add_error(PerItemSyncError(external_id="e3", error_type="ValueError", message="x"))
        assert result.errored == 1
        assert result.processed == 3
        assert not result.success

    def test_truncated_is_not_success(self):
        assert not SyncResult(truncated=True).success

    def test_summary_shape(self):
        task = LocalTask(
            id="l1",
            user_id="u1",
            title="Buy milk",
            external_id="e1",
            due_at=NOW,
            created_at=NOW,
            modified_at=NOW,
        )
        result = SyncResult(created=1, skipped=2, tasks=[task])
        summary = result.summary()

        assert summary["success"] is True
        assert summary["truncated"] is False
        assert summary["results"] == {"created": 1, "updated": 0, "skipped": 2, "errors": 0}
        assert summary["tasks"] == [
            {
                "id": "l1",
                "title": "Buy milk",
                "completed": False,
                "due_at": NOW.isoformat(),
                "external_id": "e1",
            }
        ]
        assert summary["errors"] == []
