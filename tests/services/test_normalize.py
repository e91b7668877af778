"""Tests for Graph To Do task normalisation."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from taskbridge.services.microsoft.normalize import (
    STATUS_COMPLETION,
    UNTITLED_TASK,
    NormalizationError,
    completion_for,
    normalize_task,
    parse_graph_datetime,
)


def _raw(**overrides):
    raw = {
        "id": "AAMk-1",
        "title": "Write report",
        "status": "notStarted",
        "body": {"content": "<p>Draft</p>", "contentType": "html"},
        "lastModifiedDateTime": "2024-05-01T10:15:30.1234567Z",
        "importance": "normal",
        "isReminderOn": False,
    }
    raw.update(overrides)
    return raw


class TestCompletion:
    @pytest.mark.parametrize("status,expected", list(STATUS_COMPLETION.items()))
    def test_table(self, status, expected):
        assert completion_for(status) is expected

    def test_unknown_status_is_incomplete(self):
        assert completion_for("someNewStatus") is False
        assert completion_for(None) is False


class TestParseGraphDatetime:
    def test_seven_digit_fraction(self):
        dt = parse_graph_datetime("2024-05-01T10:15:30.1234567Z")
        assert dt == datetime(2024, 5, 1, 10, 15, 30, 123456, tzinfo=UTC)

    def test_naive_value_in_named_zone(self):
        dt = parse_graph_datetime("2024-01-15T09:00:00.0000000", "America/New_York")
        assert dt == datetime(2024, 1, 15, 14, 0, tzinfo=UTC)

    def test_unknown_zone_falls_back_to_utc(self):
        dt = parse_graph_datetime("2024-01-15T09:00:00", "Not/AZone")
        assert dt == datetime(2024, 1, 15, 9, 0, tzinfo=UTC)


class TestNormalizeTask:
    def test_basic_fields(self):
        task = normalize_task(_raw())
        assert task.external_id == "AAMk-1"
        assert task.title == "Write report"
        assert task.body == "<p>Draft</p>"
        assert task.completed is False
        assert task.completed_at is None
        assert task.due_at is None
        assert task.last_modified == datetime(2024, 5, 1, 10, 15, 30, 123456, tzinfo=UTC)

    def test_missing_title(self):
        assert normalize_task(_raw(title=None)).title == UNTITLED_TASK
        assert normalize_task(_raw(title="")).title == UNTITLED_TASK

    def test_missing_body(self):
        assert normalize_task(_raw(body=None)).body == ""

    def test_due_date(self):
        task = normalize_task(
            _raw(dueDateTime={"dateTime": "2024-06-01T00:00:00.0000000", "timeZone": "UTC"})
        )
        assert task.due_at == datetime(2024, 6, 1, tzinfo=UTC)

    def test_completed(self):
        task = normalize_task(
            _raw(
                status="completed",
                completedDateTime={"dateTime": "2024-05-02T08:00:00.0000000", "timeZone": "UTC"},
            )
        )
        assert task.completed is True
        assert task.completed_at == datetime(2024, 5, 2, 8, 0, tzinfo=UTC)

    def test_unknown_status_normalises(self):
        assert normalize_task(_raw(status="archivedSomehow")).completed is False

    def test_missing_last_modified_is_an_error(self):
        raw = _raw()
        del raw["lastModifiedDateTime"]
        with pytest.raises(NormalizationError) as exc:
            normalize_task(raw)
        assert exc.value.external_id == "AAMk-1"

    def test_bad_timestamp_is_an_error(self):
        with pytest.raises(NormalizationError):
            normalize_task(_raw(lastModifiedDateTime="yesterday"))

    def test_missing_id_is_an_error(self):
        raw = _raw()
        del raw["id"]
        with pytest.raises(NormalizationError) as exc:
            normalize_task(raw)
        assert exc.value.external_id is None
