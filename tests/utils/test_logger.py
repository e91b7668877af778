"""Tests for the application logger and secret redaction."""

from __future__ import annotations

import logging

from taskbridge.utils.logger import RedactingFilter, get_logger, redact


class TestRedact:
    def test_bearer_token(self):
        assert redact("Authorization: Bearer eyJ0eXAi.abc-def") == "Authorization: Bearer [REDACTED]"

    def test_form_fields(self):
        text = "grant_type=refresh_token&refresh_token=0.AAA-bbb&client_secret=s3cr3t"
        out = redact(text)
        assert "0.AAA-bbb" not in out
        assert "s3cr3t" not in out
        assert "grant_type=refresh_token" in out

    def test_json_fields(self):
        out = redact('{"access_token": "abc123", "expires_in": 3600}')
        assert "abc123" not in out
        assert "3600" in out

    def test_plain_text_untouched(self):
        assert redact("sync completed for user u1") == "sync completed for user u1"


class TestRedactingFilter:
    def test_rewrites_formatted_message(self):
        record = logging.LogRecord(
            "taskbridge", logging.INFO, __file__, 1, "token %s", ("Bearer abc",), None
        )
        assert RedactingFilter().filter(record)
        assert record.getMessage() == "token Bearer [REDACTED]"


class TestGetLogger:
    def test_child_logger(self):
        logger = get_logger("sync")
        assert logger.name == "taskbridge.sync"

    def test_app_logger_does_not_propagate(self):
        assert get_logger().propagate is False
