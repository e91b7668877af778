"""Tests for the top-level CLI app."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from taskbridge import __version__
from taskbridge.main import app

runner = CliRunner()


class TestMain:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_groups(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "provider" in result.output
        assert "config" in result.output

    def test_sync_shortcut(self):
        service = MagicMock()
        service.sync = AsyncMock(
            return_value={
                "success": True,
                "truncated": False,
                "results": {"created": 0, "updated": 0, "skipped": 0, "errors": 0},
                "tasks": [],
                "errors": [],
            }
        )
        with patch(
            "taskbridge.commands.integration.build_integration_service", return_value=service
        ):
            result = runner.invoke(app, ["sync"])
        assert result.exit_code == 0
        assert "complete" in result.output
