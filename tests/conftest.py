"""Shared test fixtures and configuration.

Provides infrastructure to isolate tests from real filesystem/API state.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taskbridge.adapters.memory import InMemoryCredentialRepository, InMemoryTaskRepository
from taskbridge.models import Credential, TokenGrant
from taskbridge.services.retry import RetryPolicy

REDIRECT_URI = "http://localhost:8765/callback"


# ---------------------------------------------------------------------------
# Filesystem / environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point config, data, and log directories at *tmp_path*."""
    import taskbridge.config as config_module
    from taskbridge.adapters.sqlite.connection import DatabaseConnection

    tmpdir = str(tmp_path)
    for env in (
        "TASKBRIDGE_CLIENT_ID",
        "TASKBRIDGE_CLIENT_SECRET",
        "TASKBRIDGE_TENANT",
        "TASKBRIDGE_AUTHORITY_URL",
        "TASKBRIDGE_GRAPH_BASE_URL",
        "TASKBRIDGE_GOOGLE_TASKS_BASE_URL",
        "TASKBRIDGE_PROVIDER",
        "TASKBRIDGE_REDIRECT_URI",
    ):
        monkeypatch.delenv(env, raising=False)
    monkeypatch.setattr(config_module, "_config_manager", None)

    with patch("taskbridge.config.user_config_dir", return_value=tmpdir), patch(
        "taskbridge.config.user_data_dir", return_value=tmpdir
    ), patch("taskbridge.utils.logger.user_log_dir", return_value=tmpdir), patch(
        "taskbridge.adapters.sqlite.connection.user_data_dir", return_value=tmpdir
    ):
        yield tmp_path

    DatabaseConnection.close_all()


# ---------------------------------------------------------------------------
# Stores and collaborators
# ---------------------------------------------------------------------------


@pytest.fixture()
def credentials() -> InMemoryCredentialRepository:
    return InMemoryCredentialRepository()


@pytest.fixture()
def tasks() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture()
def sleep() -> AsyncMock:
    """Stand-in for asyncio.sleep so backoff never waits."""
    return AsyncMock()


@pytest.fixture()
def retry(sleep) -> RetryPolicy:
    return RetryPolicy(attempts=3, base_delay=1.0, max_delay=30.0, sleep=sleep)


@pytest.fixture()
def oauth_client() -> MagicMock:
    """MagicMock shaped like OAuthClientProtocol."""
    client = MagicMock()
    client.authorization_url.side_effect = (
        lambda state, redirect_uri: f"https://login.example/authorize?state={state}"
    )
    client.exchange_code = AsyncMock(return_value=make_grant("access-1", "refresh-1"))
    client.refresh = AsyncMock(return_value=make_grant("access-2", "refresh-2"))
    client.revoke = AsyncMock(return_value=None)
    return client


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_grant(
    access_token: str, refresh_token: str | None = None, expires_in: int = 3600
) -> TokenGrant:
    return TokenGrant(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        scopes=["Tasks.ReadWrite", "offline_access"],
    )


def make_credential(
    user_id: str = "user-1",
    *,
    access_token: str = "access-1",
    refresh_token: str | None = "refresh-1",
    expires_in: int = 3600,
    provider: str = "microsoft",
) -> Credential:
    return Credential(
        user_id=user_id,
        provider=provider,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        scopes=["Tasks.ReadWrite", "offline_access"],
    )
