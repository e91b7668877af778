"""Tests for the controller-facing IntegrationService.

Wires the real token manager and Graph fetcher with in-memory stores, a
mocked OAuth client, and an httpx.MockTransport standing in for Graph.
"""

from __future__ import annotations

import httpx
import pytest

from conftest import REDIRECT_URI, make_credential
from taskbridge.config import ConfigManager, ProviderConfig
from taskbridge.exceptions import (
    InvalidInput,
    NotConnected,
    ProviderRejected,
    ProviderUnavailable,
    RateLimited,
    RefreshFailed,
    StateMismatch,
    SyncInProgress,
    Unauthorized,
)
from taskbridge.models import LocalTaskFields
from taskbridge.services.google.client import GoogleTaskFetcher
from taskbridge.services.integration_service import (
    IntegrationService,
    build_integration_service,
    build_provider_clients,
    build_scheduler,
    error_response,
)
from taskbridge.services.microsoft.client import GraphTaskFetcher
from taskbridge.services.oauth import GoogleOAuthClient, MicrosoftOAuthClient

BASE = "https://graph.microsoft.com/v1.0"
LISTS = {"value": [{"id": "L1", "displayName": "Tasks", "wellknownListName": "defaultList"}]}
TASKS = {
    "value": [
        {
            "id": "t1",
            "title": "From provider",
            "status": "completed",
            "lastModifiedDateTime": "2024-05-01T10:00:00Z",
        }
    ]
}


def _graph(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/v1.0/me/todo/lists":
        return httpx.Response(200, json=LISTS)
    if request.url.path == "/v1.0/me/todo/lists/L1/tasks":
        return httpx.Response(200, json=TASKS)
    return httpx.Response(404, json={"error": {"code": "NotFound"}})


@pytest.fixture()
def service(oauth_client, credentials, tasks) -> IntegrationService:
    return build_integration_service(
        ConfigManager("default"),
        oauth_client=oauth_client,
        fetcher=GraphTaskFetcher(BASE, transport=httpx.MockTransport(_graph)),
        credentials=credentials,
        tasks=tasks,
    )


async def _connect(credentials, **kwargs):
    await credentials.put_credential("u1", "microsoft", make_credential("u1", **kwargs))


# ---------------------------------------------------------------------------
# error_response
# ---------------------------------------------------------------------------


class TestErrorResponse:
    @pytest.mark.parametrize(
        "error,status",
        [
            (InvalidInput("x"), 400),
            (StateMismatch("x"), 400),
            (RefreshFailed("x"), 401),
            (NotConnected("x"), 404),
            (SyncInProgress("x"), 409),
            (RateLimited("x"), 429),
            (Unauthorized("x", 401), 502),
            (ProviderRejected("x", 400), 502),
            (ProviderUnavailable("x", 503), 503),
        ],
    )
    def test_status_codes(self, error, status):
        code, body = error_response(error)
        assert code == status
        assert body == {"error": error.code, "message": error.public_message}

    def test_detail_never_leaks(self):
        _, body = error_response(ProviderRejected("AADSTS70008: code expired", 400))
        assert "AADSTS" not in body["message"]

    def test_unexpected_error_is_500(self):
        code, body = error_response(RuntimeError("db path /secret/x"))
        assert code == 500
        assert body["error"] == "internal_error"
        assert "/secret" not in body["message"]

    def test_retry_after_exposed(self):
        _, body = error_response(RateLimited("x", retry_after=4.6))
        assert body["retry_after"] == 5


# ---------------------------------------------------------------------------
# Connect flow
# ---------------------------------------------------------------------------


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_then_callback(self, service, credentials):
        started = await service.connect("u1")
        assert started["state"] in started["authorization_url"]

        result = await service.handle_callback(
            {"code": "abc", "state": started["state"]}, user_id="u1"
        )
        assert result["connected"] is True
        assert result["provider"] == "microsoft"
        assert await credentials.get_credential("u1", "microsoft") is not None

    @pytest.mark.asyncio
    async def test_callback_with_provider_error(self, service):
        status, body = await service.respond(
            service.handle_callback({"error": "access_denied", "error_description": "no"})
        )
        assert status == 502
        assert body["error"] == "provider_rejected"

    @pytest.mark.asyncio
    async def test_callback_with_bad_state(self, service):
        status, body = await service.respond(
            service.handle_callback({"code": "abc", "state": "forged"})
        )
        assert (status, body["error"]) == (400, "state_mismatch")

    @pytest.mark.asyncio
    async def test_disallowed_redirect(self, service):
        status, _ = await service.respond(service.connect("u1", "https://evil.example/cb"))
        assert status == 400

    def test_default_redirect_from_config(self, service):
        assert service.default_redirect_uri == REDIRECT_URI


# ---------------------------------------------------------------------------
# Status / disconnect
# ---------------------------------------------------------------------------


class TestStatus:
    @pytest.mark.asyncio
    async def test_not_connected(self, service):
        assert await service.status("u1") == {
            "connected": False,
            "provider": "microsoft",
            "last_sync": None,
        }

    @pytest.mark.asyncio
    async def test_connected_with_stats(self, service, credentials, tasks):
        await _connect(credentials)
        await tasks.create_task("u1", LocalTaskFields(title="x", external_id="t9"))
        status = await service.status("u1")
        assert status["connected"] is True
        assert status["synced_tasks"] == 1
        assert status["last_sync"] is not None

    @pytest.mark.asyncio
    async def test_dead_refresh_token_reports_disconnected(
        self, service, credentials, oauth_client
    ):
        await _connect(credentials, expires_in=0)
        oauth_client.refresh.side_effect = RefreshFailed("invalid_grant")
        assert (await service.status("u1"))["connected"] is False


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_not_connected_is_404(self, service):
        status, body = await service.respond(service.disconnect("u1"))
        assert (status, body["error"]) == (404, "not_connected")

    @pytest.mark.asyncio
    async def test_disconnect_keeps_tasks_linked_by_default(self, service, credentials, tasks):
        await _connect(credentials)
        await tasks.create_task("u1", LocalTaskFields(title="x", external_id="t9"))
        result = await service.disconnect("u1")
        assert result == {"disconnected": True, "provider": "microsoft", "unlinked_tasks": 0}
        assert (await tasks.sync_stats("u1")).synced_tasks == 1

    @pytest.mark.asyncio
    async def test_disconnect_with_unlink(self, service, credentials, tasks):
        await _connect(credentials)
        await tasks.create_task("u1", LocalTaskFields(title="x", external_id="t9"))
        result = await service.disconnect("u1", unlink_tasks=True)
        assert result["unlinked_tasks"] == 1
        assert await credentials.get_credential("u1", "microsoft") is None


# ---------------------------------------------------------------------------
# Sync / lists
# ---------------------------------------------------------------------------


class TestSync:
    @pytest.mark.asyncio
    async def test_sync_summary(self, service, credentials, tasks):
        await _connect(credentials)
        status, summary = await service.respond(service.sync("u1"))

        assert status == 200
        assert summary["success"] is True
        assert summary["results"]["created"] == 1
        assert summary["tasks"][0]["external_id"] == "t1"
        assert summary["tasks"][0]["completed"] is True
        assert (await tasks.find_by_external_id("u1", "t1")).title == "From provider"

    @pytest.mark.asyncio
    async def test_sync_not_connected(self, service):
        status, body = await service.respond(service.sync("u1"))
        assert (status, body["error"]) == (404, "not_connected")

    @pytest.mark.asyncio
    async def test_lists(self, service, credentials):
        await _connect(credentials)
        result = await service.lists("u1")
        assert result["lists"][0]["id"] == "L1"
        assert result["lists"][0]["display_name"] == "Tasks"


class TestBuildScheduler:
    def test_uses_config_and_service(self, service):
        scheduler = build_scheduler(service, ConfigManager("default"))
        assert scheduler.interval == 300


class TestBuildIntegrationService:
    def test_defaults_to_sqlite_stores(self, mocker):
        manager = ConfigManager("default")
        mocker.patch(
            "taskbridge.services.integration_service.get_config_manager",
            return_value=manager,
        )
        service = build_integration_service()
        assert type(service.credentials).__name__ == "SqliteCredentialRepository"
        assert service.engine.conflict_tracker is not None
        assert service.provider == "microsoft"

    def test_google_profile_wires_google_clients(self, mocker):
        manager = ConfigManager("default")
        manager.config.provider.name = "google"
        mocker.patch(
            "taskbridge.services.integration_service.get_config_manager",
            return_value=manager,
        )
        service = build_integration_service()
        assert service.provider == "google"
        assert isinstance(service.fetcher, GoogleTaskFetcher)


class TestBuildProviderClients:
    def test_microsoft(self):
        oauth, fetcher = build_provider_clients(ProviderConfig(name="microsoft"))
        assert isinstance(oauth, MicrosoftOAuthClient)
        assert isinstance(fetcher, GraphTaskFetcher)

    def test_google(self):
        oauth, fetcher = build_provider_clients(ProviderConfig(name="google"))
        assert isinstance(oauth, GoogleOAuthClient)
        assert isinstance(fetcher, GoogleTaskFetcher)

    def test_unknown_provider(self):
        provider = ProviderConfig.model_construct(name="todoist")
        with pytest.raises(InvalidInput):
            build_provider_clients(provider)
