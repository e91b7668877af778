"""Controller-facing facade for the provider integration.

Every operation returns a JSON-serializable dict. ``respond`` wraps an
operation and turns any error into an ``(http_status, body)`` pair with a
stable message; the full error is written to the log and provider error
bodies are never echoed back.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from typing import Any

from taskbridge.adapters.sqlite import SqliteCredentialRepository, SqliteTaskRepository
from taskbridge.config import (
    PROVIDER_GOOGLE,
    PROVIDER_MICROSOFT,
    ConfigManager,
    ProviderConfig,
    get_config_manager,
)
from taskbridge.exceptions import (
    InvalidInput,
    NotConnected,
    ProviderRejected,
    ProviderUnavailable,
    RateLimited,
    RefreshFailed,
    StateMismatch,
    SyncInProgress,
    TaskBridgeError,
    Unauthorized,
)
from taskbridge.models import ListFilter
from taskbridge.repositories import CredentialRepository, TaskRepository
from taskbridge.services.fetcher import TaskFetcherProtocol
from taskbridge.services.google.client import GoogleTaskFetcher
from taskbridge.services.microsoft.client import GraphTaskFetcher
from taskbridge.services.oauth.client import MicrosoftOAuthClient, OAuthClientProtocol
from taskbridge.services.oauth.google import GoogleOAuthClient
from taskbridge.services.oauth.manager import TokenLifecycleManager
from taskbridge.services.retry import RetryPolicy
from taskbridge.services.scheduler import SyncScheduler
from taskbridge.services.sync_conflicts import SyncConflictTracker
from taskbridge.services.sync_service import ReconciliationEngine
from taskbridge.utils.logger import get_logger

# Most specific classes first; the first isinstance match wins
ERROR_STATUS: list[tuple[type[TaskBridgeError], int]] = [
    (InvalidInput, 400),
    (StateMismatch, 400),
    (RefreshFailed, 401),
    (NotConnected, 404),
    (SyncInProgress, 409),
    (RateLimited, 429),
    (Unauthorized, 502),
    (ProviderRejected, 502),
    (ProviderUnavailable, 503),
]


def error_response(exc: BaseException) -> tuple[int, dict[str, Any]]:
    """Translate *exc* into an HTTP status and a client-safe body."""
    logger = get_logger("service")
    if not isinstance(exc, TaskBridgeError):
        logger.error("unhandled error: %s", exc, exc_info=exc)
        return 500, {"error": TaskBridgeError.code, "message": TaskBridgeError.public_message}

    logger.warning("%s: %s", type(exc).__name__, exc)
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    body: dict[str, Any] = {"error": exc.code, "message": exc.public_message}
    if isinstance(exc, RateLimited) and exc.retry_after is not None:
        body["retry_after"] = round(exc.retry_after)
    return status, body


class IntegrationService:
    """Operations exposed to the routing/controller layer and the CLI."""

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        fetcher: TaskFetcherProtocol,
        engine: ReconciliationEngine,
        credentials: CredentialRepository,
        *,
        default_redirect_uri: str,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.token_manager = token_manager
        self.credentials = credentials
        self.fetcher = fetcher
        self.engine = engine
        self.provider = token_manager.provider
        self.default_redirect_uri = default_redirect_uri
        self._retry = retry or RetryPolicy()

    async def respond(self, operation: Awaitable[dict[str, Any]]) -> tuple[int, dict[str, Any]]:
        """Await *operation*, returning ``(200, result)`` or an error response."""
        try:
            return 200, await operation
        except Exception as e:  # noqa: BLE001
            return error_response(e)

    async def connect(self, user_id: str, redirect_uri: str | None = None) -> dict[str, Any]:
        request = await self.token_manager.begin_authorization(
            user_id, redirect_uri or self.default_redirect_uri
        )
        return {
            "authorization_url": request.authorization_url,
            "state": request.state,
            "expires_at": request.expires_at.isoformat(),
        }

    async def handle_callback(
        self,
        query_params: Mapping[str, str],
        redirect_uri: str | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Complete the flow from the provider's redirect query parameters."""
        if query_params.get("error"):
            raise ProviderRejected(
                f"Authorization denied: {query_params.get('error')} "
                f"{query_params.get('error_description', '')}".strip()
            )
        credential = await self.token_manager.complete_authorization(
            query_params.get("code", ""),
            query_params.get("state", ""),
            redirect_uri or self.default_redirect_uri,
            user_id=user_id,
        )
        return {
            "connected": True,
            "provider": self.provider,
            "scopes": credential.scopes,
            "expires_at": credential.expires_at.isoformat(),
        }

    async def status(self, user_id: str) -> dict[str, Any]:
        """Report whether a usable credential exists, refreshing it if needed."""
        try:
            await self.token_manager.get_valid_access_token(user_id)
        except (NotConnected, RefreshFailed):
            return {"connected": False, "provider": self.provider, "last_sync": None}

        stats = await self.engine.get_sync_stats(user_id)
        return {
            "connected": True,
            "provider": self.provider,
            "last_sync": stats.last_sync.isoformat() if stats.last_sync else None,
            "synced_tasks": stats.synced_tasks,
            "total_tasks": stats.total_tasks,
        }

    async def disconnect(self, user_id: str, unlink_tasks: bool = False) -> dict[str, Any]:
        if not await self.token_manager.is_connected(user_id):
            raise NotConnected(f"No {self.provider} credential for user {user_id}")
        unlinked = await self.engine.unlink_tasks(user_id) if unlink_tasks else 0
        await self.token_manager.disconnect(user_id)
        return {"disconnected": True, "provider": self.provider, "unlinked_tasks": unlinked}

    async def sync(
        self,
        user_id: str,
        list_filter: ListFilter | None = None,
        deadline: float | None = None,
    ) -> dict[str, Any]:
        result = await self.engine.sync(user_id, list_filter, deadline=deadline)
        return result.summary()

    async def lists(self, user_id: str) -> dict[str, Any]:
        """List the user's remote task lists."""
        token = await self.token_manager.get_valid_access_token(user_id)
        try:
            lists = await self._retry.call(self.fetcher.list_task_lists, token)
        except Unauthorized:
            token = await self.token_manager.refresh_after_rejection(user_id, token)
            lists = await self._retry.call(self.fetcher.list_task_lists, token)
        return {"lists": [lst.model_dump() for lst in lists]}


def build_provider_clients(
    provider: ProviderConfig,
) -> tuple[OAuthClientProtocol, TaskFetcherProtocol]:
    """Return the OAuth client and task fetcher for ``provider.name``.

    Raises:
        InvalidInput: If the provider is not supported
    """
    if provider.name == PROVIDER_MICROSOFT:
        return (
            MicrosoftOAuthClient(provider),
            GraphTaskFetcher(provider.graph_base_url, timeout=provider.timeout),
        )
    if provider.name == PROVIDER_GOOGLE:
        return (
            GoogleOAuthClient(provider),
            GoogleTaskFetcher(provider.google_tasks_base_url, timeout=provider.timeout),
        )
    raise InvalidInput(f"Unsupported provider: {provider.name}")


def build_integration_service(
    config_manager: ConfigManager | None = None,
    *,
    oauth_client: OAuthClientProtocol | None = None,
    fetcher: TaskFetcherProtocol | None = None,
    credentials: CredentialRepository | None = None,
    tasks: TaskRepository | None = None,
) -> IntegrationService:
    """Wire an IntegrationService from configuration.

    Any collaborator may be passed in; the rest default to the configured
    provider's clients and the SQLite stores at the configured database path.
    """
    config_manager = config_manager or get_config_manager()
    config = config_manager.config
    db_path = config_manager.database_path

    credentials = credentials or SqliteCredentialRepository(db_path)
    tasks = tasks or SqliteTaskRepository(db_path)
    if oauth_client is None or fetcher is None:
        default_oauth, default_fetcher = build_provider_clients(config.provider)
        oauth_client = oauth_client or default_oauth
        fetcher = fetcher or default_fetcher
    retry = RetryPolicy.from_config(config.retry)

    manager = TokenLifecycleManager.from_config(config, oauth_client, credentials)
    engine = ReconciliationEngine(
        manager,
        fetcher,
        tasks,
        retry=retry,
        conflict_tracker=SyncConflictTracker(config_manager.data_dir / "sync-conflicts.json"),
    )
    return IntegrationService(
        manager,
        fetcher,
        engine,
        credentials,
        default_redirect_uri=config.provider.redirect_uris[0],
        retry=retry,
    )


def build_scheduler(
    service: IntegrationService, config_manager: ConfigManager | None = None
) -> SyncScheduler:
    config = (config_manager or get_config_manager()).config
    return SyncScheduler(
        service.engine,
        service.credentials,
        service.provider,
        interval=config.sync.interval,
        list_filter=ListFilter(include_completed=config.sync.include_completed),
        deadline=config.sync.deadline,
    )
