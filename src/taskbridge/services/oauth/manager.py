"""Token lifecycle management for one provider.

Owns the authorization-code exchange and refresh-token rotation. Credentials
are read and written only through the CredentialRepository.

Refreshes are single-flight per user: the first caller that finds an
expiring token starts one refresh task, and every concurrent caller awaits
that same task. The task is shielded from caller cancellation so a refresh
that reached the provider is always persisted.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from taskbridge.config import PROVIDER_MICROSOFT, Config
from taskbridge.exceptions import (
    InvalidInput,
    NotConnected,
    RefreshFailed,
    StateMismatch,
    TaskBridgeError,
)
from taskbridge.models import AuthorizationRequest, Credential
from taskbridge.repositories import CredentialRepository
from taskbridge.services.oauth.client import OAuthClientProtocol
from taskbridge.services.oauth.state import OAuthStateStore
from taskbridge.services.retry import RetryPolicy
from taskbridge.utils.logger import get_logger


class TokenLifecycleManager:
    """Authorizes, refreshes, and disconnects provider credentials.

    Args:
        oauth_client: Provider OAuth client
        credentials: Credential store
        redirect_uris: Allow-list of redirect URIs
        provider: Provider identifier used as the credential key
        state_store: Pending-authorization store (defaults to a 10 minute TTL)
        refresh_margin: Refresh when the token expires within this window
        retry: Backoff policy for transient refresh failures
    """

    def __init__(
        self,
        oauth_client: OAuthClientProtocol,
        credentials: CredentialRepository,
        redirect_uris: list[str],
        *,
        provider: str = PROVIDER_MICROSOFT,
        state_store: OAuthStateStore | None = None,
        refresh_margin: timedelta = timedelta(seconds=60),
        retry: RetryPolicy | None = None,
    ) -> None:
        self.provider = provider
        self._oauth = oauth_client
        self._credentials = credentials
        self._redirect_uris = set(redirect_uris)
        self._states = state_store if state_store is not None else OAuthStateStore()
        self._refresh_margin = refresh_margin
        self._retry = retry or RetryPolicy()
        self._locks: dict[str, asyncio.Lock] = {}
        self._inflight: dict[str, asyncio.Task[Credential]] = {}
        self._logger = get_logger("oauth")

    @classmethod
    def from_config(
        cls,
        config: Config,
        oauth_client: OAuthClientProtocol,
        credentials: CredentialRepository,
    ) -> TokenLifecycleManager:
        return cls(
            oauth_client,
            credentials,
            config.provider.redirect_uris,
            provider=config.provider.name,
            state_store=OAuthStateStore(ttl=timedelta(seconds=config.auth.state_ttl)),
            refresh_margin=timedelta(seconds=config.auth.refresh_margin),
            retry=RetryPolicy.from_config(config.retry),
        )

    # ------------------------------------------------------------------
    # Authorization-code flow
    # ------------------------------------------------------------------

    async def begin_authorization(
        self, user_id: str, redirect_uri: str
    ) -> AuthorizationRequest:
        """Start an authorization flow bound to *user_id*.

        Raises:
            InvalidInput: If *redirect_uri* is not on the allow-list
        """
        self._check_redirect_uri(redirect_uri)
        now = datetime.now(UTC)
        state = self._states.issue(user_id, redirect_uri, now=now)
        self._logger.info("authorization started for user %s", user_id)
        return AuthorizationRequest(
            authorization_url=self._oauth.authorization_url(state, redirect_uri),
            state=state,
            expires_at=now + self._states.ttl,
        )

    async def complete_authorization(
        self,
        code: str,
        state: str,
        redirect_uri: str,
        user_id: str | None = None,
    ) -> Credential:
        """Finish the flow and store the user's credential.

        Args:
            code: Authorization code from the callback
            state: State value from the callback
            redirect_uri: Redirect URI used when the flow started
            user_id: Calling user, when known; must match the state's owner

        Raises:
            InvalidInput: Missing code/state or disallowed redirect URI
            StateMismatch: State unknown, expired, reused, or bound elsewhere
            ProviderRejected: The provider refused the code
        """
        if not code or not state:
            raise InvalidInput("Authorization callback is missing code or state")
        self._check_redirect_uri(redirect_uri)

        pending = self._states.consume(state)
        if pending is None:
            raise StateMismatch("State is unknown, expired, or already used")
        if pending.redirect_uri != redirect_uri:
            raise StateMismatch("State was issued for a different redirect URI")
        if user_id is not None and pending.user_id != user_id:
            raise StateMismatch("State is bound to a different user")

        grant = await self._oauth.exchange_code(code, redirect_uri)
        credential = Credential(
            user_id=pending.user_id,
            provider=self.provider,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=grant.expires_at,
            scopes=grant.scopes,
        )
        await self._credentials.put_credential(pending.user_id, self.provider, credential)
        self._logger.info("%s account connected for user %s", self.provider, pending.user_id)
        return credential

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    async def get_valid_access_token(self, user_id: str) -> str:
        """Return an access token good for at least the refresh margin.

        Raises:
            NotConnected: No credential is stored
            RefreshFailed: The refresh token is dead; the credential is deleted
        """
        credential = await self._require_credential(user_id)
        if not self._is_stale(credential):
            return credential.access_token

        async with self._lock_for(user_id):
            inflight = self._inflight.get(user_id)
            if inflight is not None and not inflight.done():
                return (await asyncio.shield(inflight)).access_token

            # Re-read: another caller may have refreshed while we waited
            credential = await self._require_credential(user_id)
            if not self._is_stale(credential):
                return credential.access_token
            return (await self._start_refresh(credential)).access_token

    async def refresh_after_rejection(self, user_id: str, rejected_token: str) -> str:
        """Force a refresh after the provider rejected *rejected_token*.

        If another caller already rotated away from *rejected_token*, its
        result is reused instead of refreshing again.
        """
        async with self._lock_for(user_id):
            inflight = self._inflight.get(user_id)
            if inflight is not None and not inflight.done():
                return (await asyncio.shield(inflight)).access_token

            credential = await self._require_credential(user_id)
            if credential.access_token != rejected_token:
                return credential.access_token
            return (await self._start_refresh(credential)).access_token

    async def is_connected(self, user_id: str) -> bool:
        return await self._credentials.get_credential(user_id, self.provider) is not None

    async def disconnect(self, user_id: str) -> bool:
        """Revoke upstream (best effort) and delete the credential.

        Returns:
            True if a credential existed
        """
        credential = await self._credentials.get_credential(user_id, self.provider)
        if credential is not None:
            try:
                await self._oauth.revoke(credential)
            except TaskBridgeError as e:
                self._logger.warning(
                    "token revocation failed for user %s: %s", user_id, e
                )
        deleted = await self._credentials.delete_credential(user_id, self.provider)
        self._logger.info("%s account disconnected for user %s", self.provider, user_id)
        return deleted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_redirect_uri(self, redirect_uri: str) -> None:
        if redirect_uri not in self._redirect_uris:
            raise InvalidInput(f"Redirect URI not allowed: {redirect_uri}")

    def _is_stale(self, credential: Credential) -> bool:
        return credential.expires_within(self._refresh_margin)

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        return self._locks.setdefault(user_id, asyncio.Lock())

    async def _require_credential(self, user_id: str) -> Credential:
        credential = await self._credentials.get_credential(user_id, self.provider)
        if credential is None:
            raise NotConnected(f"No {self.provider} credential for user {user_id}")
        return credential

    async def _start_refresh(self, credential: Credential) -> Credential:
        """Run one refresh as a shielded task that all waiters share."""
        user_id = credential.user_id
        task = asyncio.ensure_future(self._refresh(credential))
        self._inflight[user_id] = task

        def _done(finished: asyncio.Task[Credential]) -> None:
            if self._inflight.get(user_id) is finished:
                del self._inflight[user_id]
            if not finished.cancelled():
                # Marks the exception retrieved when every waiter was cancelled
                finished.exception()

        task.add_done_callback(_done)
        return await asyncio.shield(task)

    async def _refresh(self, credential: Credential) -> Credential:
        user_id = credential.user_id
        if not credential.refresh_token:
            await self._credentials.delete_credential(user_id, self.provider)
            raise RefreshFailed(f"No refresh token stored for user {user_id}")

        self._logger.info("access token expiring for user %s, refreshing", user_id)
        try:
            grant = await self._retry.call(self._oauth.refresh, credential.refresh_token)
        except RefreshFailed:
            await self._credentials.delete_credential(user_id, self.provider)
            self._logger.warning(
                "refresh token rejected for user %s; credential deleted", user_id
            )
            raise

        refreshed = credential.model_copy(
            update={
                "access_token": grant.access_token,
                # Providers may omit the refresh token when it did not rotate
                "refresh_token": grant.refresh_token or credential.refresh_token,
                "expires_at": grant.expires_at,
                "scopes": grant.scopes or credential.scopes,
            }
        )
        await self._credentials.put_credential(user_id, self.provider, refreshed)
        return refreshed
