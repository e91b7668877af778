"""OAuth 2.0 clients for the supported task providers.

Defines a Protocol so the token manager can be tested with any object that
speaks the same four operations, a shared httpx base for the token
endpoint, and the Microsoft identity platform client.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, runtime_checkable

import httpx

from taskbridge.config import ProviderConfig
from taskbridge.exceptions import ProviderError, ProviderUnavailable, RefreshFailed
from taskbridge.models import Credential, TokenGrant
from taskbridge.services.provider_http import error_code, raise_for_provider_status
from taskbridge.utils.logger import get_logger

_DEFAULT_EXPIRES_IN = 3600


@runtime_checkable
class OAuthClientProtocol(Protocol):
    """Abstract interface for the provider's OAuth endpoints."""

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        """Return the URL the user must visit to grant access."""
        ...

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenGrant:
        """Trade an authorization code for tokens."""
        ...

    async def refresh(self, refresh_token: str) -> TokenGrant:
        """Trade a refresh token for a new access token."""
        ...

    async def revoke(self, credential: Credential) -> None:
        """Revoke the credential upstream."""
        ...


class TokenEndpointClient:
    """Code exchange and refresh against a standard OAuth 2.0 token endpoint.

    Subclasses set the endpoints and provide ``authorization_url`` and
    ``revoke``.

    Args:
        config: Provider settings (client id/secret, scopes)
        transport: Optional httpx transport override (useful for testing)
    """

    default_scopes: tuple[str, ...] = ()
    # Token endpoint errors meaning the refresh token itself is dead
    terminal_refresh_errors: frozenset[str] = frozenset({"invalid_grant"})
    # Whether the token request repeats the scope parameter
    send_scope_on_token_request = True

    def __init__(
        self,
        config: ProviderConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._token_endpoint = ""
        self._logger = get_logger("oauth")

    @property
    def scopes(self) -> list[str]:
        return list(self._config.scopes or self.default_scopes)

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        raise NotImplementedError

    async def revoke(self, credential: Credential) -> None:
        raise NotImplementedError

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenGrant:
        response = await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            }
        )
        raise_for_provider_status(response, "Authorization code exchange")
        return self._parse_grant(response.json())

    async def refresh(self, refresh_token: str) -> TokenGrant:
        """Refresh the access token.

        Raises:
            RefreshFailed: If the provider reports the refresh token invalid
        """
        response = await self._post_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        if (
            response.status_code in (400, 401)
            and error_code(response) in self.terminal_refresh_errors
        ):
            raise RefreshFailed(
                f"Refresh token rejected with HTTP {response.status_code} ({error_code(response)})"
            )
        raise_for_provider_status(response, "Token refresh")
        return self._parse_grant(response.json())

    async def _post(self, url: str, form: dict[str, str], what: str) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout, transport=self._transport
            ) as client:
                return await client.post(url, data=form)
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"{what} unreachable: {type(e).__name__}") from e

    async def _post_token(self, data: dict[str, str]) -> httpx.Response:
        form = {
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            **data,
        }
        if self.send_scope_on_token_request:
            form["scope"] = " ".join(self.scopes)
        return await self._post(self._token_endpoint, form, "Token endpoint")

    def _parse_grant(self, body: dict[str, Any]) -> TokenGrant:
        access_token = body.get("access_token")
        if not access_token:
            raise ProviderError("Token response did not include an access token")
        expires_in = int(body.get("expires_in") or _DEFAULT_EXPIRES_IN)
        scope = body.get("scope")
        return TokenGrant(
            access_token=access_token,
            refresh_token=body.get("refresh_token"),
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
            scopes=scope.split() if scope else self.scopes,
        )


class MicrosoftOAuthClient(TokenEndpointClient):
    """OAuth client for Microsoft Entra ID (login.microsoftonline.com)."""

    default_scopes = ("Tasks.ReadWrite", "offline_access")
    terminal_refresh_errors = frozenset({"invalid_grant", "interaction_required"})

    def __init__(
        self,
        config: ProviderConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, transport=transport)
        base = f"{config.authority_url.rstrip('/')}/{config.tenant}/oauth2/v2.0"
        self._authorize_endpoint = f"{base}/authorize"
        self._token_endpoint = f"{base}/token"

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        url = httpx.URL(
            self._authorize_endpoint,
            params={
                "client_id": self._config.client_id,
                "response_type": "code",
                "redirect_uri": redirect_uri,
                "response_mode": "query",
                "scope": " ".join(self.scopes),
                "state": state,
            },
        )
        return str(url)

    async def revoke(self, credential: Credential) -> None:
        """Forget the credential locally; no request is made.

        The Microsoft identity platform has no endpoint that revokes a single
        app's refresh token. ``/me/revokeSignInSessions`` signs the user out
        of every app and device and needs ``User.RevokeSessions.All``, so it
        is not used. Deleting the stored credential is the whole disconnect.
        """
        self._logger.debug(
            "no upstream revocation for %s credential of user %s",
            credential.provider,
            credential.user_id,
        )
