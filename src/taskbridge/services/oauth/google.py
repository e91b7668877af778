"""Google OAuth 2.0 client for the Tasks API."""

from __future__ import annotations

import httpx

from taskbridge.config import ProviderConfig
from taskbridge.models import Credential
from taskbridge.services.provider_http import raise_for_provider_status

from .client import TokenEndpointClient


class GoogleOAuthClient(TokenEndpointClient):
    """OAuth client for accounts.google.com.

    Authorization asks for offline access with forced consent, since Google
    only returns a refresh token on a consent screen.
    """

    default_scopes = ("https://www.googleapis.com/auth/tasks.readonly",)
    send_scope_on_token_request = False

    def __init__(
        self,
        config: ProviderConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, transport=transport)
        self._authorize_endpoint = config.google_auth_url
        self._token_endpoint = config.google_token_url
        self._revoke_endpoint = config.google_revoke_url

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        url = httpx.URL(
            self._authorize_endpoint,
            params={
                "client_id": self._config.client_id,
                "response_type": "code",
                "redirect_uri": redirect_uri,
                "scope": " ".join(self.scopes),
                "state": state,
                "access_type": "offline",
                "prompt": "consent",
                "include_granted_scopes": "true",
            },
        )
        return str(url)

    async def revoke(self, credential: Credential) -> None:
        """Revoke the grant; revoking the refresh token also kills its access tokens."""
        token = credential.refresh_token or credential.access_token
        response = await self._post(self._revoke_endpoint, {"token": token}, "Revocation endpoint")
        raise_for_provider_status(response, "Token revocation")
