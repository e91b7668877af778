"""Credential and authorization data models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field


class Credential(BaseModel):
    """OAuth credential for one (user, provider) pair.

    Attributes:
        user_id: Owning user
        provider: Provider identifier (e.g. "microsoft")
        access_token: Short-lived bearer token
        refresh_token: Long-lived token used to mint new access tokens
        expires_at: Access token expiry (aware UTC)
        scopes: Granted scope set
    """

    user_id: str
    provider: str
    access_token: str = Field(repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expires_at: datetime
    scopes: list[str] = Field(default_factory=list)

    def expires_within(self, margin: timedelta, now: datetime | None = None) -> bool:
        """Return True if the access token expires within *margin* of *now*."""
        now = now or datetime.now(UTC)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at - now <= margin


class TokenGrant(BaseModel):
    """Token endpoint response, normalised."""

    access_token: str = Field(repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expires_at: datetime
    scopes: list[str] = Field(default_factory=list)


class AuthorizationRequest(BaseModel):
    """Returned to the caller when an authorization flow starts."""

    authorization_url: str
    state: str
    expires_at: datetime


class PendingAuthorization(BaseModel):
    """Server-side record of an issued state value."""

    user_id: str
    redirect_uri: str
    created_at: datetime
