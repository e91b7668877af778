"""Error taxonomy for TaskBridge.

Every error carries a ``public_message`` that is safe to show to a client
and an ``exit_code`` used by the CLI. The exception's own ``str()`` holds the
operator detail and is only ever written to the log.
"""

from __future__ import annotations

from taskbridge.utils import exit_codes


class TaskBridgeError(Exception):
    """Base exception for all TaskBridge errors."""

    code = "internal_error"
    public_message = "An unexpected error occurred."
    exit_code = exit_codes.ERROR_GENERAL


class InvalidInput(TaskBridgeError):
    """Raised when caller-supplied data fails validation."""

    code = "invalid_input"
    public_message = "The request was invalid."
    exit_code = exit_codes.ERROR_INVALID_ARGS


class StateMismatch(TaskBridgeError):
    """Raised when an OAuth callback carries an unknown or expired state."""

    code = "state_mismatch"
    public_message = "The authorization request expired or is invalid. Please connect again."
    exit_code = exit_codes.ERROR_AUTH_FAILURE


class NotConnected(TaskBridgeError):
    """Raised when the user has no stored credential for the provider."""

    code = "not_connected"
    public_message = "No task provider account is connected."
    exit_code = exit_codes.ERROR_NOT_CONNECTED


class RefreshFailed(TaskBridgeError):
    """Raised when the provider reports the refresh token itself as invalid.

    Terminal for the credential: it is deleted before this error surfaces.
    """

    code = "refresh_failed"
    public_message = "The provider connection expired. Please connect again."
    exit_code = exit_codes.ERROR_AUTH_FAILURE


class SyncInProgress(TaskBridgeError):
    """Raised when a sync is already running for the same user."""

    code = "sync_in_progress"
    public_message = "A sync is already running for this account."
    exit_code = exit_codes.ERROR_BUSY


class ProviderError(TaskBridgeError):
    """Base class for failures reported by the upstream provider."""

    code = "provider_error"
    public_message = "The task provider returned an error."
    exit_code = exit_codes.ERROR_NETWORK

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderRejected(ProviderError):
    """Raised when the provider refuses a request (e.g. code exchange)."""

    code = "provider_rejected"
    public_message = "The task provider rejected the request."


class Unauthorized(ProviderError):
    """Raised when the provider rejects the access token mid-fetch."""

    code = "unauthorized"
    public_message = "The task provider rejected the stored credentials."
    exit_code = exit_codes.ERROR_AUTH_FAILURE


class RateLimited(ProviderError):
    """Raised on a 429 response. Transient."""

    code = "rate_limited"
    public_message = "The task provider is rate limiting requests. Try again later."

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        retry_after: float | None = None,
    ):
        super().__init__(message, status_code)
        self.retry_after = retry_after


class ProviderUnavailable(ProviderError):
    """Raised on a 5xx response or a transport failure. Transient."""

    code = "provider_unavailable"
    public_message = "The task provider is temporarily unavailable. Try again later."


def is_transient(exc: BaseException) -> bool:
    """Return True if *exc* may succeed when retried with backoff."""
    return isinstance(exc, (RateLimited, ProviderUnavailable))
