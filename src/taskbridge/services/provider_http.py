"""Maps provider HTTP responses onto the TaskBridge error taxonomy."""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx

from taskbridge.exceptions import (
    ProviderRejected,
    ProviderUnavailable,
    RateLimited,
    Unauthorized,
)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header (delta-seconds or HTTP date) into seconds."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())


def error_code(response: httpx.Response) -> str | None:
    """Extract an OAuth/Graph error code from a JSON error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        return error.get("code")
    return None


def raise_for_provider_status(response: httpx.Response, what: str) -> None:
    """Raise the taxonomy error matching *response*'s status, if it failed.

    The message includes the status and provider error code for operators;
    it is never shown to end users.
    """
    status = response.status_code
    if status < 400:
        return

    detail = f"{what} failed with HTTP {status}"
    code = error_code(response)
    if code:
        detail = f"{detail} ({code})"

    if status == 401:
        raise Unauthorized(detail, status)
    if status == 429:
        raise RateLimited(
            detail, status, retry_after=parse_retry_after(response.headers.get("Retry-After"))
        )
    if status >= 500:
        raise ProviderUnavailable(detail, status)
    raise ProviderRejected(detail, status)
