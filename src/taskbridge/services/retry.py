"""Bounded exponential backoff for transient provider errors."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from taskbridge.config import RetryConfig
from taskbridge.exceptions import RateLimited, is_transient
from taskbridge.utils.logger import get_logger

T = TypeVar("T")


class RetryPolicy:
    """Retries ``RateLimited`` and ``ProviderUnavailable`` with backoff.

    Args:
        attempts: Total tries, including the first
        base_delay: Delay before the second try; doubles each time
        max_delay: Upper bound on any single delay
        sleep: Awaitable sleep function (replaceable in tests)
    """

    def __init__(
        self,
        attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(
            attempts=config.attempts,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
        )

    def delay_for(self, attempt: int, error: BaseException) -> float:
        """Delay before retry number *attempt* (0-based)."""
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if isinstance(error, RateLimited) and error.retry_after is not None:
            delay = max(delay, min(error.retry_after, self.max_delay))
        return delay

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``func(*args, **kwargs)``, retrying transient failures.

        Non-transient errors propagate immediately. The last transient error
        propagates once attempts are exhausted.
        """
        logger = get_logger("retry")
        for attempt in range(self.attempts):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not is_transient(e) or attempt == self.attempts - 1:
                    raise
                delay = self.delay_for(attempt, e)
                logger.warning(
                    "transient provider error (%s), retry %d/%d in %.1fs",
                    type(e).__name__,
                    attempt + 1,
                    self.attempts - 1,
                    delay,
                )
                await self._sleep(delay)

        raise RuntimeError("Request failed after all retries")
