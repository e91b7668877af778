"""Tests for RetryPolicy backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from taskbridge.config import RetryConfig
from taskbridge.exceptions import ProviderRejected, ProviderUnavailable, RateLimited, Unauthorized
from taskbridge.services.retry import RetryPolicy


class TestDelay:
    def test_exponential_and_capped(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0)
        err = ProviderUnavailable("x", 503)
        assert [policy.delay_for(i, err) for i in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_retry_after_extends_delay(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=30.0)
        assert policy.delay_for(0, RateLimited("x", retry_after=7)) == 7

    def test_retry_after_capped(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=10.0)
        assert policy.delay_for(0, RateLimited("x", retry_after=120)) == 10.0

    def test_from_config(self):
        policy = RetryPolicy.from_config(RetryConfig(attempts=5, base_delay=0.5, max_delay=8))
        assert (policy.attempts, policy.base_delay, policy.max_delay) == (5, 0.5, 8)

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            RetryPolicy(attempts=0)


class TestCall:
    @pytest.mark.asyncio
    async def test_returns_first_success(self, retry, sleep):
        func = AsyncMock(return_value="ok")
        assert await retry.call(func, "a", key="b") == "ok"
        func.assert_awaited_once_with("a", key="b")
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(self, retry, sleep):
        func = AsyncMock(side_effect=[ProviderUnavailable("x", 503), RateLimited("y"), "ok"])
        assert await retry.call(func) == "ok"
        assert func.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, retry, sleep):
        func = AsyncMock(side_effect=ProviderUnavailable("down", 503))
        with pytest.raises(ProviderUnavailable):
            await retry.call(func)
        assert func.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [Unauthorized("x", 401), ProviderRejected("x", 400), ValueError("bad")]
    )
    async def test_non_transient_not_retried(self, retry, sleep, error):
        func = AsyncMock(side_effect=error)
        with pytest.raises(type(error)):
            await retry.call(func)
        func.assert_awaited_once()
        sleep.assert_not_awaited()
