"""Tests for the error taxonomy and exit codes."""

from __future__ import annotations

import pytest

from taskbridge.exceptions import (
    InvalidInput,
    NotConnected,
    ProviderError,
    ProviderRejected,
    ProviderUnavailable,
    RateLimited,
    RefreshFailed,
    StateMismatch,
    SyncInProgress,
    TaskBridgeError,
    Unauthorized,
    is_transient,
)
from taskbridge.utils import exit_codes


class TestTaxonomy:
    @pytest.mark.parametrize(
        "cls",
        [InvalidInput, StateMismatch, NotConnected, RefreshFailed, SyncInProgress],
    )
    def test_domain_errors_share_base(self, cls):
        assert issubclass(cls, TaskBridgeError)
        assert not issubclass(cls, ProviderError)

    @pytest.mark.parametrize(
        "cls", [ProviderRejected, Unauthorized, RateLimited, ProviderUnavailable]
    )
    def test_provider_errors(self, cls):
        assert issubclass(cls, ProviderError)

    def test_public_message_differs_from_detail(self):
        err = ProviderRejected("token endpoint said: invalid_client (AADSTS7000215)", 400)
        assert "AADSTS" not in err.public_message
        assert err.status_code == 400

    def test_rate_limited_defaults(self):
        err = RateLimited("slow down", retry_after=5)
        assert err.status_code == 429
        assert err.retry_after == 5


class TestIsTransient:
    def test_transient(self):
        assert is_transient(RateLimited("x"))
        assert is_transient(ProviderUnavailable("x", 503))

    def test_not_transient(self):
        assert not is_transient(Unauthorized("x", 401))
        assert not is_transient(ProviderRejected("x", 400))
        assert not is_transient(RefreshFailed("x"))
        assert not is_transient(ValueError("x"))


class TestExitCodes:
    def test_errors_map_to_distinct_codes(self):
        assert NotConnected.exit_code == exit_codes.ERROR_NOT_CONNECTED
        assert SyncInProgress.exit_code == exit_codes.ERROR_BUSY
        assert RefreshFailed.exit_code == exit_codes.ERROR_AUTH_FAILURE
        assert ProviderUnavailable.exit_code == exit_codes.ERROR_NETWORK

    def test_names(self):
        assert exit_codes.get_exit_code_name(exit_codes.ERROR_BUSY) == "ERROR_BUSY"
