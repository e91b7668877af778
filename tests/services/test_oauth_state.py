"""Tests for the pending-authorization state store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from taskbridge.services.oauth.state import OAuthStateStore

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
URI = "http://localhost:8765/callback"


class TestOAuthStateStore:
    def test_issue_is_random_and_long(self):
        store = OAuthStateStore()
        first = store.issue("u1", URI, now=T0)
        second = store.issue("u1", URI, now=T0)
        assert first != second
        assert len(first) == 64
        assert len(store) == 2

    def test_consume_returns_binding(self):
        store = OAuthStateStore()
        state = store.issue("u1", URI, now=T0)
        pending = store.consume(state, now=T0 + timedelta(minutes=1))
        assert pending.user_id == "u1"
        assert pending.redirect_uri == URI

    def test_single_use(self):
        store = OAuthStateStore()
        state = store.issue("u1", URI, now=T0)
        assert store.consume(state, now=T0) is not None
        assert store.consume(state, now=T0) is None

    def test_unknown(self):
        assert OAuthStateStore().consume("nope", now=T0) is None

    def test_expired(self):
        store = OAuthStateStore(ttl=timedelta(minutes=10))
        state = store.issue("u1", URI, now=T0)
        assert store.consume(state, now=T0 + timedelta(minutes=11)) is None

    def test_purge_expired(self):
        store = OAuthStateStore(ttl=timedelta(minutes=10))
        store.issue("u1", URI, now=T0)
        store.issue("u2", URI, now=T0 + timedelta(minutes=9))
        assert store.purge_expired(now=T0 + timedelta(minutes=15)) == 1
        assert len(store) == 1
