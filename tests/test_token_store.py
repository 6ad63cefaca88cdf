# Tests for pawauth/token_store.py
# Created: 2026-10-19

import dataclasses

import pytest

from pawauth.token_store import TokenSnapshot, TokenStore


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return TokenStore(clock=clock)


class TestSetTokens:
    def test_empty_store_is_invalid(self, store):
        assert store.access_token is None
        assert store.is_valid() is False

    def test_full_payload(self, store, clock):
        store.set_tokens({"access_token": "a", "refresh_token": "r", "expires_in": 60})
        assert store.access_token == "a"
        assert store.refresh_token == "r"
        assert store.expires_at == clock.now + 60
        assert store.is_valid() is True

    def test_partial_payload_keeps_other_fields(self, store, clock):
        store.set_tokens({"access_token": "a", "refresh_token": "r", "expires_in": 60})
        clock.now += 10
        store.set_tokens({"access_token": "b"})
        assert store.access_token == "b"
        assert store.refresh_token == "r"
        assert store.expires_at == 1_060.0

    def test_expiry_uses_time_of_call(self, store, clock):
        clock.now = 5_000.0
        store.set_tokens({"access_token": "a", "expires_in": 100})
        assert store.expires_at == 5_100.0

    def test_string_expires_in(self, store, clock):
        store.set_tokens({"access_token": "a", "expires_in": "100"})
        assert store.expires_at == clock.now + 100

    def test_negative_expires_in_clamped(self, store, clock):
        store.set_tokens({"access_token": "a", "expires_in": -30})
        assert store.expires_at == clock.now

    def test_malformed_expires_in_ignored(self, store):
        store.set_tokens({"access_token": "a", "expires_in": "soon"})
        assert store.expires_at is None
        assert store.is_valid() is True

    def test_none_values_ignored(self, store):
        store.set_tokens({"access_token": "a", "refresh_token": "r"})
        store.set_tokens({"access_token": None, "refresh_token": None, "expires_in": None})
        assert store.access_token == "a"
        assert store.refresh_token == "r"

    def test_set_access_token(self, store):
        store.set_tokens({"access_token": "a", "refresh_token": "r"})
        store.set_access_token("manual")
        assert store.access_token == "manual"
        assert store.refresh_token == "r"


class TestIsValid:
    def test_no_expiry_never_expires(self, store, clock):
        store.set_tokens({"access_token": "a"})
        clock.now += 10**9
        assert store.is_valid() is True

    def test_expires(self, store, clock):
        store.set_tokens({"access_token": "a", "expires_in": 30})
        assert store.is_valid() is True
        clock.now += 30
        assert store.is_valid() is False

    def test_explicit_now(self, store, clock):
        store.set_tokens({"access_token": "a", "expires_in": 30})
        assert store.is_valid(now=clock.now + 29) is True
        assert store.is_valid(now=clock.now + 31) is False

    def test_expiry_without_access_token(self, store):
        store.set_tokens({"refresh_token": "r", "expires_in": 30})
        assert store.is_valid() is False


class TestSnapshot:
    def test_remaining_lifetime(self, store, clock):
        store.set_tokens({"access_token": "a", "refresh_token": "r", "expires_in": 100})
        clock.now += 40
        snap = store.snapshot()
        assert snap == TokenSnapshot(access_token="a", refresh_token="r", expires_in=60)

    def test_to_dict_omits_unset_expiry(self, store):
        store.set_tokens({"access_token": "a"})
        assert store.snapshot().to_dict() == {"access_token": "a", "refresh_token": None}

    def test_to_dict_includes_expiry(self, store):
        store.set_tokens({"access_token": "a", "expires_in": 10})
        assert store.snapshot().to_dict()["expires_in"] == 10

    def test_snapshot_is_immutable(self, store):
        store.set_tokens({"access_token": "a"})
        snap = store.snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.access_token = "b"

    def test_snapshot_detached_from_store(self, store):
        store.set_tokens({"access_token": "a"})
        snap = store.snapshot()
        store.set_tokens({"access_token": "b"})
        assert snap.access_token == "a"
