"""
Tests for pool policy, entry and state models, and structured errors
"""

import pytest
from pydantic import ValidationError

from prefetch_pool.core.errors import (
    EmptyFetchError, ErrorCode, FetchError, FetchTimeoutError, PrefetchError
)
from prefetch_pool.core.models import PoolEntry, PoolKind, PoolPolicy, PoolState


class TestPoolPolicy:

    def test_defaults(self):
        policy = PoolPolicy(key="feed")

        assert policy.kind == PoolKind.NATIVE
        assert policy.capacity == 2
        assert policy.failure_threshold == 3
        assert policy.cooldown_duration == 30.0
        assert policy.effective_stale_age == 3600.0

    def test_kind_from_string(self):
        assert PoolPolicy(key="v", kind="video").kind == PoolKind.VIDEO

    @pytest.mark.parametrize("fields", [
        {"key": ""},
        {"key": "   "},
        {"key": "a", "capacity": 0},
        {"key": "a", "failure_threshold": 0},
        {"key": "a", "cooldown_duration": -1},
        {"key": "a", "stale_age": 0},
        {"key": "a", "unexpected": True},
    ])
    def test_invalid_policies(self, fields):
        with pytest.raises(ValidationError):
            PoolPolicy(**fields)

    def test_policy_is_immutable(self):
        policy = PoolPolicy(key="feed")

        with pytest.raises(ValidationError):
            policy.capacity = 10

    def test_only_native_expires(self):
        assert PoolKind.NATIVE.needs_expiry
        assert not PoolKind.INTERSTITIAL.needs_expiry
        assert not PoolKind.VIDEO.needs_expiry
        assert PoolPolicy(key="v", kind=PoolKind.VIDEO).effective_stale_age is None

    def test_debug_info(self):
        policy = PoolPolicy(key="feed", kind=PoolKind.INTERSTITIAL, capacity=4)

        assert policy.debug_info == "[key: feed, kind: interstitial, capacity: 4]"


def test_entry_age():
    entry = PoolEntry(value="item", arrived_at=10.0)

    assert entry.age(70.0) == 60.0


def test_state_flags():
    state = PoolState(
        key="feed", queue_length=2, capacity=2, is_fetching=False,
        consecutive_failures=0, cooldown_until=None, active=True
    )

    assert state.is_full
    assert not state.in_cooldown


class TestErrors:

    def test_str_includes_code_and_context(self):
        error = FetchError("connection reset", key="feed")

        assert str(error) == "[PF2001] connection reset (context: key=feed)"
        assert error.key == "feed"

    def test_to_dict(self):
        cause = OSError("socket closed")
        error = FetchError("connection reset", key="feed", cause=cause)

        data = error.to_dict()

        assert data["code"] == "PF2001"
        assert data["name"] == "FETCH_FAILED"
        assert data["data"] == {"key": "feed"}
        assert data["cause"] == "socket closed"

    def test_specialized_fetch_errors(self):
        assert EmptyFetchError("feed").code == ErrorCode.FETCH_EMPTY
        timeout = FetchTimeoutError("feed", 2.0)
        assert timeout.code == ErrorCode.FETCH_TIMEOUT
        assert timeout.data == {"timeout": 2.0, "key": "feed"}
        assert isinstance(timeout, PrefetchError)
