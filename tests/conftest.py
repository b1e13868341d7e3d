"""Shared fixtures for the rate limiter tests."""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from ratekeeper.app.services.rate_limiter import reset_rate_limiters
from ratekeeper.app.stores import reset_counter_store
from ratekeeper.app.stores.redis_lua import (
    ACQUIRE_SLOT_SCRIPT,
    CONSUME_SCRIPT,
    COUNT_SLOTS_SCRIPT,
    DECREMENT_SCRIPT,
    INCREMENT_SCRIPT,
    RELEASE_SLOT_SCRIPT,
)


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset global state before each test."""
    reset_counter_store()
    reset_rate_limiters()
    yield
    reset_counter_store()
    reset_rate_limiters()


class FakeClock:
    """Manually advanced clock for deterministic window tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_redis():
    """Create a mock Redis client that executes the store's Lua scripts.

    ``redis.clock`` stands in for the server clock and can be replaced by a
    FakeClock to move leases and windows forward.
    """
    redis = MagicMock()
    redis.data = {}
    redis.expiry = {}
    redis.zsets = {}
    redis.clock = time.monotonic

    def now_ms():
        return int(redis.clock() * 1000)

    def purge(key):
        deadline = redis.expiry.get(key)
        if deadline is not None and deadline <= redis.clock():
            redis.data.pop(key, None)
            redis.zsets.pop(key, None)
            redis.expiry.pop(key, None)

    def pttl(key):
        purge(key)
        if key not in redis.data and key not in redis.zsets:
            return -2
        if key not in redis.expiry:
            return -1
        return int((redis.expiry[key] - redis.clock()) * 1000)

    def pexpire(key, ms):
        redis.expiry[key] = redis.clock() + ms / 1000.0

    def prune_slots(key):
        # ZREMRANGEBYSCORE key -inf now
        now = now_ms()
        members = redis.zsets.get(key, {})
        for holder in [h for h, score in members.items() if score <= now]:
            del members[holder]
        if key in redis.zsets and not members:
            del redis.zsets[key]
            redis.expiry.pop(key, None)
        return members

    async def mock_eval(script, num_keys, *args):
        """Simulate the Lua scripts in redis_lua.py."""
        key = args[0]
        argv = args[num_keys:]
        purge(key)

        if script == CONSUME_SCRIPT:
            limit, window_ms = int(argv[0]), int(argv[1])
            current = int(redis.data.get(key, 0))
            ttl = pttl(key)
            if ttl == -1:
                pexpire(key, window_ms)
                ttl = window_ms
            if current >= limit:
                return [0, current, ttl]
            count = current + 1
            redis.data[key] = count
            if count == 1:
                pexpire(key, window_ms)
                ttl = window_ms
            return [1, count, ttl]

        if script == INCREMENT_SCRIPT:
            ttl_ms, refresh = int(argv[0]), argv[1] == "1"
            count = int(redis.data.get(key, 0)) + 1
            redis.data[key] = count
            if ttl_ms > 0 and (count == 1 or refresh or key not in redis.expiry):
                pexpire(key, ttl_ms)
            return count

        if script == DECREMENT_SCRIPT:
            current = int(redis.data.get(key, 0))
            if current <= 0:
                return 0
            redis.data[key] = current - 1
            return current - 1

        if script == ACQUIRE_SLOT_SCRIPT:
            holder, limit, lease_ms = argv[0], int(argv[1]), int(argv[2])
            members = prune_slots(key)
            if len(members) >= limit:
                return 0
            redis.zsets.setdefault(key, members)[holder] = now_ms() + lease_ms
            pexpire(key, lease_ms)
            return 1

        if script == RELEASE_SLOT_SCRIPT:
            members = prune_slots(key)
            if argv[0] not in members:
                return 0
            del members[argv[0]]
            return 1

        if script == COUNT_SLOTS_SCRIPT:
            now = now_ms()
            return sum(1 for score in redis.zsets.get(key, {}).values() if score > now)

        raise AssertionError("unexpected script")

    async def mock_pttl(key):
        return pttl(key)

    async def mock_get(key):
        purge(key)
        value = redis.data.get(key)
        return str(value).encode() if value is not None else None

    async def mock_delete(key):
        existed = key in redis.data or key in redis.zsets
        redis.data.pop(key, None)
        redis.zsets.pop(key, None)
        redis.expiry.pop(key, None)
        return int(existed)

    redis.eval = AsyncMock(side_effect=mock_eval)
    redis.pttl = AsyncMock(side_effect=mock_pttl)
    redis.get = AsyncMock(side_effect=mock_get)
    redis.delete = AsyncMock(side_effect=mock_delete)
    redis.aclose = AsyncMock()
    return redis
