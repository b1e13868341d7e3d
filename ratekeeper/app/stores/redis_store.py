"""Redis-backed counter store shared by every process using the same Redis."""

from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ratekeeper.app.core.config import settings
from ratekeeper.app.core.logging import get_log_context, get_logger
from ratekeeper.app.exceptions import CounterStoreUnavailableError
from ratekeeper.app.stores.base import CounterStore, WindowState
from ratekeeper.app.stores.redis_lua import (
    ACQUIRE_SLOT_SCRIPT,
    CONSUME_SCRIPT,
    COUNT_SLOTS_SCRIPT,
    DECREMENT_SCRIPT,
    INCREMENT_SCRIPT,
    RELEASE_SLOT_SCRIPT,
)

logger = get_logger(__name__)


def _ttl_from_pttl(pttl: Any) -> Optional[float]:
    """Convert a PTTL reply (ms, -1 no expiry, -2 missing) to seconds."""
    pttl = int(pttl)
    if pttl < 0:
        return None
    return pttl / 1000.0


class RedisCounterStore(CounterStore):
    """Redis counter store using Lua scripts for atomic check-and-increment.

    Every Redis failure (connection refused, timeout, server error) is
    surfaced as CounterStoreUnavailableError.

    Example:
        >>> store = RedisCounterStore("redis://localhost:6379/0")
        >>> state = await store.consume("ratelimit:slack:test", limit=2, window_seconds=60)
    """

    name = "redis"

    def __init__(
        self,
        redis_url: Optional[str] = None,
        redis_client: Optional[Any] = None,
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_url: Redis connection URL, defaults to settings.redis_url
            redis_client: Pre-built redis.asyncio client (tests, shared pools)
        """
        self._redis_url = redis_url or settings.redis_url
        self._redis = redis_client

    def _get_client(self) -> Any:
        """Get or create the Redis client."""
        if self._redis is None:
            self._redis = aioredis.from_url(
                self._redis_url,
                socket_timeout=settings.redis_socket_timeout,
            )
        return self._redis

    def _unavailable(self, key: str, operation: str, error: Exception) -> CounterStoreUnavailableError:
        logger.error(
            f"Redis {operation} failed for {key}: {error}",
            extra=get_log_context(rate_limit_key=key, store=self.name),
        )
        return CounterStoreUnavailableError(
            key=key, detail=f"Redis {operation} failed: {error}"
        )

    async def consume(self, key: str, limit: int, window_seconds: int) -> WindowState:
        client = self._get_client()
        try:
            result = await client.eval(
                CONSUME_SCRIPT,
                1,  # Number of keys
                key,  # KEYS[1]
                limit,  # ARGV[1]
                window_seconds * 1000,  # ARGV[2]
            )
        except RedisError as e:
            raise self._unavailable(key, "consume", e) from e
        return WindowState(
            admitted=bool(int(result[0])),
            count=int(result[1]),
            ttl=_ttl_from_pttl(result[2]),
        )

    async def increment(
        self,
        key: str,
        ttl_seconds: Optional[int] = None,
        refresh_ttl: bool = False,
    ) -> int:
        client = self._get_client()
        try:
            result = await client.eval(
                INCREMENT_SCRIPT,
                1,
                key,
                (ttl_seconds or 0) * 1000,
                "1" if refresh_ttl else "0",
            )
        except RedisError as e:
            raise self._unavailable(key, "increment", e) from e
        return int(result)

    async def decrement(self, key: str) -> int:
        client = self._get_client()
        try:
            result = await client.eval(DECREMENT_SCRIPT, 1, key)
        except RedisError as e:
            raise self._unavailable(key, "decrement", e) from e
        return int(result)

    async def get_ttl(self, key: str) -> Optional[float]:
        client = self._get_client()
        try:
            pttl = await client.pttl(key)
        except RedisError as e:
            raise self._unavailable(key, "pttl", e) from e
        return _ttl_from_pttl(pttl)

    async def get_count(self, key: str) -> int:
        client = self._get_client()
        try:
            value = await client.get(key)
        except RedisError as e:
            raise self._unavailable(key, "get", e) from e
        return int(value) if value is not None else 0

    async def delete(self, key: str) -> None:
        client = self._get_client()
        try:
            await client.delete(key)
        except RedisError as e:
            raise self._unavailable(key, "delete", e) from e

    async def acquire_slot(
        self, key: str, holder: str, limit: int, lease_seconds: int
    ) -> bool:
        client = self._get_client()
        try:
            result = await client.eval(
                ACQUIRE_SLOT_SCRIPT,
                1,
                key,
                holder,
                limit,
                lease_seconds * 1000,
            )
        except RedisError as e:
            raise self._unavailable(key, "acquire_slot", e) from e
        return bool(int(result))

    async def release_slot(self, key: str, holder: str) -> bool:
        client = self._get_client()
        try:
            result = await client.eval(RELEASE_SLOT_SCRIPT, 1, key, holder)
        except RedisError as e:
            raise self._unavailable(key, "release_slot", e) from e
        return bool(int(result))

    async def count_slots(self, key: str) -> int:
        client = self._get_client()
        try:
            result = await client.eval(COUNT_SLOTS_SCRIPT, 1, key)
        except RedisError as e:
            raise self._unavailable(key, "count_slots", e) from e
        return int(result)

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
