"""Fixed-window rate limiting shared across processes.

Each call site guards a third-party API with a limiter named after the
resource, e.g. ``RateLimiter("slack:connections:invite_user", rate_limit=20,
rate_limit_window=60)``, and awaits ``process()`` before every call. All
limiters with the same key, in any process pointed at the same counter
store, share one budget.
"""

import asyncio
from typing import Dict, Optional

from ratekeeper.app.core.config import settings
from ratekeeper.app.core.logging import get_log_context, get_logger
from ratekeeper.app.exceptions import InvalidRateLimitError
from ratekeeper.app.stores import CounterStore, get_counter_store

from .models import RateLimitResult, RateLimitState

logger = get_logger(__name__)

# Store keys under "{prefix}:concurrency:" belong to ConcurrencyLimiter
CONCURRENCY_NAMESPACE = "concurrency:"


def validate_key(key: object) -> str:
    """Validate a limiter key and return it."""
    if not isinstance(key, str) or not key.strip():
        raise InvalidRateLimitError(
            "key", key, "Rate limiter key must be a non-empty string"
        )
    return key


def validate_positive_int(field: str, value: object) -> int:
    """Validate a limiter parameter is an integer >= 1 and return it."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRateLimitError(field, value, f"{field} must be an integer, got {value!r}")
    if value < 1:
        raise InvalidRateLimitError(field, value, f"{field} must be at least 1, got {value}")
    return value


class RateLimiter:
    """Blocking fixed-window rate limiter.

    At most ``rate_limit`` calls to ``process()`` return within any window of
    ``rate_limit_window`` seconds for the same key. Callers over the limit
    sleep until the window's remaining TTL has elapsed and retry; there is no
    retry cap and no timeout, so wrap the call in ``asyncio.wait_for`` when a
    bounded wait is needed.

    The check and the increment run as one atomic store operation, and the
    counter only moves when a caller is admitted: a waiting (or cancelled)
    caller never spends budget. Cancelling after admission does not give the
    slot back.

    Waiters are not queued. Once a window rolls over, whichever waiter reaches
    the store first is admitted.

    The limiter itself keeps no counters, so instances are cheap to create
    per call site or per call.
    """

    def __init__(
        self,
        key: str,
        rate_limit: int,
        rate_limit_window: int,
        store: Optional[CounterStore] = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            key: Identifier of the guarded resource, shared by all callers
            rate_limit: Maximum operations per window
            rate_limit_window: Window length in seconds (60 = one minute)
            store: Counter store, defaults to the process-wide store

        Raises:
            InvalidRateLimitError: If any parameter is invalid
        """
        self.key = validate_key(key)
        if self.key.startswith(CONCURRENCY_NAMESPACE):
            raise InvalidRateLimitError(
                "key",
                key,
                f"Keys starting with {CONCURRENCY_NAMESPACE!r} are reserved "
                f"for concurrency limiters",
            )
        self.rate_limit = validate_positive_int("rate_limit", rate_limit)
        self.rate_limit_window = validate_positive_int("rate_limit_window", rate_limit_window)
        self._store = store

    def __repr__(self) -> str:
        return (
            f"RateLimiter(key={self.key!r}, rate_limit={self.rate_limit}, "
            f"rate_limit_window={self.rate_limit_window})"
        )

    @property
    def store(self) -> CounterStore:
        # Resolved lazily so module-level limiters don't pick a store at import time
        if self._store is None:
            return get_counter_store()
        return self._store

    @property
    def store_key(self) -> str:
        return f"{settings.rate_limit_key_prefix}:{self.key}"

    def _wait_seconds(self, ttl: Optional[float]) -> float:
        """Time to sleep before the window is known to have reset."""
        min_wait = settings.rate_limit_min_wait_seconds
        if ttl is None:
            return min_wait
        return max(ttl, min_wait)

    async def process(self) -> None:
        """Wait until the caller may proceed within the rate limit.

        Raises:
            CounterStoreUnavailableError: If the counter store is unreachable
        """
        store = self.store
        store_key = self.store_key
        while True:
            state = await store.consume(store_key, self.rate_limit, self.rate_limit_window)
            if state.admitted:
                return

            wait = self._wait_seconds(state.ttl)
            logger.debug(
                f"Rate limit reached for {self.key} ({state.count}/{self.rate_limit}), "
                f"waiting {wait:.2f}s",
                extra=get_log_context(
                    rate_limit_key=store_key,
                    limit=self.rate_limit,
                    window_seconds=self.rate_limit_window,
                    wait_seconds=wait,
                    store=store.name,
                ),
            )
            await asyncio.sleep(wait)

    async def try_acquire(self) -> RateLimitResult:
        """Make a single admission attempt without waiting."""
        state = await self.store.consume(
            self.store_key, self.rate_limit, self.rate_limit_window
        )
        return RateLimitResult(
            allowed=state.admitted,
            limit=self.rate_limit,
            remaining=max(0, self.rate_limit - state.count),
            retry_after=None if state.admitted else self._wait_seconds(state.ttl),
        )

    async def get_state(self) -> RateLimitState:
        """Read the current window without consuming from it."""
        store = self.store
        count = await store.get_count(self.store_key)
        ttl = await store.get_ttl(self.store_key)
        return RateLimitState(
            key=self.key,
            limit=self.rate_limit,
            window_seconds=self.rate_limit_window,
            count=count,
            ttl=ttl,
        )

    async def reset(self) -> None:
        """Drop the current window so the next call opens a fresh one."""
        await self.store.delete(self.store_key)
        logger.info(f"Reset rate limit window for {self.key}")


_rate_limiters: Dict[str, RateLimiter] = {}


def get_rate_limiter(key: str, rate_limit: int, rate_limit_window: int) -> RateLimiter:
    """Get the registered limiter for a key, creating it on first use.

    Two call sites guarding the same resource must agree on its budget; a
    conflicting registration raises instead of silently sharing a counter
    under different limits.

    Raises:
        InvalidRateLimitError: If the key is already registered with other limits
    """
    limiter = _rate_limiters.get(key)
    if limiter is None:
        limiter = RateLimiter(key, rate_limit=rate_limit, rate_limit_window=rate_limit_window)
        _rate_limiters[key] = limiter
        return limiter

    if (limiter.rate_limit, limiter.rate_limit_window) != (rate_limit, rate_limit_window):
        raise InvalidRateLimitError(
            "key",
            key,
            f"Rate limiter {key!r} is already registered with "
            f"{limiter.rate_limit}/{limiter.rate_limit_window}s",
        )
    return limiter


def reset_rate_limiters() -> None:
    """Forget all registered limiters (counters in the store are untouched)."""
    _rate_limiters.clear()
