"""Distributed rate limiting for calls to third-party APIs."""

from ratekeeper.app.exceptions import (
    CounterStoreUnavailableError,
    InvalidRateLimitError,
    RateKeeperException,
)
from ratekeeper.app.services.rate_limiter import (
    ConcurrencyLimiter,
    RateLimiter,
    RateLimitResult,
    RateLimitState,
    concurrency_limited,
    get_rate_limiter,
    rate_limited,
)
from ratekeeper.app.stores import (
    CounterStore,
    InMemoryCounterStore,
    RedisCounterStore,
    get_counter_store,
)

__version__ = "0.1.0"

__all__ = [
    "ConcurrencyLimiter",
    "CounterStore",
    "CounterStoreUnavailableError",
    "InMemoryCounterStore",
    "InvalidRateLimitError",
    "RateKeeperException",
    "RateLimitResult",
    "RateLimitState",
    "RateLimiter",
    "RedisCounterStore",
    "concurrency_limited",
    "get_counter_store",
    "get_rate_limiter",
    "rate_limited",
]
