"""Services package for the rate limiter library."""

from ratekeeper.app.services.rate_limiter import (
    ConcurrencyLimiter,
    RateLimiter,
    RateLimitResult,
    RateLimitState,
    concurrency_limited,
    get_rate_limiter,
    rate_limited,
    reset_rate_limiters,
)

__all__ = [
    "ConcurrencyLimiter",
    "RateLimiter",
    "RateLimitResult",
    "RateLimitState",
    "concurrency_limited",
    "get_rate_limiter",
    "rate_limited",
    "reset_rate_limiters",
]
