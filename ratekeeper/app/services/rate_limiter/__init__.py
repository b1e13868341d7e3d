"""Distributed rate limiting backed by a shared counter store.

This package provides fixed-window rate limiters and concurrency limiters
whose state lives in Redis (or in memory for single-process use).
"""

from .concurrency import ConcurrencyLimiter
from .decorators import concurrency_limited, rate_limited
from .models import RateLimitResult, RateLimitState
from .service import RateLimiter, get_rate_limiter, reset_rate_limiters

__all__ = [
    "RateLimitResult",
    "RateLimitState",
    "RateLimiter",
    "ConcurrencyLimiter",
    "rate_limited",
    "concurrency_limited",
    "get_rate_limiter",
    "reset_rate_limiters",
]
