"""Decorators that guard async functions with a limiter."""

import functools
from typing import Any, Callable, TypeVar

from .concurrency import ConcurrencyLimiter
from .service import RateLimiter

F = TypeVar("F", bound=Callable[..., Any])


def rate_limited(limiter: RateLimiter) -> Callable[[F], F]:
    """Await limiter.process() before every call of the decorated function.

    Example:
        >>> deactivate_limiter = RateLimiter("slack:connections:deactivate", 20, 60)
        >>> @rate_limited(deactivate_limiter)
        ... async def deactivate_slack_user(user_id: str) -> None:
        ...     ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            await limiter.process()
            return await func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def concurrency_limited(limiter: ConcurrencyLimiter) -> Callable[[F], F]:
    """Run the decorated function inside one of the limiter's slots."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            async with limiter.slot():
                return await func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator
