"""Shared counter stores for the limiters.

Provides a pluggable store system with in-memory and Redis implementations
and a process-wide default instance.
"""

from typing import Optional

from ratekeeper.app.core.config import settings
from ratekeeper.app.core.logging import get_logger
from ratekeeper.app.stores.base import CounterStore, WindowState
from ratekeeper.app.stores.memory import InMemoryCounterStore
from ratekeeper.app.stores.redis_store import RedisCounterStore

logger = get_logger(__name__)

__all__ = [
    "CounterStore",
    "WindowState",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "get_counter_store",
    "reset_counter_store",
]

# Global store instance (singleton pattern)
_store_instance: Optional[CounterStore] = None


def get_counter_store(
    backend: Optional[str] = None,
    redis_url: Optional[str] = None,
    force_new: bool = False,
) -> CounterStore:
    """Get or create the global counter store.

    Args:
        backend: 'memory', 'redis', or None to follow settings.redis_enabled.
        redis_url: Redis connection URL. If not provided, uses settings.redis_url.
        force_new: If True, create a new instance even if one exists.

    Returns:
        A CounterStore instance (InMemoryCounterStore or RedisCounterStore).

    Raises:
        ValueError: If backend is not one of the known names.
    """
    global _store_instance

    if _store_instance is not None and not force_new:
        return _store_instance

    if backend is None:
        use_redis = settings.redis_enabled
    elif backend == "redis":
        use_redis = True
    elif backend == "memory":
        use_redis = False
    else:
        raise ValueError(f"Unknown counter store backend: {backend!r}")

    if use_redis:
        _store_instance = RedisCounterStore(redis_url=redis_url)
        logger.info("Using Redis counter store")
    else:
        _store_instance = InMemoryCounterStore()
        logger.info("Using in-memory counter store; limits are not shared across processes")
    return _store_instance


def reset_counter_store() -> None:
    """Reset the global store instance.

    This is primarily useful for testing.
    """
    global _store_instance
    _store_instance = None
