"""Limit the number of in-flight operations for a shared resource."""

import asyncio
import inspect
import random
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar, Union

from ratekeeper.app.core.config import settings
from ratekeeper.app.core.logging import get_log_context, get_logger
from ratekeeper.app.stores import CounterStore, get_counter_store

from .service import CONCURRENCY_NAMESPACE, validate_key, validate_positive_int

logger = get_logger(__name__)

T = TypeVar("T")


class ConcurrencyLimiter:
    """Cap how many operations run at once for a key, across processes.

    Used for APIs that limit concurrent runs rather than calls per minute.
    Each acquisition registers its own token in the store with a lease
    deadline and removes only that token when its operation finishes,
    whether it succeeded or raised. When every slot is taken the caller
    backs off for a random delay and tries again; waiting callers never
    touch the leases of the holders.

    A slot is held for at most ``settings.concurrency_lease_seconds``. Slots
    of a crashed process are freed when their lease runs out, and an
    operation that outlives its lease loses its slot to the next caller.

    Example:
        >>> limiter = ConcurrencyLimiter("apify:connections", max_concurrent=32)
        >>> result = await limiter.do_when_available(run_actor, actor_id)
    """

    def __init__(
        self,
        key: str,
        max_concurrent: int,
        store: Optional[CounterStore] = None,
    ) -> None:
        self.key = validate_key(key)
        self.max_concurrent = validate_positive_int("max_concurrent", max_concurrent)
        self._store = store

    def __repr__(self) -> str:
        return f"ConcurrencyLimiter(key={self.key!r}, max_concurrent={self.max_concurrent})"

    @property
    def store(self) -> CounterStore:
        if self._store is None:
            return get_counter_store()
        return self._store

    @property
    def store_key(self) -> str:
        return f"{settings.rate_limit_key_prefix}:{CONCURRENCY_NAMESPACE}{self.key}"

    async def _acquire(self) -> str:
        store = self.store
        store_key = self.store_key
        holder = uuid.uuid4().hex
        while True:
            admitted = await store.acquire_slot(
                store_key,
                holder,
                self.max_concurrent,
                settings.concurrency_lease_seconds,
            )
            if admitted:
                return holder

            delay = random.uniform(0, settings.concurrency_poll_max_seconds)
            logger.debug(
                f"All {self.max_concurrent} slots busy for {self.key}, retrying in {delay:.2f}s",
                extra=get_log_context(
                    rate_limit_key=store_key,
                    limit=self.max_concurrent,
                    wait_seconds=delay,
                    store=store.name,
                ),
            )
            await asyncio.sleep(delay)

    async def _release(self, holder: str) -> None:
        if not await self.store.release_slot(self.store_key, holder):
            logger.warning(
                f"Slot lease for {self.key} expired before release; "
                f"raise concurrency_lease_seconds above the longest operation",
                extra=get_log_context(rate_limit_key=self.store_key, limit=self.max_concurrent),
            )

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one in-flight slot for the duration of the block."""
        holder = await self._acquire()
        try:
            yield
        finally:
            await self._release(holder)

    async def do_when_available(
        self,
        fn: Callable[..., Union[T, Awaitable[T]]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Run fn once a slot is free and return its result.

        fn may be a plain or a coroutine function. Exceptions raised by fn
        propagate after the slot has been released.
        """
        async with self.slot():
            result = fn(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

    async def in_flight(self) -> int:
        """Number of slots currently held."""
        return await self.store.count_slots(self.store_key)
