"""In-process counter store.

Counters live in a dictionary and are only shared between tasks of the same
process, which makes this store suitable for tests and single-worker
deployments.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ratekeeper.app.stores.base import CounterStore, WindowState


@dataclass
class _CounterEntry:
    """Internal counter with TTL tracking."""

    count: int = 0
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        if self.expires_at is None:
            return False
        return now >= self.expires_at

    def ttl(self, now: float) -> float | None:
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - now)


class InMemoryCounterStore(CounterStore):
    """In-memory counter store with TTL support.

    Note: counters are not shared across processes and are lost when the
    process exits.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the store.

        Args:
            clock: Monotonic time source in seconds, injectable for tests.
        """
        self._data: dict[str, _CounterEntry] = {}
        # key -> {holder token: lease deadline}
        self._slots: dict[str, dict[str, float]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _get_live(self, key: str, now: float) -> _CounterEntry | None:
        """Return the entry for key, dropping it first if it has expired."""
        entry = self._data.get(key)
        if entry is not None and entry.is_expired(now):
            del self._data[key]
            return None
        return entry

    async def consume(self, key: str, limit: int, window_seconds: int) -> WindowState:
        async with self._lock:
            now = self._clock()
            entry = self._get_live(key, now)
            if entry is None:
                entry = _CounterEntry(count=0, expires_at=now + window_seconds)
                self._data[key] = entry
            elif entry.expires_at is None:
                entry.expires_at = now + window_seconds

            if entry.count >= limit:
                return WindowState(admitted=False, count=entry.count, ttl=entry.ttl(now))

            entry.count += 1
            return WindowState(admitted=True, count=entry.count, ttl=entry.ttl(now))

    async def increment(
        self,
        key: str,
        ttl_seconds: Optional[int] = None,
        refresh_ttl: bool = False,
    ) -> int:
        async with self._lock:
            now = self._clock()
            entry = self._get_live(key, now)
            if entry is None:
                entry = _CounterEntry()
                self._data[key] = entry
            entry.count += 1
            if ttl_seconds and (entry.count == 1 or refresh_ttl or entry.expires_at is None):
                entry.expires_at = now + ttl_seconds
            return entry.count

    async def decrement(self, key: str) -> int:
        async with self._lock:
            entry = self._get_live(key, self._clock())
            if entry is None or entry.count <= 0:
                return 0
            entry.count -= 1
            return entry.count

    async def get_ttl(self, key: str) -> Optional[float]:
        async with self._lock:
            now = self._clock()
            entry = self._get_live(key, now)
            if entry is None:
                return None
            return entry.ttl(now)

    async def get_count(self, key: str) -> int:
        async with self._lock:
            entry = self._get_live(key, self._clock())
            return entry.count if entry is not None else 0

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)
            self._slots.pop(key, None)

    def _live_holders(self, key: str, now: float) -> dict[str, float]:
        """Return the holders of key, dropping those whose lease ran out."""
        holders = self._slots.get(key)
        if holders is None:
            return {}
        for holder in [h for h, deadline in holders.items() if deadline <= now]:
            del holders[holder]
        if not holders:
            del self._slots[key]
            return {}
        return holders

    async def acquire_slot(
        self, key: str, holder: str, limit: int, lease_seconds: int
    ) -> bool:
        async with self._lock:
            now = self._clock()
            holders = self._live_holders(key, now)
            if len(holders) >= limit:
                return False
            self._slots.setdefault(key, holders)[holder] = now + lease_seconds
            return True

    async def release_slot(self, key: str, holder: str) -> bool:
        async with self._lock:
            holders = self._live_holders(key, self._clock())
            if holder not in holders:
                return False
            del holders[holder]
            if not holders:
                del self._slots[key]
            return True

    async def count_slots(self, key: str) -> int:
        async with self._lock:
            return len(self._live_holders(key, self._clock()))

    async def clear(self) -> None:
        """Remove every counter and slot."""
        async with self._lock:
            self._data.clear()
            self._slots.clear()

    async def cleanup_expired(self) -> int:
        """Remove all expired counters and slot leases.

        Returns:
            Number of counters removed.
        """
        async with self._lock:
            now = self._clock()
            for key in list(self._slots):
                self._live_holders(key, now)
            expired_keys = [
                key for key, entry in self._data.items() if entry.is_expired(now)
            ]
            for key in expired_keys:
                del self._data[key]
            return len(expired_keys)
