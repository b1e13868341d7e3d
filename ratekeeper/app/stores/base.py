"""Counter store abstraction shared by all limiters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class WindowState:
    """Outcome of one atomic consume call against a fixed window.

    Attributes:
        admitted: Whether the counter was below the limit and got incremented
        count: Counter value after the call
        ttl: Seconds until the window resets, None if the key has no expiry
    """
    admitted: bool
    count: int
    ttl: Optional[float] = None


class CounterStore(ABC):
    """Abstract base class for shared counter stores.

    Implementations must make every method atomic with respect to other
    callers of the same key, including callers in other processes when the
    store is shared.
    """

    name: str = "abstract"

    @abstractmethod
    async def consume(self, key: str, limit: int, window_seconds: int) -> WindowState:
        """Increment the counter only if it is below ``limit``.

        The window TTL is attached when the counter is created.

        Args:
            key: Store key of the counter.
            limit: Maximum count allowed in the window.
            window_seconds: Window length, used as TTL for a new counter.

        Returns:
            WindowState describing whether the caller was admitted.
        """
        pass

    @abstractmethod
    async def increment(
        self,
        key: str,
        ttl_seconds: Optional[int] = None,
        refresh_ttl: bool = False,
    ) -> int:
        """Atomically increment a counter and return the new value.

        Args:
            key: Store key of the counter.
            ttl_seconds: TTL attached when the key is created (None = no TTL).
            refresh_ttl: Re-apply the TTL on every call (lease semantics).
        """
        pass

    @abstractmethod
    async def decrement(self, key: str) -> int:
        """Atomically decrement a counter, never below zero."""
        pass

    @abstractmethod
    async def get_ttl(self, key: str) -> Optional[float]:
        """Seconds remaining before the key expires.

        Returns:
            Remaining seconds, or None if the key does not exist or has no TTL.
        """
        pass

    @abstractmethod
    async def get_count(self, key: str) -> int:
        """Current counter value, 0 if the key does not exist."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a counter."""
        pass

    @abstractmethod
    async def acquire_slot(
        self, key: str, holder: str, limit: int, lease_seconds: int
    ) -> bool:
        """Register ``holder`` as in flight if fewer than ``limit`` leases are live.

        Expired leases are discarded first. A rejected call changes nothing
        else, in particular it does not extend the leases of other holders.

        Args:
            key: Store key of the slot set.
            holder: Token unique to this acquisition.
            limit: Maximum number of live holders.
            lease_seconds: How long the slot is held if never released.

        Returns:
            True if the holder got a slot.
        """
        pass

    @abstractmethod
    async def release_slot(self, key: str, holder: str) -> bool:
        """Give back the slot of ``holder`` only.

        Expired leases are discarded first, so releasing a lease that ran out
        never frees a slot that another holder now occupies.

        Returns:
            False if the holder's lease had already expired.
        """
        pass

    @abstractmethod
    async def count_slots(self, key: str) -> int:
        """Number of holders with a live lease."""
        pass

    async def close(self) -> None:
        """Release any resources held by the store."""
        return None
