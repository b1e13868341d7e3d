"""Data models for rate limiter results and snapshots."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RateLimitResult:
    """Result of a single non-blocking admission attempt."""
    allowed: bool
    limit: int
    remaining: int
    retry_after: Optional[float] = None


@dataclass
class RateLimitState:
    """Snapshot of a fixed-window counter.

    Attributes:
        key: The limiter key (without store prefix)
        limit: Maximum operations per window
        window_seconds: Window length in seconds
        count: Operations admitted in the current window
        ttl: Seconds until the window resets, None when no window is open
    """
    key: str
    limit: int
    window_seconds: int
    count: int = field(default=0)
    ttl: Optional[float] = field(default=None)

    @property
    def remaining(self) -> int:
        """Operations still available in the current window."""
        return max(0, self.limit - self.count)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "key": self.key,
            "limit": self.limit,
            "window_seconds": self.window_seconds,
            "count": self.count,
            "remaining": self.remaining,
            "ttl": self.ttl,
        }
