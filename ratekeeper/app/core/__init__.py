"""Core utilities for the rate limiter library."""

from ratekeeper.app.core.config import settings
from ratekeeper.app.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "get_log_context",
    "setup_logging",
]
