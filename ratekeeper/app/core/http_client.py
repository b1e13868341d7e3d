"""Rate limited HTTP clients for third-party APIs.

Attaches a limiter to an httpx client through a request event hook, so every
outbound request waits for the limiter before it is sent.
"""

from typing import Any, Awaitable, Callable, Optional

import httpx

from ratekeeper.app.core.config import settings
from ratekeeper.app.services.rate_limiter import RateLimiter


def rate_limit_hook(limiter: RateLimiter) -> Callable[[httpx.Request], Awaitable[None]]:
    """Build an httpx request event hook that awaits limiter.process().

    Example:
        >>> client = httpx.AsyncClient(event_hooks={"request": [rate_limit_hook(limiter)]})
    """

    async def hook(request: httpx.Request) -> None:
        await limiter.process()

    return hook


def create_http_client(limiter: Optional[RateLimiter] = None, **kwargs: Any) -> httpx.AsyncClient:
    """Create a new HTTP client, optionally gated by a rate limiter.

    Note: The returned client should be closed when done:
        async with create_http_client(limiter) as client:
            await client.post(...)

    Args:
        limiter: RateLimiter consulted before every request
        **kwargs: Override default settings. Can include:
            - timeout: Single timeout value (overrides all granular timeouts)
            - connect_timeout, read_timeout, write_timeout, pool_timeout
            - max_connections, max_keepalive_connections, keepalive_expiry
            - base_url, headers: passed through to httpx.AsyncClient

    Returns:
        A new httpx.AsyncClient instance.
    """
    timeout_override = kwargs.get("timeout")
    if timeout_override is not None:
        timeout = httpx.Timeout(timeout_override)
    else:
        timeout = httpx.Timeout(
            connect=kwargs.get("connect_timeout", settings.httpx_connect_timeout),
            read=kwargs.get("read_timeout", settings.httpx_read_timeout),
            write=kwargs.get("write_timeout", settings.httpx_write_timeout),
            pool=kwargs.get("pool_timeout", settings.httpx_pool_timeout),
        )

    config: dict[str, Any] = {
        "timeout": timeout,
        "limits": httpx.Limits(
            max_connections=kwargs.get(
                "max_connections", settings.httpx_max_connections
            ),
            max_keepalive_connections=kwargs.get(
                "max_keepalive_connections", settings.httpx_max_keepalive_connections
            ),
            keepalive_expiry=kwargs.get(
                "keepalive_expiry", settings.httpx_keepalive_expiry
            ),
        ),
    }
    for passthrough in ("base_url", "headers", "transport"):
        if passthrough in kwargs:
            config[passthrough] = kwargs[passthrough]
    if limiter is not None:
        config["event_hooks"] = {"request": [rate_limit_hook(limiter)]}
    return httpx.AsyncClient(**config)
