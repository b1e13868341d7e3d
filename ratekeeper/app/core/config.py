from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Redis settings - the shared counter store for multi-process deployments
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 5.0  # Seconds before a Redis command times out

    # Rate limiter settings
    rate_limit_key_prefix: str = "ratelimit"
    rate_limit_min_wait_seconds: float = 0.05  # Floor for TTL-derived waits

    # Concurrency limiter settings
    concurrency_poll_max_seconds: float = 2.0  # Upper bound of the random retry delay
    concurrency_lease_seconds: int = 300  # In-flight counter expiry if holders crash

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # HTTP client settings (rate limited outbound clients)
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 60.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    @field_validator("rate_limit_key_prefix")
    @classmethod
    def validate_key_prefix(cls, v: str) -> str:
        """Strip separators so keys never contain an empty segment."""
        v = v.strip().strip(":")
        if not v:
            raise ValueError("rate_limit_key_prefix must not be empty")
        return v

    @field_validator(
        "rate_limit_min_wait_seconds",
        "concurrency_poll_max_seconds",
        "redis_socket_timeout",
    )
    @classmethod
    def validate_wait_positive(cls, v: float) -> float:
        """Validate wait durations are positive."""
        if v <= 0:
            raise ValueError("Wait durations must be positive")
        return v

    @field_validator("concurrency_lease_seconds")
    @classmethod
    def validate_lease(cls, v: int) -> int:
        """Validate the concurrency lease is at least one second."""
        if v < 1:
            raise ValueError("concurrency_lease_seconds must be at least 1")
        return v

    @field_validator(
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "httpx_write_timeout",
        "httpx_pool_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator("httpx_max_connections", "httpx_max_keepalive_connections")
    @classmethod
    def validate_pool_size_positive(cls, v: int) -> int:
        """Validate pool sizes are positive."""
        if v < 1:
            raise ValueError("pool size values must be at least 1")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
