"""Custom exceptions for the rate limiter library."""


class RateKeeperException(Exception):
    """Base class for rate limiter exceptions.

    All custom exceptions inherit from this class so callers can catch
    everything raised by the library with a single clause.
    """

    def __init__(self, message: str = "Rate limiter error"):
        self.message = message
        super().__init__(message)


class InvalidRateLimitError(RateKeeperException, ValueError):
    """Raised when a limiter is constructed with invalid parameters.

    This is a programming error: the limiter cannot be used and the
    operation must not be retried.
    """

    def __init__(self, field: str, value: object, detail: str | None = None):
        self.field = field
        self.value = value
        message = detail or f"Invalid value for {field}: {value!r}"
        super().__init__(message)


class CounterStoreUnavailableError(RateKeeperException):
    """Raised when the shared counter store cannot be reached.

    Distinct from a limit being exceeded (which is never an error): callers
    can tell "please wait" apart from "the coordination backend is down"
    and apply their own retry policy.
    """

    def __init__(self, key: str | None = None, detail: str | None = None):
        self.key = key
        message = detail or "Counter store unavailable"
        if key:
            message = f"{message} (key: {key})"
        super().__init__(message)
