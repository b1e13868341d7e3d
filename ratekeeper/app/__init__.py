"""Rate limiter library internals: core settings, stores and limiter services."""
