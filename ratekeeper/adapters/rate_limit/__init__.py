"""Rate limiting adapters.

Five in-memory admission algorithms behind ``AbstractRateLimiter``. Every
engine keeps per-key state in a ``KeyedStateStore`` and serializes decisions
per key, so callers can swap algorithms through the factory without touching
the service or HTTP layers.
"""
