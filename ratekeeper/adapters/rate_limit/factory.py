"""Factory for creating rate limiter instances."""

from __future__ import annotations

import logging

from ratekeeper.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitAlgorithm,
    require_positive_int,
)
from ratekeeper.adapters.rate_limit.clock import Clock, system_clock_ms
from ratekeeper.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from ratekeeper.adapters.rate_limit.leaky_bucket import LeakyBucketRateLimiter
from ratekeeper.adapters.rate_limit.sliding_window_counter import (
    SlidingWindowCounterRateLimiter,
)
from ratekeeper.adapters.rate_limit.sliding_window_log import SlidingWindowLogRateLimiter
from ratekeeper.adapters.rate_limit.token_bucket import TokenBucketRateLimiter
from ratekeeper.core.config import RateLimitSettings
from ratekeeper.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)


def create_rate_limiter(
    algorithm: RateLimitAlgorithm | str,
    *,
    limit: int,
    window_ms: int,
    rate: float | None = None,
    clock: Clock = system_clock_ms,
) -> AbstractRateLimiter:
    """Instantiate the engine for ``algorithm``.

    The bucket algorithms use ``limit`` as their capacity and ``rate`` as
    their refill/leak rate (defaulting to ``limit`` units per ``window_ms``).
    The window algorithms ignore ``rate``.

    Args:
        algorithm: Algorithm name or enum member.
        limit: Requests per window, or bucket capacity.
        window_ms: Window size in milliseconds.
        rate: Units per second for the bucket algorithms.
        clock: Time source returning epoch milliseconds.

    Returns:
        AbstractRateLimiter: Configured engine.

    Raises:
        ConfigurationAppError: If the algorithm is unknown or a parameter is invalid.
    """
    try:
        algorithm = RateLimitAlgorithm(algorithm)
    except ValueError:
        raise ConfigurationAppError(
            code="unknown_algorithm",
            message=f"Unknown rate limiting algorithm: '{algorithm}'",
            details={
                "algorithm": str(algorithm),
                "supported": [a.value for a in RateLimitAlgorithm],
            },
        ) from None

    if algorithm in (RateLimitAlgorithm.TOKEN_BUCKET, RateLimitAlgorithm.LEAKY_BUCKET):
        if rate is None:
            rate = (
                require_positive_int("capacity", limit)
                * 1000
                / require_positive_int("window_ms", window_ms)
            )

    if algorithm is RateLimitAlgorithm.TOKEN_BUCKET:
        limiter: AbstractRateLimiter = TokenBucketRateLimiter(
            capacity=limit, refill_rate=rate, clock=clock
        )
    elif algorithm is RateLimitAlgorithm.LEAKY_BUCKET:
        limiter = LeakyBucketRateLimiter(capacity=limit, leak_rate=rate, clock=clock)
    elif algorithm is RateLimitAlgorithm.FIXED_WINDOW:
        limiter = FixedWindowRateLimiter(limit=limit, window_ms=window_ms, clock=clock)
    elif algorithm is RateLimitAlgorithm.SLIDING_WINDOW_LOG:
        limiter = SlidingWindowLogRateLimiter(limit=limit, window_ms=window_ms, clock=clock)
    else:
        limiter = SlidingWindowCounterRateLimiter(limit=limit, window_ms=window_ms, clock=clock)

    logger.info(
        "rate_limiter.created",
        extra={
            "algorithm": algorithm.value,
            "limit": limit,
            "window_ms": window_ms,
            "rate": rate,
        },
    )
    return limiter


def create_rate_limiter_from_settings(
    rate_limit_settings: RateLimitSettings,
    *,
    clock: Clock = system_clock_ms,
) -> AbstractRateLimiter:
    """Build the engine described by ``RATE_LIMIT_*`` settings."""
    algorithm = rate_limit_settings.algorithm
    if algorithm is RateLimitAlgorithm.TOKEN_BUCKET:
        rate: float | None = rate_limit_settings.effective_refill_rate
    elif algorithm is RateLimitAlgorithm.LEAKY_BUCKET:
        rate = rate_limit_settings.effective_leak_rate
    else:
        rate = None

    return create_rate_limiter(
        algorithm,
        limit=rate_limit_settings.limit,
        window_ms=rate_limit_settings.window_ms,
        rate=rate,
        clock=clock,
    )
