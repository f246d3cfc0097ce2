"""Unit tests for the rate limiter factory."""

import pytest

from ratekeeper.adapters.rate_limit.base import RateLimitAlgorithm
from ratekeeper.adapters.rate_limit.clock import ManualClock
from ratekeeper.adapters.rate_limit.factory import (
    create_rate_limiter,
    create_rate_limiter_from_settings,
)
from ratekeeper.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from ratekeeper.adapters.rate_limit.leaky_bucket import LeakyBucketRateLimiter
from ratekeeper.adapters.rate_limit.sliding_window_counter import (
    SlidingWindowCounterRateLimiter,
)
from ratekeeper.adapters.rate_limit.sliding_window_log import SlidingWindowLogRateLimiter
from ratekeeper.adapters.rate_limit.token_bucket import TokenBucketRateLimiter
from ratekeeper.core.config import RateLimitSettings
from ratekeeper.core.errors import ConfigurationAppError


@pytest.mark.parametrize(
    ("name", "expected_type"),
    [
        ("token_bucket", TokenBucketRateLimiter),
        ("leaky_bucket", LeakyBucketRateLimiter),
        ("fixed_window", FixedWindowRateLimiter),
        ("sliding_window_log", SlidingWindowLogRateLimiter),
        ("sliding_window_counter", SlidingWindowCounterRateLimiter),
    ],
)
def test_creates_engine_by_name(name: str, expected_type: type) -> None:
    limiter = create_rate_limiter(name, limit=5, window_ms=2000)

    assert isinstance(limiter, expected_type)
    assert limiter.algorithm == RateLimitAlgorithm(name)
    assert limiter.limit == 5


def test_bucket_rate_defaults_to_limit_per_window() -> None:
    token = create_rate_limiter(RateLimitAlgorithm.TOKEN_BUCKET, limit=5, window_ms=2000)
    leaky = create_rate_limiter(RateLimitAlgorithm.LEAKY_BUCKET, limit=5, window_ms=2000)

    assert token.refill_rate == 2.5
    assert leaky.leak_rate == 2.5


def test_explicit_rate_is_used() -> None:
    leaky = create_rate_limiter("leaky_bucket", limit=5, window_ms=2000, rate=2)

    assert leaky.leak_rate == 2.0


def test_unknown_algorithm_is_rejected() -> None:
    with pytest.raises(ConfigurationAppError) as exc_info:
        create_rate_limiter("random_early_drop", limit=5, window_ms=2000)

    assert exc_info.value.code == "unknown_algorithm"
    assert "token_bucket" in exc_info.value.details["supported"]


@pytest.mark.parametrize("algorithm", list(RateLimitAlgorithm), ids=lambda a: a.value)
def test_invalid_window_is_rejected_for_every_algorithm(algorithm: RateLimitAlgorithm) -> None:
    with pytest.raises(ConfigurationAppError):
        create_rate_limiter(algorithm, limit=5, window_ms=0)


def test_engine_uses_injected_clock() -> None:
    clock = ManualClock(0)
    limiter = create_rate_limiter("fixed_window", limit=1, window_ms=1000, clock=clock)

    limiter.allow_request("k")
    clock.advance(1000)

    assert limiter.allow_request("k").allowed


def test_from_settings_uses_algorithm_specific_rate() -> None:
    cfg = RateLimitSettings(
        algorithm="leaky_bucket",
        limit=5,
        window_ms=2000,
        refill_rate=9,
        leak_rate=2,
    )

    limiter = create_rate_limiter_from_settings(cfg)

    assert isinstance(limiter, LeakyBucketRateLimiter)
    assert limiter.leak_rate == 2.0
    assert limiter.limit == 5


def test_from_settings_window_algorithm() -> None:
    cfg = RateLimitSettings(algorithm="sliding_window_log", limit=7, window_ms=500)

    limiter = create_rate_limiter_from_settings(cfg)

    assert isinstance(limiter, SlidingWindowLogRateLimiter)
    assert limiter.window_ms == 500
