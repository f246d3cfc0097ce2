"""Unit tests for the leaky bucket rate limiter."""

import pytest

from ratekeeper.adapters.rate_limit.base import Decision
from ratekeeper.adapters.rate_limit.clock import ManualClock
from ratekeeper.adapters.rate_limit.leaky_bucket import LeakyBucketRateLimiter
from ratekeeper.core.errors import ConfigurationAppError

A = Decision.ALLOWED
T = Decision.THROTTLED


def test_flood_then_one_second_leaks_two(clock: ManualClock) -> None:
    limiter = LeakyBucketRateLimiter(capacity=5, leak_rate=2, clock=clock)

    flood = [limiter.allow_request("k") for _ in range(6)]
    assert flood == [A] * 5 + [T]

    clock.advance(1000)

    after_leak = [limiter.allow_request("k") for _ in range(3)]
    assert after_leak == [A, A, T]


def test_water_level_never_negative(clock: ManualClock) -> None:
    limiter = LeakyBucketRateLimiter(capacity=3, leak_rate=5, clock=clock)
    limiter.allow_request("k")

    clock.advance(3_600_000)
    assert limiter.allow_request("k") is A

    assert limiter.store.snapshot("k").water_level == 1


def test_leak_jumps_to_now_and_drops_the_remainder(clock: ManualClock) -> None:
    # 2 units/s drains one unit per 500 ms.
    start = clock()
    limiter = LeakyBucketRateLimiter(capacity=1, leak_rate=2, clock=clock)
    assert limiter.allow_request("k") is A

    clock.advance(400)
    assert limiter.allow_request("k") is T
    # Nothing leaked yet, so the leak timestamp did not move.
    assert limiter.store.snapshot("k").last_leak_ms == start

    clock.advance(400)
    assert limiter.allow_request("k") is A
    # 800 ms drained one unit; the extra 300 ms are not carried over.
    assert limiter.store.snapshot("k").last_leak_ms == start + 800

    clock.advance(400)
    assert limiter.allow_request("k") is T


def test_polling_faster_than_leak_interval_still_drains(clock: ManualClock) -> None:
    # 2 units/s, polled every 100 ms while full.
    limiter = LeakyBucketRateLimiter(capacity=2, leak_rate=2, clock=clock)
    assert [limiter.allow_request("k") for _ in range(3)] == [A, A, T]

    decisions = []
    for _ in range(5):
        clock.advance(100)
        decisions.append(limiter.allow_request("k"))

    assert decisions == [T, T, T, T, A]


def test_zero_leak_rate_never_drains(clock: ManualClock) -> None:
    limiter = LeakyBucketRateLimiter(capacity=1, leak_rate=0, clock=clock)
    assert limiter.allow_request("k") is A

    clock.advance(86_400_000)

    assert limiter.allow_request("k") is T


def test_fresh_bucket_starts_empty(clock: ManualClock) -> None:
    limiter = LeakyBucketRateLimiter(capacity=2, leak_rate=1, clock=clock)

    assert limiter.allow_request("k") is A
    state = limiter.store.snapshot("k")
    assert state.water_level == 1
    assert state.last_leak_ms == clock()


def test_clock_moving_backwards_does_not_drain(clock: ManualClock) -> None:
    limiter = LeakyBucketRateLimiter(capacity=1, leak_rate=1, clock=clock)
    assert limiter.allow_request("k") is A

    clock.advance(-10_000)

    assert limiter.allow_request("k") is T
    assert limiter.store.snapshot("k").water_level == 1


def test_isolated_by_key(clock: ManualClock) -> None:
    limiter = LeakyBucketRateLimiter(capacity=1, leak_rate=1, clock=clock)

    assert limiter.allow_request("k1") is A
    assert limiter.allow_request("k1") is T
    assert limiter.allow_request("k2") is A


@pytest.mark.parametrize(
    ("kwargs", "code"),
    [
        ({"capacity": 0, "leak_rate": 1}, "invalid_capacity"),
        ({"capacity": -1, "leak_rate": 1}, "invalid_capacity"),
        ({"capacity": 1, "leak_rate": -2}, "invalid_rate"),
    ],
)
def test_invalid_constructor_args(kwargs: dict, code: str) -> None:
    with pytest.raises(ConfigurationAppError) as exc_info:
        LeakyBucketRateLimiter(**kwargs)

    assert exc_info.value.code == code
