"""In-memory leaky bucket rate limiter.

Each admitted request adds one unit of water; the bucket drains at
``leak_rate`` units per second and throttles once it is full.

The common description of this algorithm moves ``last_leak_ms`` to the
current instant on every call. Here it moves only when at least one whole
unit drained; an unconditional move would reset the interval on each call,
so callers polling faster than one unit per interval would never drain.

Unlike the token bucket, a drain moves ``last_leak_ms`` all the way to the
current instant, dropping the sub-unit remainder. Callers polling faster than
one unit per leak interval therefore drain slightly slower than nominal.
"""

from __future__ import annotations

from dataclasses import dataclass

from ratekeeper.adapters.rate_limit.base import (
    AbstractRateLimiter,
    Decision,
    RateLimitAlgorithm,
    require_non_negative_rate,
    require_positive_int,
)
from ratekeeper.adapters.rate_limit.clock import Clock, system_clock_ms
from ratekeeper.adapters.rate_limit.state_store import KeyedStateStore

LEAK_UNIT_MS = 1000


@dataclass
class LevelState:
    water_level: int
    last_leak_ms: int


class LeakyBucketRateLimiter(AbstractRateLimiter):
    """Leaky bucket (as a meter) with per-key water levels."""

    algorithm = RateLimitAlgorithm.LEAKY_BUCKET

    def __init__(
        self,
        *,
        capacity: int,
        leak_rate: float,
        clock: Clock = system_clock_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            capacity: Maximum water level (queued requests) per key.
            leak_rate: Units drained per second; 0 means the bucket never drains.
            clock: Time source returning epoch milliseconds.

        Raises:
            ConfigurationAppError: If capacity or leak_rate are invalid.
        """
        self._capacity = require_positive_int("capacity", capacity)
        self._leak_rate = require_non_negative_rate("leak_rate", leak_rate)
        self._clock = clock
        self._buckets: KeyedStateStore[LevelState] = KeyedStateStore()

    @property
    def limit(self) -> int:
        return self._capacity

    @property
    def leak_rate(self) -> float:
        return self._leak_rate

    @property
    def store(self) -> KeyedStateStore[LevelState]:
        return self._buckets

    def allow_request(self, key: str) -> Decision:
        now = self._clock()

        with self._buckets.locked(
            key, lambda: LevelState(water_level=0, last_leak_ms=now)
        ) as bucket:
            self._leak(bucket, now)

            if bucket.water_level < self._capacity:
                bucket.water_level += 1
                return Decision.ALLOWED
            return Decision.THROTTLED

    def _leak(self, bucket: LevelState, now: int) -> None:
        elapsed_ms = max(0, now - bucket.last_leak_ms)
        leaked = int(elapsed_ms / LEAK_UNIT_MS * self._leak_rate)
        if leaked <= 0:
            return

        bucket.water_level = max(0, bucket.water_level - leaked)
        bucket.last_leak_ms = now
