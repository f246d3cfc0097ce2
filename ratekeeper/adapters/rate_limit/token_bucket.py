"""In-memory token bucket rate limiter.

Every key owns a bucket that starts full and is refilled at ``refill_rate``
tokens per second. A request spends one token; an empty bucket throttles.

Refill only credits whole tokens and moves ``last_refill_ms`` forward by the
time those tokens represent, not by the full elapsed interval. The leftover
fraction keeps accruing, so frequent polling does not lose refill.
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


@dataclass
class BucketState:
    tokens: int
    last_refill_ms: int


class TokenBucketRateLimiter(AbstractRateLimiter):
    """Token bucket with per-key buckets and fractional-time preservation."""

    algorithm = RateLimitAlgorithm.TOKEN_BUCKET

    def __init__(
        self,
        *,
        capacity: int,
        refill_rate: float,
        clock: Clock = system_clock_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            capacity: Maximum tokens a bucket can hold (burst size).
            refill_rate: Tokens added per second; 0 disables refill.
            clock: Time source returning epoch milliseconds.

        Raises:
            ConfigurationAppError: If capacity or refill_rate are invalid.
        """
        self._capacity = require_positive_int("capacity", capacity)
        self._refill_rate = require_non_negative_rate("refill_rate", refill_rate)
        self._clock = clock
        self._buckets: KeyedStateStore[BucketState] = KeyedStateStore()

    @property
    def limit(self) -> int:
        return self._capacity

    @property
    def refill_rate(self) -> float:
        return self._refill_rate

    @property
    def store(self) -> KeyedStateStore[BucketState]:
        return self._buckets

    def allow_request(self, key: str) -> Decision:
        now = self._clock()

        with self._buckets.locked(
            key, lambda: BucketState(tokens=self._capacity, last_refill_ms=now)
        ) as bucket:
            self._refill(bucket, now)

            if bucket.tokens > 0:
                bucket.tokens -= 1
                return Decision.ALLOWED
            return Decision.THROTTLED

    def _refill(self, bucket: BucketState, now: int) -> None:
        if self._refill_rate <= 0:
            return

        # Clock stepped backwards: treat as no time passed.
        elapsed_ms = max(0, now - bucket.last_refill_ms)
        tokens_to_add = int(elapsed_ms * self._refill_rate / 1000)
        if tokens_to_add <= 0:
            return

        bucket.tokens = min(bucket.tokens + tokens_to_add, self._capacity)
        bucket.last_refill_ms += int(tokens_to_add * 1000 / self._refill_rate)
