"""In-memory sliding-window log rate limiter.

Keeps the timestamp of every admitted request per key, oldest first, and
admits a request while fewer than ``limit`` of them fall in the trailing
``window_ms``. Exact, at the cost of up to ``limit`` timestamps per key.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from ratekeeper.adapters.rate_limit.base import (
    AbstractRateLimiter,
    Decision,
    RateLimitAlgorithm,
    require_positive_int,
)
from ratekeeper.adapters.rate_limit.clock import Clock, system_clock_ms
from ratekeeper.adapters.rate_limit.state_store import KeyedStateStore


@dataclass
class LogState:
    timestamps: deque[int] = field(default_factory=deque)


class SlidingWindowLogRateLimiter(AbstractRateLimiter):
    """Exact sliding window backed by a per-key timestamp log."""

    algorithm = RateLimitAlgorithm.SLIDING_WINDOW_LOG

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        clock: Clock = system_clock_ms,
    ) -> None:
        self._limit = require_positive_int("limit", limit)
        self._window_ms = require_positive_int("window_ms", window_ms)
        self._clock = clock
        self._logs: KeyedStateStore[LogState] = KeyedStateStore()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def store(self) -> KeyedStateStore[LogState]:
        return self._logs

    def allow_request(self, key: str) -> Decision:
        now = self._clock()

        with self._logs.locked(key, LogState) as log:
            timestamps = log.timestamps
            # Keep the log ordered even if the clock stepped backwards.
            if timestamps and now < timestamps[-1]:
                now = timestamps[-1]

            window_start = now - self._window_ms
            while timestamps and timestamps[0] < window_start:
                timestamps.popleft()

            if len(timestamps) < self._limit:
                timestamps.append(now)
                return Decision.ALLOWED
            return Decision.THROTTLED
