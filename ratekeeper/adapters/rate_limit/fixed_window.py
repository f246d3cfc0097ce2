"""In-memory fixed-window rate limiter.

Notes:
- Windows are request-triggered: a window opens at the first request after the
  previous one expired, so boundaries are not aligned to the wall clock and a
  quiet key can see windows much longer than ``window_ms``.
- Up to ``2 * limit`` requests can pass across a reset boundary. That burst is
  inherent to the algorithm and is kept as-is.
"""

from __future__ import annotations

from dataclasses import dataclass

from ratekeeper.adapters.rate_limit.base import (
    AbstractRateLimiter,
    Decision,
    RateLimitAlgorithm,
    require_positive_int,
)
from ratekeeper.adapters.rate_limit.clock import Clock, system_clock_ms
from ratekeeper.adapters.rate_limit.state_store import KeyedStateStore


@dataclass
class WindowState:
    window_start_ms: int
    count: int = 0


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests in a fixed window per key.

    Limits requests per key within a window of time (e.g., 5 requests per
    2000 ms). The counter resets once a request arrives ``window_ms`` or more
    after the current window opened.
    """

    algorithm = RateLimitAlgorithm.FIXED_WINDOW

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        clock: Clock = system_clock_ms,
    ) -> None:
        """Initialize the fixed-window limiter.

        Args:
            limit: Maximum number of allowed requests per window.
            window_ms: Size of the window in milliseconds.
            clock: Time source returning epoch milliseconds.

        Raises:
            ConfigurationAppError: If limit or window_ms are invalid.
        """
        self._limit = require_positive_int("limit", limit)
        self._window_ms = require_positive_int("window_ms", window_ms)
        self._clock = clock
        self._windows: KeyedStateStore[WindowState] = KeyedStateStore()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def store(self) -> KeyedStateStore[WindowState]:
        return self._windows

    def allow_request(self, key: str) -> Decision:
        now = self._clock()

        with self._windows.locked(key, lambda: WindowState(window_start_ms=now)) as window:
            # A backwards clock yields a negative difference and never resets.
            if now - window.window_start_ms >= self._window_ms:
                window.window_start_ms = now
                window.count = 0

            if window.count < self._limit:
                window.count += 1
                return Decision.ALLOWED
            return Decision.THROTTLED
