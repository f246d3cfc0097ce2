"""In-memory sliding-window counter rate limiter.

Approximates a sliding log with two counters per key: the current
wall-aligned window and the one before it. The previous count is weighted by
the part of it still covered by the trailing window:

    weighted = prev_count * (1 - fraction) + current_count

where ``fraction`` is how far ``now`` is into the current window. The weighted
value is truncated toward zero before it is compared with ``limit``.

If several windows pass without traffic, ``prev_count`` still holds the last
active window's count rather than zero. The approximation is intentional.
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
class DualWindowState:
    current_window_start_ms: int
    current_count: int = 0
    prev_count: int = 0


def window_boundary(now_ms: int, window_ms: int) -> int:
    """Start of the wall-aligned window that contains ``now_ms``."""
    return (now_ms // window_ms) * window_ms


def weighted_count(prev_count: int, current_count: int, fraction: float) -> int:
    """Interpolated request count over the trailing window, truncated.

    Args:
        prev_count: Requests admitted in the previous window.
        current_count: Requests admitted so far in the current window.
        fraction: Elapsed share of the current window, in ``[0, 1)``.

    Returns:
        ``int(prev_count * (1 - fraction) + current_count)``.
    """
    return int(prev_count * (1.0 - fraction) + current_count)


class SlidingWindowCounterRateLimiter(AbstractRateLimiter):
    """Weighted two-window counter per key."""

    algorithm = RateLimitAlgorithm.SLIDING_WINDOW_COUNTER

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        clock: Clock = system_clock_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum weighted request count per window.
            window_ms: Window size in milliseconds.
            clock: Time source returning epoch milliseconds.

        Raises:
            ConfigurationAppError: If limit or window_ms are invalid.
        """
        self._limit = require_positive_int("limit", limit)
        self._window_ms = require_positive_int("window_ms", window_ms)
        self._clock = clock
        self._windows: KeyedStateStore[DualWindowState] = KeyedStateStore()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def store(self) -> KeyedStateStore[DualWindowState]:
        return self._windows

    def allow_request(self, key: str) -> Decision:
        now = self._clock()
        boundary = window_boundary(now, self._window_ms)

        with self._windows.locked(
            key, lambda: DualWindowState(current_window_start_ms=boundary)
        ) as windows:
            if boundary > windows.current_window_start_ms:
                windows.prev_count = windows.current_count
                windows.current_count = 0
                windows.current_window_start_ms = boundary

            # Never look at an instant before the window already recorded.
            elapsed_ms = max(0, now - windows.current_window_start_ms)
            fraction = elapsed_ms / self._window_ms
            weighted = weighted_count(windows.prev_count, windows.current_count, fraction)

            if weighted < self._limit:
                windows.current_count += 1
                return Decision.ALLOWED
            return Decision.THROTTLED
