"""Time sources for the rate limiting engines.

Engines never call ``time`` directly. They receive a zero-argument callable
returning the current instant as integer epoch milliseconds, so tests and the
demo driver can substitute a fixed or steppable clock.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

Clock = Callable[[], int]


def system_clock_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class ManualClock:
    """Deterministic clock that only moves when told to.

    Thread-safe so it can be shared by concurrent callers in tests.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = int(start_ms)
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            return self._now_ms

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"ManualClock(now_ms={self._now_ms})"

    def advance(self, millis: int) -> int:
        """Move the clock forward (or backward, for negative values).

        Args:
            millis: Milliseconds to add to the current instant.

        Returns:
            The new current instant.
        """
        with self._lock:
            self._now_ms += int(millis)
            return self._now_ms

    def set(self, now_ms: int) -> None:
        """Jump to an absolute instant."""
        with self._lock:
            self._now_ms = int(now_ms)
