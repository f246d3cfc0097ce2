"""Scripted walkthrough of the five admission algorithms.

Each scenario fires a burst of requests for one key, pauses, and fires again,
so the boundary behavior of every algorithm is visible:

- token bucket: burst past capacity, wait half a window, partial refill
- leaky bucket: flood a 5-unit bucket draining 2/s, wait one second
- fixed window: fill the window, probe just before and just after the reset
- sliding window log/counter: 4 requests, wait 75% of the window, 3 more
  (the counter scenario first waits for the next window boundary)

By default pauses advance a manual clock, so a run is instant and
deterministic. ``--real-time`` sleeps instead.

Usage:
    python -m ratekeeper.demo [--limit 5] [--window-ms 2000] [--real-time]
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from ratekeeper.adapters.rate_limit.base import (
    AbstractRateLimiter,
    Decision,
    require_positive_int,
)
from ratekeeper.adapters.rate_limit.clock import Clock, ManualClock, system_clock_ms
from ratekeeper.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from ratekeeper.adapters.rate_limit.leaky_bucket import LeakyBucketRateLimiter
from ratekeeper.adapters.rate_limit.sliding_window_counter import (
    SlidingWindowCounterRateLimiter,
)
from ratekeeper.adapters.rate_limit.sliding_window_log import SlidingWindowLogRateLimiter
from ratekeeper.adapters.rate_limit.token_bucket import TokenBucketRateLimiter
from ratekeeper.core.config import LogSettings
from ratekeeper.core.errors import ConfigurationAppError
from ratekeeper.core.logging import configure_logging

logger = logging.getLogger(__name__)

DEFAULT_KEY = "apiKey1"
DEFAULT_LIMIT = 5
DEFAULT_WINDOW_MS = 2000

LEAKY_CAPACITY = 5
LEAKY_RATE = 2


@dataclass
class Burst:
    label: str
    decisions: list[Decision]


@dataclass
class ScenarioResult:
    name: str
    bursts: list[Burst] = field(default_factory=list)

    def burst(self, label: str) -> list[Decision]:
        for item in self.bursts:
            if item.label == label:
                return item.decisions
        raise KeyError(label)


class DemoRunner:
    """Runs the scenarios against engines sharing one clock.

    Args:
        clock: Time source handed to every engine.
        pause: Called with a duration in milliseconds between bursts.
        echo: Receives each human-readable output line.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        pause: Callable[[int], object],
        echo: Callable[[str], None] = print,
    ) -> None:
        self.clock = clock
        self.pause = pause
        self.echo = echo

    @classmethod
    def simulated(cls, start_ms: int = 0, echo: Callable[[str], None] = print) -> DemoRunner:
        """Runner whose pauses step a ManualClock instead of sleeping."""
        clock = ManualClock(start_ms)
        return cls(clock=clock, pause=clock.advance, echo=echo)

    @classmethod
    def real_time(cls, echo: Callable[[str], None] = print) -> DemoRunner:
        return cls(
            clock=system_clock_ms,
            pause=lambda millis: time.sleep(millis / 1000),
            echo=echo,
        )

    def _run_requests(
        self,
        result: ScenarioResult,
        limiter: AbstractRateLimiter,
        key: str,
        count: int,
        label: str,
    ) -> list[Decision]:
        self.echo(f"\nTesting {label} for {key}")
        decisions = []
        for i in range(1, count + 1):
            decision = limiter.allow_request(key)
            decisions.append(decision)
            self.echo(f"Request {i}: {decision.name}")
        result.bursts.append(Burst(label=label, decisions=decisions))
        return decisions

    def _pause(self, millis: int, reason: str) -> None:
        self.echo(f"\nPausing for {millis}ms ({reason})")
        self.pause(millis)

    def _align_to_window(self, window_ms: int) -> None:
        wait_ms = -self.clock() % window_ms
        if wait_ms:
            self._pause(wait_ms, "to reach a window boundary")

    def token_bucket(self, key: str, limit: int, window_ms: int) -> ScenarioResult:
        result = ScenarioResult("token_bucket")
        refill_rate = limit * 1000 / window_ms
        limiter = TokenBucketRateLimiter(capacity=limit, refill_rate=refill_rate, clock=self.clock)

        self.echo("Token Bucket Rate Limiter")
        self._run_requests(result, limiter, key, limit + 1, "burst 1")
        self._pause(window_ms // 2, "to allow token refill")
        self._run_requests(result, limiter, key, 3, "burst 2")
        return result

    def leaky_bucket(self, key: str) -> ScenarioResult:
        result = ScenarioResult("leaky_bucket")
        limiter = LeakyBucketRateLimiter(
            capacity=LEAKY_CAPACITY, leak_rate=LEAKY_RATE, clock=self.clock
        )

        self.echo("Leaky Bucket Rate Limiter")
        self.echo(f"Capacity: {LEAKY_CAPACITY}, Leak Rate: {LEAKY_RATE} req/s.")
        self._run_requests(result, limiter, key, LEAKY_CAPACITY + 1, "initial flood")
        self._pause(1000, f"{LEAKY_RATE} requests should leak")
        self._run_requests(result, limiter, key, 3, "post leak check")
        return result

    def fixed_window(self, key: str, limit: int, window_ms: int) -> ScenarioResult:
        result = ScenarioResult("fixed_window")
        limiter = FixedWindowRateLimiter(limit=limit, window_ms=window_ms, clock=self.clock)

        self.echo("Fixed Window Counter")
        self._run_requests(result, limiter, key, limit, "window 1, full limit")
        self._pause(window_ms - 50, "just before reset")
        self._run_requests(result, limiter, key, 1, "window 1, throttled")
        self._pause(100, "to cross reset boundary")
        self._run_requests(result, limiter, key, limit, "window 2, full burst")
        return result

    def sliding_window_log(self, key: str, limit: int, window_ms: int) -> ScenarioResult:
        result = ScenarioResult("sliding_window_log")
        limiter = SlidingWindowLogRateLimiter(limit=limit, window_ms=window_ms, clock=self.clock)

        self.echo("Sliding Window Log")
        self._run_requests(result, limiter, key, 4, "initial requests")
        self._pause(int(window_ms * 0.75), "75% through window")
        self._run_requests(result, limiter, key, 3, "after pause")
        return result

    def sliding_window_counter(self, key: str, limit: int, window_ms: int) -> ScenarioResult:
        result = ScenarioResult("sliding_window_counter")
        limiter = SlidingWindowCounterRateLimiter(
            limit=limit, window_ms=window_ms, clock=self.clock
        )

        self.echo("Sliding Window Counter")
        self._align_to_window(window_ms)
        self._run_requests(result, limiter, key, 4, "window 1, part 1")
        self._pause(int(window_ms * 0.75), "75% through window")
        self._run_requests(result, limiter, key, 3, "window 1/2 transition")
        return result

    def run_all(
        self,
        key: str = DEFAULT_KEY,
        limit: int = DEFAULT_LIMIT,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> list[ScenarioResult]:
        require_positive_int("limit", limit)
        require_positive_int("window_ms", window_ms)
        self.echo(f"{limit} requests per {window_ms / 1000} seconds")
        results = [
            self.token_bucket(key, limit, window_ms),
            self.leaky_bucket(key),
            self.fixed_window(key, limit, window_ms),
            self.sliding_window_log(key, limit, window_ms),
            self.sliding_window_counter(key, limit, window_ms),
        ]
        for result in results:
            logger.info(
                "demo.scenario_completed",
                extra={
                    "scenario": result.name,
                    "allowed": sum(d.allowed for b in result.bursts for d in b.decisions),
                    "throttled": sum(not d.allowed for b in result.bursts for d in b.decisions),
                },
            )
        return results


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ratekeeper-demo",
        description="Walk through the admission algorithms with scripted bursts.",
    )
    parser.add_argument("--key", default=DEFAULT_KEY, help="caller key to use")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    parser.add_argument("--window-ms", type=int, default=DEFAULT_WINDOW_MS)
    parser.add_argument(
        "--real-time",
        action="store_true",
        help="sleep during pauses instead of stepping a simulated clock",
    )
    parser.add_argument("--log-level", default="WARNING")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(LogSettings(level=args.log_level, format="plain"))

    runner = DemoRunner.real_time() if args.real_time else DemoRunner.simulated()
    try:
        runner.run_all(key=args.key, limit=args.limit, window_ms=args.window_ms)
    except ConfigurationAppError as exc:
        logger.error("demo.invalid_configuration", extra={"error_code": exc.code})
        print(f"error: {exc.message}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
