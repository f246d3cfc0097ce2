"""Rate limiter interfaces.

Callers depend on ``AbstractRateLimiter`` and the ``Decision`` it returns,
never on a concrete algorithm, so the admission service can be configured with
any of the engines in this package.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from enum import Enum
from numbers import Real

from ratekeeper.core.errors import ConfigurationAppError


class Decision(str, Enum):
    """Outcome of one admission check."""

    ALLOWED = "allowed"
    THROTTLED = "throttled"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOWED


class RateLimitAlgorithm(str, Enum):
    """Supported admission algorithms."""

    TOKEN_BUCKET = "token_bucket"
    LEAKY_BUCKET = "leaky_bucket"
    FIXED_WINDOW = "fixed_window"
    SLIDING_WINDOW_LOG = "sliding_window_log"
    SLIDING_WINDOW_COUNTER = "sliding_window_counter"


class AbstractRateLimiter(ABC):
    """Interface for per-key rate limiters."""

    #: Algorithm implemented by the engine, used in logs and response headers.
    algorithm: RateLimitAlgorithm

    @abstractmethod
    def allow_request(self, key: str) -> Decision:
        """Decide whether a request from ``key`` is admitted right now.

        Total over its input: never raises, every call yields a decision.
        State for a key is created on its first call.

        Args:
            key: Opaque caller identity (e.g., API key, client IP).

        Returns:
            Decision.ALLOWED or Decision.THROTTLED.
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def limit(self) -> int:
        """Maximum burst admitted for a fresh key (capacity or window limit)."""
        raise NotImplementedError


def require_positive_int(name: str, value: object) -> int:
    """Validate a capacity/limit/window parameter.

    Raises:
        ConfigurationAppError: If ``value`` is not an integer >= 1.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationAppError(
            code=f"invalid_{_error_suffix(name)}",
            message=f"{name} must be a positive integer",
            details={"parameter": name, "actual_value": value, "min_value": 1},
        )
    return value


def require_non_negative_rate(name: str, value: object) -> float:
    """Validate a refill/leak rate.

    Raises:
        ConfigurationAppError: If ``value`` is not a finite number >= 0.
    """
    if (
        isinstance(value, bool)
        or not isinstance(value, Real)
        or not math.isfinite(value)
        or value < 0
    ):
        raise ConfigurationAppError(
            code="invalid_rate",
            message=f"{name} must be a finite, non-negative number",
            details={"parameter": name, "actual_value": value, "min_value": 0},
        )
    return float(value)


def _error_suffix(name: str) -> str:
    if name.startswith("window"):
        return "window"
    return name
