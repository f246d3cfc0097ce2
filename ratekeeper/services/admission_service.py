"""Admission service: the single entry point for rate limit decisions.

Callers (HTTP dependencies, the demo driver, library users) ask the service
whether a key may proceed. The service forwards to whichever engine it was
configured with and logs the outcome without exposing the raw key.
"""

from __future__ import annotations

import logging

from ratekeeper.adapters.rate_limit.base import (
    AbstractRateLimiter,
    Decision,
    RateLimitAlgorithm,
)
from ratekeeper.adapters.rate_limit.clock import Clock, system_clock_ms
from ratekeeper.adapters.rate_limit.factory import create_rate_limiter_from_settings
from ratekeeper.core.config import RateLimitSettings
from ratekeeper.core.logging import hash_key

logger = logging.getLogger(__name__)


class AdmissionService:
    """Facade over one configured rate limiting engine.

    Attributes:
        limiter: Engine that owns the per-key state and makes the decision.
    """

    def __init__(self, limiter: AbstractRateLimiter) -> None:
        self.limiter = limiter

    @classmethod
    def from_settings(
        cls,
        rate_limit_settings: RateLimitSettings,
        *,
        clock: Clock = system_clock_ms,
    ) -> AdmissionService:
        """Build a service around the engine described by settings.

        Raises:
            ConfigurationAppError: If the settings describe an invalid engine.
        """
        return cls(create_rate_limiter_from_settings(rate_limit_settings, clock=clock))

    @property
    def algorithm(self) -> RateLimitAlgorithm:
        return self.limiter.algorithm

    @property
    def limit(self) -> int:
        return self.limiter.limit

    def allow_request(self, key: str) -> Decision:
        """Return the admission decision for one request from ``key``.

        Never raises for any string key; the empty string is a valid key.
        """
        decision = self.limiter.allow_request(key)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"admission.{decision.value}",
                extra={
                    "algorithm": self.algorithm.value,
                    "key_hash": hash_key(key),
                },
            )
        return decision
