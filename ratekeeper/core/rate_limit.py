"""Rate limiting dependency for FastAPI routes.

Wires the admission service into the HTTP layer:
- Routes depend on ``enforce_rate_limit`` only, never on an engine.
- The process-wide service is built lazily from ``RATE_LIMIT_*`` settings
  and rebuilt if those settings change (primarily in tests).
- Keys are the X-API-Key header when present, otherwise the client IP.
"""

from __future__ import annotations

import logging
import threading
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from ratekeeper.core.config import settings
from ratekeeper.core.logging import hash_key
from ratekeeper.services.admission_service import AdmissionService

logger = logging.getLogger(__name__)


# (settings tuple, service) pair, swapped as a unit.
_cached: tuple[tuple, AdmissionService] | None = None
_cache_lock = threading.Lock()


def get_admission_service() -> AdmissionService:
    """Return the process-wide admission service.

    The instance is cached in-module so per-key state survives across
    requests. Building it is serialized so concurrent first requests share
    one instance.

    Returns:
        AdmissionService: Service around the configured engine.
    """

    global _cached

    cfg = settings.rate_limit
    config = (
        cfg.algorithm,
        cfg.limit,
        cfg.window_ms,
        cfg.refill_rate,
        cfg.leak_rate,
    )

    cached = _cached
    if cached is not None and cached[0] == config:
        return cached[1]

    with _cache_lock:
        if _cached is None or _cached[0] != config:
            _cached = (config, AdmissionService.from_settings(cfg))
        return _cached[1]


def reset_admission_service() -> None:
    """Drop the cached service so the next request starts from empty state."""

    global _cached
    with _cache_lock:
        _cached = None


def build_rate_limit_key(request: Request, x_api_key: str | None) -> str:
    """Build the namespaced limiter key for the current request."""

    if x_api_key:
        return f"api_key:{x_api_key}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


async def enforce_rate_limit(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency enforcing admission control.

    Raises:
        HTTPException: 429 Too Many Requests when the caller is throttled.
    """

    if not settings.rate_limit.enabled:
        return

    service = get_admission_service()
    key = build_rate_limit_key(request, x_api_key)

    decision = service.allow_request(key)
    if decision.allowed:
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_type": "api_key" if x_api_key else "ip",
            "key_hash": hash_key(key),
            "algorithm": service.algorithm.value,
            "limit": service.limit,
            "window_ms": settings.rate_limit.window_ms,
        },
    )

    headers: dict[str, str] = {}
    if settings.rate_limit.include_headers:
        headers["X-RateLimit-Limit"] = str(service.limit)
        headers["X-RateLimit-Algorithm"] = service.algorithm.value

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=headers or None,
    )
