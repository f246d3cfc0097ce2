"""Application-level exception types.

Domain errors shared by the rate limiting engines, the admission service and
the HTTP layer, so failures are logged and reported the same way everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    parameter: str
    actual_value: Any
    min_value: int | float
    algorithm: str
    supported: list[str]
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationAppError(AppError, ValueError):
    """Raised when a rate limiter is constructed with invalid parameters.

    Always raised at construction time, never from ``allow_request``. Also a
    ``ValueError`` so plain callers can catch it without importing this module.
    """
