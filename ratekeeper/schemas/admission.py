"""Pydantic schemas for admission check responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ratekeeper.adapters.rate_limit.base import Decision, RateLimitAlgorithm


class AdmissionResponse(BaseModel):
    """Outcome of one explicit admission check."""

    key_hash: str = Field(
        ..., description="Truncated SHA-256 of the checked key (the key itself is never echoed)."
    )
    algorithm: RateLimitAlgorithm = Field(
        ..., description="Algorithm that made the decision."
    )
    decision: Decision = Field(
        ..., description="'allowed' or 'throttled'."
    )
    limit: int = Field(
        ..., ge=1, description="Configured limit (requests per window or bucket capacity)."
    )
