from __future__ import annotations

from fastapi import APIRouter, Depends

from ratekeeper.core.logging import hash_key
from ratekeeper.core.rate_limit import enforce_rate_limit, get_admission_service
from ratekeeper.schemas.admission import AdmissionResponse

router = APIRouter(tags=["Admission"])


@router.post("/admission/{key}", response_model=AdmissionResponse)
def check_admission(key: str) -> AdmissionResponse:
    """Run one admission check for an explicit caller key.

    Consumes budget exactly like a real request from ``key`` would. Always
    returns 200; the decision is in the body.

    Args:
        key: Caller identity to check (used as-is, no normalization).

    Returns:
        AdmissionResponse: The decision and the algorithm that made it.
    """
    service = get_admission_service()
    decision = service.allow_request(key)
    return AdmissionResponse(
        key_hash=hash_key(key),
        algorithm=service.algorithm,
        decision=decision,
        limit=service.limit,
    )


@router.get("/ping", dependencies=[Depends(enforce_rate_limit)])
def ping() -> dict:
    """Throttled endpoint: 200 while the caller is admitted, 429 otherwise."""

    return {"status": "ok"}
