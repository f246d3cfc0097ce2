from __future__ import annotations

from ratekeeper.api.routes.admission import router as admission_router
from ratekeeper.api.routes.health import router as health_router

__all__ = ["admission_router", "health_router"]
