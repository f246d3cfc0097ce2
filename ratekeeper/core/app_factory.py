"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build fresh instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from ratekeeper.api.routes import admission_router, health_router
from ratekeeper.core.config import settings
from ratekeeper.core.exception_handlers import setup_exception_handlers
from ratekeeper.core.logging import configure_logging
from ratekeeper.core.middleware import request_id_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="ratekeeper",
        description=(
            "In-process admission control: token bucket, leaky bucket, fixed "
            "window, sliding window log and sliding window counter limiters "
            "keyed by caller identity."
        ),
        version="0.1.0",
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(admission_router, prefix="/v1")
    app.include_router(health_router)

    return app
