"""Application factory for the limiter HTTP service.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from window_limiter.api.routes import health_router, limits_router
from window_limiter.core.config import settings
from window_limiter.core.exception_handlers import setup_exception_handlers
from window_limiter.core.logging import configure_logging
from window_limiter.core.middleware import request_id_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Window Limiter",
        description=(
            "Shared-state fixed-window rate limiter. POST an identity to "
            "/v1/limits/check to count a trial and receive limit, remaining, "
            "reset and throttling information."
        ),
        version="0.1.0",
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(limits_router, prefix="/v1")
    app.include_router(health_router)

    return app
