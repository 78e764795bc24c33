"""
FastAPI application factory.

* Registers routes for requests, vehicles, notifications and admin.
* Starts / stops the background notification relay via lifespan events.
* Applies rate-limiting middleware.
* Maps fatal dispatch errors (storage down, decision timeout) to 503.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.middleware import limiter
from src.api.routes import admin, notifications, requests, vehicles
from src.api.schemas import ErrorResponse
from src.config import settings
from src.domain.errors import DecisionTimeout, StorageUnavailable
from src.infrastructure.database import engine
from src.workers import notifier as _notifier

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the notification relay on startup; stop it and drain the DB pool on shutdown."""
    if settings.notification_relay_enabled:
        await _notifier.start_relay_loop()
    yield
    if settings.notification_relay_enabled:
        await _notifier.stop_relay_loop()
    await engine.dispose()


async def _unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(
            message="Failed to update request, please retry",
            code=exc.code,
        ).model_dump(),
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Vehicle Dispatch Request API",
        description=(
            "Accepts or declines travel requests against a fleet of "
            "vehicles.  Seat capacity is enforced atomically so concurrent "
            "acceptances can never overbook a vehicle."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Fatal-for-this-call errors
    app.add_exception_handler(StorageUnavailable, _unavailable_handler)
    app.add_exception_handler(DecisionTimeout, _unavailable_handler)

    # Routers
    app.include_router(requests.router, prefix="/api/v1")
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
