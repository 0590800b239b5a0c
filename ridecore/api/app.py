"""
FastAPI application factory.

* Registers routes for orders, recurring plans, admin and the live channel.
* Starts / stops the recurring-plan scheduler via lifespan events.
* Maps domain errors onto HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import OperationalError

from ridecore.api.middleware import limiter
from ridecore.api.routes import admin, orders, realtime, schedules
from ridecore.config import settings
from ridecore.domain.errors import DispatchError
from ridecore.realtime.hub import hub
from ridecore.workers import scheduler as _scheduler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the plan scheduler on startup; stop it and drop sockets on shutdown."""
    if settings.scheduler_enabled:
        await _scheduler.start_scheduler_loop()
    yield
    await _scheduler.stop_scheduler_loop()
    await hub.shutdown()


async def _dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def _storage_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Storage unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Dispatch Core API",
        description=(
            "Order lifecycle for taxi and delivery trips: fare estimates, "
            "driver assignment, live location relay and weekly recurring "
            "plans."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(DispatchError, _dispatch_error_handler)
    app.add_exception_handler(OperationalError, _storage_error_handler)

    # Routers
    app.include_router(orders.router, prefix="/api/v1")
    app.include_router(schedules.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")
    app.include_router(realtime.router)

    return app
