"""
FastAPI application factory.

* Registers routes for rides and admin.
* Owns the ``Database`` handle: connects on startup, disconnects on shutdown.
* Maps workflow errors to HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from rideflow.api.middleware import limiter
from rideflow.api.routes import admin, rides
from rideflow.config import Settings, settings as default_settings
from rideflow.domain.errors import (
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
    WorkflowError,
)
from rideflow.infrastructure.database import Database

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[WorkflowError], int] = {
    ValidationError: 400,
    UnauthorizedError: 403,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    StorageError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the database on startup; dispose of it on shutdown."""
    db: Database = app.state.db
    await db.connect()
    if app.state.settings.create_tables_on_startup:
        await db.create_all()
    logger.info("Database connected")
    yield
    await db.disconnect()
    logger.info("Database disconnected")


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=status_code, content={"detail": exc.detail})


def create_app(
    settings: Optional[Settings] = None, database: Optional[Database] = None
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Ride Approval API",
        description=(
            "Ride requests with a tiered approval workflow: admins approve "
            "short rides directly, long rides need a project manager first. "
            "Approved rides get a driver and vehicle assigned by an admin."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database or Database(settings.database_url)

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(WorkflowError, workflow_error_handler)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
