"""
FastAPI application factory.

* Registers routes for customers, drivers and admins.
* Maps data-integrity errors (unknown stored status) to a logged 500.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.middleware import limiter
from src.api.routes import admin, bookings, driver
from src.config import settings
from src.domain.booking_status import UnknownBookingStatus
from src.infrastructure.database import engine

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release pooled DB connections on shutdown."""
    logger.info("Booking service starting")
    yield
    await engine.dispose()
    logger.info("Booking service stopped")


async def _unknown_status_handler(request: Request, exc: UnknownBookingStatus):
    logger.error(
        "Data integrity error on %s %s: %s", request.method, request.url.path, exc
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Booking has an unrecognised status"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Waste Pickup Booking API",
        description=(
            "Customers book recyclable-waste pickups, drivers fulfil them and "
            "admins assign, settle, cancel and refund bookings.  Every status "
            "change is checked against one role-gated transition table."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(UnknownBookingStatus, _unknown_status_handler)

    # Routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(driver.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
