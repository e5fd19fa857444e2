"""
FastAPI application for the booking storefront and admin UI.

Service errors are raised as the ``wabco_booking.errors`` taxonomy and
mapped to HTTP responses here, so routers stay free of status codes.

Usage:
    uvicorn wabco_booking.api.app:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wabco_booking.api.middleware import RequestIdMiddleware
from wabco_booking.api.routes.bookings import router as bookings_router
from wabco_booking.api.routes.locations import router as locations_router
from wabco_booking.config import settings
from wabco_booking.db.database import init_db
from wabco_booking.errors import (
    BranchInUseError,
    DraftValidationError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    SlotConflictError,
    SlotLookupError,
)

logger = logging.getLogger(__name__)


def _field_path(loc: tuple) -> str:
    # ("body", "customer", "email") -> "customer.email"
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = {_field_path(tuple(err.get("loc", ()))): err.get("msg", "") for err in exc.errors()}
        logger.info("Request validation failed for %s: %s", request.url.path, sorted(errors))
        return JSONResponse(status_code=422, content={"error": "Validation failed", "errors": errors})

    @app.exception_handler(DraftValidationError)
    async def draft_validation_handler(request: Request, exc: DraftValidationError):
        logger.info("Draft rejected on fields: %s", sorted(exc.errors))
        return JSONResponse(
            status_code=422, content={"error": "Validation failed", "errors": exc.errors}
        )

    @app.exception_handler(SlotLookupError)
    async def slot_lookup_handler(request: Request, exc: SlotLookupError):
        return JSONResponse(status_code=400, content={"error": str(exc), "details": exc.detail})

    @app.exception_handler(InvalidArgumentError)
    async def invalid_argument_handler(request: Request, exc: InvalidArgumentError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(SlotConflictError)
    async def slot_conflict_handler(request: Request, exc: SlotConflictError):
        return JSONResponse(
            status_code=409,
            content={
                "error": "This time is no longer available",
                "details": str(exc),
                "slot": {
                    "branchId": exc.branch_id,
                    "bookingDate": str(exc.booking_date),
                    "bookingTime": exc.booking_time,
                },
            },
        )

    @app.exception_handler(BranchInUseError)
    async def branch_in_use_handler(request: Request, exc: BranchInUseError):
        return JSONResponse(
            status_code=409,
            content={"error": str(exc), "bookingCount": exc.booking_count},
        )

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        return JSONResponse(status_code=409, content={"error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError):
        logger.error("Persistence failure on %s: %s (%s)", request.url.path, exc, exc.detail)
        return JSONResponse(
            status_code=500,
            content={"error": str(exc), "details": exc.detail, "retryable": True},
        )


def create_app(admin_api_key: Optional[str] = None, init_schema: bool = True) -> FastAPI:
    """Build the application.

    ``admin_api_key`` overrides ``ADMIN_API_KEY``; an empty key leaves the
    admin routes open (local development).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_schema:
            init_db()
        logger.info("%s started", settings.app_name)
        yield
        logger.info("%s shutting down", settings.app_name)

    app = FastAPI(title=f"{settings.business.name} Booking API", version="1.0.0", lifespan=lifespan)
    app.state.admin_api_key = settings.admin_api_key if admin_api_key is None else admin_api_key
    if not app.state.admin_api_key:
        logger.warning("ADMIN_API_KEY not set; administrative routes are unprotected")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)
    app.include_router(bookings_router)
    app.include_router(locations_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": settings.app_name}

    return app


app = create_app()
