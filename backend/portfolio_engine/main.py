# backend/portfolio_engine/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from portfolio_engine.config import settings
from portfolio_engine.database import check_database_health, get_db
from portfolio_engine.routers import portfolio_router
from portfolio_engine.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_engine.services.constants import LEDGER_RETRY_AFTER_SECONDS
from portfolio_engine.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidTimeframeError,
    InvestorNotFoundError,
    PositionNotFoundError,
    LedgerIntegrityError,
)
from portfolio_engine.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()

# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Read-only portfolio aggregation and analytics for investment-platform investors",
    version="0.1.0",
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================
# Must be added before other middleware
# Origins are configured via CORS_ORIGINS environment variable

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

from slowapi.errors import RateLimitExceeded
from portfolio_engine.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_HEALTH,
)

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter

app.add_middleware(SlowAPIMiddleware)

# Extracts/generates correlation IDs and adds them to response headers
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service-layer exceptions are converted to consistent HTTP responses here;
# routers never catch them.
# =============================================================================

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(InvestorNotFoundError)
async def investor_not_found_handler(
    request: Request, exc: InvestorNotFoundError
) -> JSONResponse:
    """Handle unknown investor (404)."""
    logger.warning(f"Investor not found: {exc.resource_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="InvestorNotFoundError",
            message=str(exc),
            details={"investor_id": exc.resource_id},
        ).model_dump(),
    )


@app.exception_handler(PositionNotFoundError)
async def position_not_found_handler(
    request: Request, exc: PositionNotFoundError
) -> JSONResponse:
    """Handle a project the investor holds nothing in (404)."""
    logger.warning(f"Position not found: investor {exc.investor_id}, project {exc.project_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="PositionNotFoundError",
            message=str(exc),
            details={"investor_id": exc.investor_id, "project_id": exc.project_id},
        ).model_dump(),
    )


@app.exception_handler(InvalidTimeframeError)
async def invalid_timeframe_handler(
    request: Request, exc: InvalidTimeframeError
) -> JSONResponse:
    """Handle unsupported timeframe (400)."""
    logger.warning(f"Invalid timeframe: {exc.timeframe}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="InvalidTimeframeError",
            message=str(exc),
            details={"timeframe": exc.timeframe, "valid_options": list(exc.valid_options)},
        ).model_dump(),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ValidationError",
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(LedgerIntegrityError)
async def ledger_integrity_handler(
    request: Request, exc: LedgerIntegrityError
) -> JSONResponse:
    """
    Handle ledger rows referencing missing projects (500).

    The investor cannot fix this; it is a data fault for operators.
    Clients may retry with allow_partial=true to get the remaining positions.
    """
    logger.error(
        f"Ledger integrity error for investor {exc.investor_id}: "
        f"missing projects {exc.missing_project_ids}"
    )
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="LedgerIntegrityError",
            message=str(exc),
            details={
                "investor_id": exc.investor_id,
                "missing_project_ids": exc.missing_project_ids,
            },
        ).model_dump(),
    )


@app.exception_handler(OperationalError)
async def ledger_unavailable_handler(
    request: Request, exc: OperationalError
) -> JSONResponse:
    """Handle an unreachable ledger store (503 with Retry-After)."""
    logger.error(f"Ledger unavailable: {exc.orig if exc.orig is not None else exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="LedgerUnavailableError",
            message="The ledger store is temporarily unavailable. Please retry shortly.",
            details={"retry_after": LEDGER_RETRY_AFTER_SECONDS},
        ).model_dump(),
        headers={"Retry-After": str(LEDGER_RETRY_AFTER_SECONDS)},
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        422: "ValidationError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    error_type = error_types.get(exc.status_code, "HTTPError")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_type,
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors with consistent format.

    Converts the default 422 validation error to our ValidationErrorDetail format.
    """
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            error="ValidationError",
            message="Request validation failed",
            details=errors,
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(portfolio_router)  # /investors/{id}/portfolio/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def root(request: Request):
    """
    API root - returns basic application info.
    """
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request):
    """
    Health check endpoint.

    Returns HTTP 503 if the ledger database is unreachable, so load
    balancers can remove the instance from the pool.
    """
    database = check_database_health()
    healthy = database["status"] == "healthy"

    response_data = {
        "status": "healthy" if healthy else "unhealthy",
        "checks": {"database": {**database, "critical": True}},
    }

    if not healthy:
        return JSONResponse(status_code=503, content=response_data)

    return response_data


@app.get("/health/live", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def liveness_check(request: Request):
    """
    Kubernetes liveness probe endpoint.

    Always succeeds while the process is alive. Does NOT check
    dependencies - use /health/ready for that.
    """
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """
    Kubernetes readiness probe endpoint.

    Returns HTTP 503 if the ledger database is unavailable.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "error": "Database unavailable",
            },
        )
