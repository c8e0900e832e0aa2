# backend/portfolio_tracker/main.py
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

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portfolio_tracker import __version__
from portfolio_tracker.config import settings
from portfolio_tracker.database import check_database_health
from portfolio_tracker.routers import valuation_overview_router, valuation_router
from portfolio_tracker.schemas.errors import ErrorDetail
from portfolio_tracker.services.exceptions import (
    InvalidGroupingKeyError,
    InvalidIntervalError,
    NotFoundError,
    PortfolioNotFoundError,
    ServiceError,
    ValidationError,
)
from portfolio_tracker.utils import setup_logging

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
    description="Read-only portfolio valuation and holdings reconstruction API",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=settings.cors_allow_methods,
    allow_headers=["*"],
)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# These handlers convert service-layer exceptions to consistent HTTP
# responses. Handlers are matched most specific first.
# =============================================================================

@app.exception_handler(PortfolioNotFoundError)
async def portfolio_not_found_handler(
    request: Request, exc: PortfolioNotFoundError
) -> JSONResponse:
    """Handle portfolio not found errors (404)."""
    logger.warning(f"Portfolio not found: {exc.portfolio_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="PortfolioNotFoundError",
            message=str(exc),
            details={"portfolio_id": exc.portfolio_id},
        ).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle other not found errors (404)."""
    logger.warning(f"Not found: {exc}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="NotFoundError",
            message=str(exc),
            details={
                "resource_type": exc.resource_type,
                "resource_id": exc.resource_id,
            } if exc.resource_type else None,
        ).model_dump(),
    )


@app.exception_handler(InvalidIntervalError)
async def invalid_interval_handler(
    request: Request, exc: InvalidIntervalError
) -> JSONResponse:
    """Handle invalid interval errors (400)."""
    logger.warning(f"Invalid interval: {exc.interval}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="InvalidIntervalError",
            message=str(exc),
            details={"interval": exc.interval, "valid_options": ["daily", "weekly", "monthly"]},
        ).model_dump(),
    )


@app.exception_handler(InvalidGroupingKeyError)
async def invalid_grouping_key_handler(
    request: Request, exc: InvalidGroupingKeyError
) -> JSONResponse:
    """Handle invalid grouping key errors (400)."""
    logger.warning(f"Invalid grouping key: {exc.key}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="InvalidGroupingKeyError",
            message=str(exc),
            details={"group_by": exc.key, "valid_options": exc.valid_keys},
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


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(valuation_router)  # /portfolios/{id}/valuation, holdings, allocation
app.include_router(valuation_overview_router)  # /valuation/overview


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
def root():
    """API root - returns basic application info."""
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns HTTP 503 if the record store is unreachable.
    """
    database = check_database_health()
    response_data = {
        "status": database["status"],
        "version": __version__,
        "checks": {"database": database},
    }

    if database["status"] != "healthy":
        return JSONResponse(status_code=503, content=response_data)

    return response_data
