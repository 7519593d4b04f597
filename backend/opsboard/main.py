"""
OpsBoard Backend - FastAPI Application Entry Point

Reporting API behind the engagement & billing dashboard and the
WhatsApp clinic admin panel.

Dashboard view-models are cached in Redis; responses are gzip-compressed
and timed.
"""

import time
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .core.config import settings
from .core.database import engine, init_db
from .core.exceptions import AggregationParameterError, RowStoreError
from .core.logging import configure_logging
from .api import (
    health_router,
    dashboard_router,
    leads_router,
    emails_router,
    invoices_router,
    transactions_router,
    patients_router,
    appointments_router,
    clinic_analytics_router,
)
from .schemas.common import ErrorResponse
from .services.cache import get_cache


logger = logging.getLogger(__name__)


# =============================================================================
# Performance Monitoring Middleware
# =============================================================================

class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """
    Track API response times and log slow requests.

    Adds X-Response-Time header to all responses.
    """

    SLOW_REQUEST_THRESHOLD_MS = 500

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time_ms = (time.time() - start_time) * 1000
        response.headers["X-Response-Time"] = f"{process_time_ms:.2f}ms"

        if process_time_ms > self.SLOW_REQUEST_THRESHOLD_MS:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {process_time_ms:.2f}ms"
            )
        elif settings.debug:
            logger.debug(f"{request.method} {request.url.path} - {process_time_ms:.2f}ms")

        return response


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Configures logging, creates missing tables, and reports cache status.
    """
    configure_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

    init_db()

    cache = get_cache()
    if cache.is_connected:
        logger.info("Redis cache connected")
    else:
        logger.info("Redis cache not available - operating without cache")

    if not settings.n8n_send_email_webhook:
        logger.warning("N8N_SEND_EMAIL_WEBHOOK not set - lead emails will be skipped")

    yield

    logger.info("Shutting down...")
    engine.dispose()


# =============================================================================
# Application Factory
# =============================================================================

def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Reporting and admin API for the engagement & billing dashboard "
            "and the WhatsApp clinic panel."
        ),
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Compress responses > 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(PerformanceMonitoringMiddleware)

    cors_origins = settings.cors_origins_list
    allow_all = "*" in cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else cors_origins,
        allow_credentials=not allow_all,  # credentials not compatible with wildcard
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Response-Time", "Content-Disposition"],
    )

    for router in (
        health_router,
        dashboard_router,
        leads_router,
        emails_router,
        invoices_router,
        transactions_router,
        patients_router,
        appointments_router,
        clinic_analytics_router,
    ):
        app.include_router(router)

    register_exception_handlers(app)

    return app


# =============================================================================
# Exception Handlers
# =============================================================================

def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(RowStoreError)
    async def row_store_error_handler(request: Request, exc: RowStoreError) -> JSONResponse:
        logger.error(f"Row store failure on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=ErrorResponse(
                error="store_unavailable",
                message="The data store is unavailable. Please try again shortly.",
            ).model_dump(),
        )

    @app.exception_handler(AggregationParameterError)
    async def parameter_error_handler(request: Request, exc: AggregationParameterError) -> JSONResponse:
        """Invalid report parameters are returned as 400; other ValueErrors reach the 500 handler."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(error="validation_error", message=str(exc)).model_dump(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Handle unhandled exceptions.

        Logs the error and returns a generic message; internals never reach the client.
        """
        logger.error(
            f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="internal_error",
                message="An unexpected error occurred. Please try again later.",
            ).model_dump(),
        )


app = create_application()


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict:
    """
    Root endpoint returning API information.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs" if settings.is_development else "disabled",
    }


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "opsboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
