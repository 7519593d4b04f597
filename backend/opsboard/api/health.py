"""
Health check endpoints for monitoring.

Provides health status for load balancers, monitoring systems,
and container orchestration health probes.

Endpoints:
- /health: Basic health check (database ping)
- /health/ready: Readiness check (database and cache)
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.database import get_db
from ..schemas.common import HealthResponse
from ..services.cache import get_cache


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns the health status of the API and its dependencies.",
)
async def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Health check endpoint for monitoring systems.

    Returns:
        HealthResponse with status and component health
    """
    db_status = "connected"
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        db_response_time_ms = int((time.time() - start) * 1000)
        if db_response_time_ms > 100:
            logger.warning(f"Slow database response: {db_response_time_ms}ms")
    except SQLAlchemyError as e:
        db_status = "disconnected"
        logger.error(f"Database health check failed: {e}")

    cache_status = get_cache().health_check()["status"]

    return HealthResponse(
        status="healthy" if db_status == "connected" else "unhealthy",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        cache={"healthy": "connected", "disabled": "disabled"}.get(cache_status, "disconnected"),
        environment=settings.environment,
    )


@router.get(
    "/health/ready",
    summary="Readiness Check",
    description="Readiness check for the database and cache.",
)
async def readiness_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Readiness probe for container orchestration.

    The database must be reachable; Redis is optional and only reported.

    Returns:
        Dict with detailed health status of each component
    """
    components = {}
    ready = True

    try:
        db.execute(text("SELECT 1"))
        components["database"] = {"status": "healthy", "connected": True}
    except SQLAlchemyError as e:
        components["database"] = {
            "status": "unhealthy",
            "connected": False,
            "error": str(e)[:100],
        }
        ready = False

    components["redis"] = get_cache().health_check()
    components["webhooks"] = {
        "send_email": bool(settings.n8n_send_email_webhook),
        "create_invoice": bool(settings.n8n_create_invoice_webhook),
        "mode": settings.notification_mode,
    }

    return {
        "status": "ready" if ready else "not_ready",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "components": components,
    }
