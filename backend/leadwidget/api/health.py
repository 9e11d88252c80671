"""
Health check endpoints for monitoring.

Provides health status for load balancers, monitoring systems,
and container orchestration health probes.

Endpoints:
- /health: Basic health check (database round trip)
- /health/ready: Readiness check (database, intake integration settings)
- /health/live: Simple alive check
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


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

SLOW_DATABASE_THRESHOLD_MS = 100


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns the health status of the API and its database.",
)
def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Health check endpoint for monitoring systems.

    Checks:
    - API is responding
    - Database connection is healthy
    - Database response time

    Returns:
        HealthResponse with status and component health
    """
    db_status = "connected"

    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        db_response_time_ms = int((time.time() - start) * 1000)

        if db_response_time_ms > SLOW_DATABASE_THRESHOLD_MS:
            logger.warning("Slow database response: %sms", db_response_time_ms)
    except SQLAlchemyError as e:
        db_status = "disconnected"
        logger.error("Database health check failed: %s", type(e).__name__)

    return HealthResponse(
        status="healthy" if db_status == "connected" else "unhealthy",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        environment=settings.environment,
    )


@router.get(
    "/health/ready",
    summary="Readiness Check",
    description="Readiness check for the database and integration settings.",
)
def readiness_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Readiness probe for container orchestration.

    Only the database gates readiness. Integration settings are reported
    so a missing key is visible, but lead forwarding is best effort and
    does not block traffic.

    Returns:
        Dict with detailed health status of each component
    """
    components: Dict[str, Any] = {}
    overall_healthy = True

    try:
        db.execute(text("SELECT 1"))
        components["database"] = {"status": "healthy", "connected": True}
    except SQLAlchemyError as e:
        components["database"] = {
            "status": "unhealthy",
            "connected": False,
            "error": type(e).__name__,
        }
        overall_healthy = False

    components["integrations"] = {
        "resend": bool(settings.resend_api_key),
        "gravity_forms": bool(settings.gravity_forms_public_key and settings.gravity_forms_private_key),
        "smart_moving": bool(settings.smart_moving_base_url and settings.smart_moving_api_key),
        "google_places": bool(settings.google_maps_api_key),
    }

    return {
        "status": "ready" if overall_healthy else "not_ready",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "components": components,
    }


@router.get(
    "/health/live",
    summary="Liveness Check",
    description="Simple liveness check to verify the API is running.",
)
def liveness_check() -> dict:
    """
    Liveness probe for container orchestration.

    Does NOT check dependencies - use /health/ready for that.
    """
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
