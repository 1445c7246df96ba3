"""Health check API endpoints."""

from fastapi import APIRouter

from app.core.config import settings
from app.core.database import db_client
from app.schemas.common import HealthCheckResponse
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Health check endpoint",
    description="Check if the service is running and its database is reachable",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    db_health = await db_client.health_check()
    if db_health["status"] != "healthy":
        LOGGER.warning("Health check degraded", extra={"database": db_health})

    return HealthCheckResponse(
        status="healthy" if db_health["status"] == "healthy" else "degraded",
        version=settings.app_version,
        service=settings.app_name,
    )


@router.get("/detailed", summary="Detailed health check", operation_id="get_service_health_details")
async def detailed_health():
    """Health check including the database health check result."""
    db_health = await db_client.health_check()
    return {
        "status": "healthy" if db_health["status"] == "healthy" else "degraded",
        "database": db_health,
        "version": settings.app_version,
    }
