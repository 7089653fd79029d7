"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from medical_appointments.config import settings
from medical_appointments.core.redis_client import check_redis_connection
from medical_appointments.database import check_database_connection, get_regional_engine

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response model."""

    status: str
    version: str
    environment: str
    database: str
    regional_databases: dict[str, str]
    redis: str


def _label(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Basic health status
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Detailed health check of the record store, regional stores and Redis.

    Returns:
        Detailed health status including dependencies
    """
    db_healthy = await check_database_connection()
    regional = {
        country: await check_database_connection(get_regional_engine(country))
        for country in settings.regional_database_urls
    }
    redis_healthy = await check_redis_connection()

    all_healthy = db_healthy and redis_healthy and all(regional.values())
    return DetailedHealthResponse(
        status="healthy" if all_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database=_label(db_healthy),
        regional_databases={country: _label(ok) for country, ok in regional.items()},
        redis=_label(redis_healthy),
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """
    Simple ping endpoint.

    Returns:
        Pong response
    """
    return {"message": "pong"}
