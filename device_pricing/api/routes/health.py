"""Health check endpoints.

Provides health status for probes and monitoring.
"""

from fastapi import APIRouter, Request

from device_pricing import __version__
from device_pricing.config import settings
from device_pricing.infra.database import verify_db_connection
from device_pricing.infra.logging import get_logger
from device_pricing.infra.sql_store import SqlStore
from device_pricing.schemas.common import HealthResponse

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Basic health check.

    Returns 200 if service is running.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        checks={},
    )


@router.get("/health/ready", response_model=HealthResponse)
async def health_ready(request: Request) -> HealthResponse:
    """Readiness check.

    Verifies:
    - Engine context (rules, mapping tables, hierarchy) is loaded
    - Database is reachable, when the store is SQL-backed
    """
    checks: dict[str, bool] = {}

    checks["engine"] = getattr(request.app.state, "engine", None) is not None
    if isinstance(getattr(request.app.state, "store", None), SqlStore):
        checks["database"] = await verify_db_connection()

    all_healthy = all(checks.values()) if checks else True

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        version=__version__,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        checks={"alive": True},
    )
