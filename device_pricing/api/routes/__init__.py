"""API routes module."""

from device_pricing.api.routes.engine import router as engine_router
from device_pricing.api.routes.health import router as health_router
from device_pricing.api.routes.pipelines import router as pipelines_router

__all__ = ["engine_router", "health_router", "pipelines_router"]
