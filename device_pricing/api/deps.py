"""FastAPI dependencies for dependency injection.

Provides:
- Engine context built at startup
- Store over the application database
- Extraction service client
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from device_pricing.core.engine import EngineContext
from device_pricing.infra.logging import get_logger
from device_pricing.infra.store import Store
from device_pricing.services.extraction_client import ExtractionClient, get_extraction_client

logger = get_logger(__name__)


async def get_engine(request: Request) -> EngineContext:
    """Get the engine context wired during startup.

    Raises:
        HTTPException: 503 if startup has not finished loading the engine
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        logger.warning("Engine requested before startup completed", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Engine not loaded",
        )
    return engine


async def get_store(request: Request) -> Store:
    """Get the store dependency."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store not configured",
        )
    return store


# Type aliases for cleaner annotations
Engine = Annotated[EngineContext, Depends(get_engine)]
DataStore = Annotated[Store, Depends(get_store)]


async def get_extraction() -> ExtractionClient:
    """Get extraction client dependency."""
    return get_extraction_client()


Extraction = Annotated[ExtractionClient, Depends(get_extraction)]
