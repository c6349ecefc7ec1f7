"""FastAPI application entry point.

Device pricing engine: classification, code mapping, reference-price
resolution and the batch correction pipelines.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from device_pricing import __version__
from device_pricing.config import settings
from device_pricing.core.engine import load_engine
from device_pricing.core.engine_config import get_config_loader
from device_pricing.core.errors import InvalidArgument, NotFound
from device_pricing.infra.database import close_db_engine, verify_db_connection
from device_pricing.infra.logging import get_logger, setup_logging
from device_pricing.infra.sql_store import SqlStore
from device_pricing.pipelines import register_all_pipelines
from device_pricing.schemas.common import ErrorResponse
from device_pricing.services.extraction_client import get_extraction_client

# Import routers
from device_pricing.api.routes.engine import router as engine_router
from device_pricing.api.routes.health import router as health_router
from device_pricing.api.routes.pipelines import router as pipelines_router

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Register pipelines
    - Verify database connection
    - Load engine config and hierarchy, validating every lookup table

    A config or hierarchy integrity problem aborts startup.

    Shutdown:
    - Close database and extraction client connections
    - Clear config cache
    """
    logger.info(
        "Device pricing engine starting",
        environment=settings.environment,
        version=__version__,
    )

    register_all_pipelines()
    logger.info("Pipelines registered")

    db_ok = await verify_db_connection()
    if not db_ok:
        logger.warning("Database connection failed at startup")

    store = SqlStore()
    engine = await load_engine(
        store,
        config_path=settings.engine_config_path,
        scheme_path=settings.category_scheme_path if settings.import_scheme_on_startup else None,
    )
    app.state.store = store
    app.state.engine = engine

    yield

    # Shutdown
    logger.info("Device pricing engine shutting down")
    app.state.engine = None
    await get_extraction_client().close()
    await close_db_engine()
    get_config_loader().clear_cache()
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="Device Pricing Engine",
    description="Hierarchical classification and reference-price resolution for medical devices",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "dev" else None,
    redoc_url=None,
)

# CORS middleware (mainly for local development)
if settings.environment == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests with context."""
    response = await call_next(request)
    logger.debug(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
    )
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(InvalidArgument)
async def invalid_argument_handler(request: Request, exc: InvalidArgument) -> JSONResponse:
    """Reject calls without usable arguments."""
    logger.info("Invalid argument", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(error=str(exc), error_type=type(exc).__name__).model_dump(),
    )


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    logger.info("Not found", kind=exc.kind, key=exc.key, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(
            error=str(exc),
            error_type=type(exc).__name__,
            detail={"kind": exc.kind, "key": exc.key},
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            error_type=type(exc).__name__,
        ).model_dump(),
    )


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router, tags=["Health"])
app.include_router(engine_router, tags=["Engine"])
app.include_router(pipelines_router, prefix="/pipelines", tags=["Pipelines"])


# =============================================================================
# Root Endpoint
# =============================================================================


@app.get("/")
async def root() -> dict:
    """Root endpoint - basic service info."""
    return {
        "service": "Device Pricing Engine",
        "version": __version__,
        "environment": settings.environment,
    }
