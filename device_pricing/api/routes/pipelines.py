"""Pipeline endpoints.

Runs are synchronous: the response is the finished BatchReport. Dry-run
is the default so a bare POST never writes.
"""

from fastapi import APIRouter, HTTPException, status

from device_pricing.api.deps import DataStore, Engine
from device_pricing.infra.logging import get_logger
from device_pricing.pipelines import DEFAULT_SEQUENCE, PipelineOptions, PipelineRegistry
from device_pricing.schemas.engine import PipelineListResponse, PipelineRunRequest
from device_pricing.schemas.report import BatchReport

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=PipelineListResponse)
async def list_pipelines() -> PipelineListResponse:
    """List registered pipelines and the default run order."""
    return PipelineListResponse(
        pipelines=PipelineRegistry.available_pipelines(),
        default_sequence=DEFAULT_SEQUENCE,
    )


@router.post("/{name}/run", response_model=BatchReport)
async def run_pipeline(
    name: str,
    request: PipelineRunRequest,
    engine: Engine,
    store: DataStore,
) -> BatchReport:
    """Run one pipeline and return its report."""
    options = PipelineOptions(
        dry_run=request.dry_run,
        force=request.force,
        allow_reassign=request.allow_reassign,
        batch_size=request.batch_size,
    )
    try:
        pipeline = PipelineRegistry.get(name, engine, store, options)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    logger.info("Pipeline run requested", pipeline=name, dry_run=request.dry_run)
    return await pipeline.run()
