"""Pydantic schemas for request/response validation."""

from device_pricing.schemas.common import ErrorResponse, HealthResponse
from device_pricing.schemas.engine import (
    ClassifyRequest,
    ClassifyResponse,
    EstimateRequest,
    EstimateResponse,
    MapCodeRequest,
    MapCodeResponse,
    PipelineListResponse,
    PipelineRunRequest,
    PriceMatchResponse,
    PriceQuery,
    PriceResolutionResponse,
)
from device_pricing.schemas.report import BatchReport, RowChange, ValidationFailureReport

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "ClassifyRequest",
    "ClassifyResponse",
    "MapCodeRequest",
    "MapCodeResponse",
    "PriceQuery",
    "PriceMatchResponse",
    "PriceResolutionResponse",
    "EstimateRequest",
    "EstimateResponse",
    "PipelineRunRequest",
    "PipelineListResponse",
    "BatchReport",
    "RowChange",
    "ValidationFailureReport",
]
