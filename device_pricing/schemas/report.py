"""Batch pipeline report schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ValidationFailureReport(BaseModel):
    """A row skipped because its computed change failed validation."""

    row_id: str = Field(description="Row that was skipped")
    reasons: list[str] = Field(description="Failed checks")

    model_config = {"extra": "forbid"}


class RowChange(BaseModel):
    """One row change, applied or previewed."""

    row_id: str = Field(description="Changed row id")
    buckets: list[str] = Field(description="Outcome buckets of the row")
    before: dict[str, Any] = Field(default_factory=dict, description="Changed fields before")
    after: dict[str, Any] = Field(default_factory=dict, description="Changed fields after")
    created: int = Field(default=0, description="Rows created alongside the change")
    deleted: int = Field(default=0, description="Rows deleted alongside the change")
    warnings: list[str] = Field(default_factory=list, description="Checks flagged for review")

    model_config = {"extra": "forbid"}


class BatchReport(BaseModel):
    """Result of one pipeline run.

    In dry-run mode the report lists exactly the changes a real run would
    write; `written` stays 0.
    """

    pipeline: str = Field(description="Pipeline name")
    dry_run: bool = Field(description="Whether writes were suppressed")
    cancelled: bool = Field(default=False, description="Stopped between batches on request")
    total: int = Field(default=0, description="Rows in the id snapshot")
    processed: int = Field(default=0, description="Rows processed")
    written: int = Field(default=0, description="Store writes performed")
    buckets: dict[str, int] = Field(default_factory=dict, description="Row count per outcome bucket")
    changed_ids: list[str] = Field(default_factory=list, description="Rows changed (or that would change)")
    changes: list[RowChange] = Field(default_factory=list, description="Per-row change detail")
    validation_failures: list[ValidationFailureReport] = Field(
        default_factory=list,
        description="Rows skipped by validation",
    )
    duration_ms: int | None = Field(default=None, description="Run duration in milliseconds")

    model_config = {"extra": "forbid"}

    def count(self, bucket: str) -> int:
        return self.buckets.get(bucket, 0)
