"""Request and response schemas for the engine endpoints."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from device_pricing.core.enums import ComponentType, Confidence, MatchType


class ClassifyRequest(BaseModel):
    """Free text to classify, optionally with the manufacturer name."""

    text: str = Field(min_length=1, description="Product name and/or description")
    manufacturer_name: str | None = Field(default=None, description="Manufacturer name")
    use_extraction: bool = Field(
        default=False,
        description="Ask the extraction service for a suggested code before applying the rules",
    )

    model_config = {"extra": "forbid"}


class ClassifyResponse(BaseModel):
    """Classifier result; `matched` is false when no rule applied."""

    matched: bool = Field(description="Whether any rule matched")
    code: str | None = Field(default=None, description="Matched category code")
    name: str | None = Field(default=None, description="Matched category name")
    confidence: Confidence | None = Field(default=None, description="Confidence bucket")
    rule_priority: int | None = Field(default=None, description="Priority of the winning rule")

    model_config = {"extra": "forbid"}


class MapCodeRequest(BaseModel):
    """External tariff code to map."""

    source_code: str | None = Field(default=None, description="Raw tariff code, e.g. XC1.1.2")
    source_name: str | None = Field(default=None, description="Tariff source, e.g. LPPR")
    description: str | None = Field(default=None, description="Component description")

    model_config = {"extra": "forbid"}


class MapCodeResponse(BaseModel):
    xc_subcode: str | None = Field(default=None, description="Extracted subcode")
    component_type: ComponentType = Field(description="Derived component type")
    leaf_code: str | None = Field(default=None, description="Mapped leaf category code")
    reverted: bool = Field(default=False, description="Subcode is on the complete-set revert list")

    model_config = {"extra": "forbid"}


class PriceQuery(BaseModel):
    """Price resolution query. At least one of the ids is required."""

    product_id: str | None = Field(default=None, description="Product to resolve for")
    category_id: str | None = Field(default=None, description="Category to resolve for")
    countries: list[str] | None = Field(default=None, description="ISO country filter")

    model_config = {"extra": "forbid"}

    @field_validator("countries")
    @classmethod
    def normalize_countries(cls, v: list[str] | None) -> list[str] | None:
        """Upper-case country codes; an empty list means no filter."""
        if not v:
            return None
        return [c.strip().upper() for c in v if c.strip()]


class PriceMatchResponse(BaseModel):
    """One resolved reference price."""

    reference_price_id: str
    match_type: MatchType
    match_score: Decimal
    distance: int = Field(default=0, description="Ancestor distance for category_ancestor matches")
    is_partial: bool = Field(default=False, description="Price covers only part of the item")
    note: str | None = None
    price_amount: Decimal
    source_country: str | None = None
    source_code: str | None = None
    component_type: str | None = None
    price_scope: str | None = None
    reference_price: dict[str, Any] = Field(default_factory=dict, description="Full price row")

    model_config = {"extra": "forbid"}


class PriceResolutionResponse(BaseModel):
    product_id: str | None = None
    category_id: str | None = None
    count: int
    matches: list[PriceMatchResponse]

    model_config = {"extra": "forbid"}


class EstimateRequest(BaseModel):
    """Component estimate for a category code within a set price."""

    category_code: str = Field(min_length=1, description="Component category code")
    set_price: Decimal = Field(gt=0, description="Price of the complete set")

    model_config = {"extra": "forbid"}


class EstimateResponse(BaseModel):
    found: bool
    min: Decimal | None = None
    max: Decimal | None = None
    label: str | None = None
    code_prefix: str | None = Field(default=None, description="Fraction-table prefix that matched")
    fraction_range: str | None = Field(default=None, description="Fraction as a percent range")
    estimated: bool = Field(default=True, description="Always true: fractions are estimates")

    model_config = {"extra": "forbid"}


class PipelineRunRequest(BaseModel):
    """Options for a pipeline run over the API."""

    dry_run: bool = Field(default=True, description="Report changes without writing")
    force: bool = Field(default=False, description="Recompute rows that are already populated")
    allow_reassign: bool = Field(default=False, description="Allow cross-branch reclassification")
    batch_size: int | None = Field(default=None, ge=1, le=1000, description="Rows per batch")

    model_config = {"extra": "forbid"}


class PipelineListResponse(BaseModel):
    pipelines: list[str]
    default_sequence: list[str]

    model_config = {"extra": "forbid"}
