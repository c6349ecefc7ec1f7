"""Engine endpoints: classification, code mapping, prices and estimates.

Request scoped and read-only; all writes go through the pipelines.
"""

from fastapi import APIRouter

from device_pricing.api.deps import DataStore, Engine, Extraction
from device_pricing.core.resolver import PriceMatch
from device_pricing.infra.logging import get_logger
from device_pricing.schemas.engine import (
    ClassifyRequest,
    ClassifyResponse,
    EstimateRequest,
    EstimateResponse,
    MapCodeRequest,
    MapCodeResponse,
    PriceMatchResponse,
    PriceQuery,
    PriceResolutionResponse,
)

router = APIRouter()
logger = get_logger(__name__)


@router.post("/classify", response_model=ClassifyResponse)
async def classify(
    request: ClassifyRequest,
    engine: Engine,
    extraction: Extraction,
) -> ClassifyResponse:
    """Classify free text into a category code.

    With `use_extraction`, a code suggested by the extraction service wins
    when it exists in the hierarchy; otherwise the rules apply.
    """
    if request.use_extraction:
        extracted = await extraction.extract(request.text)
        result = engine.classifier.classify_extracted(
            extracted, request.text, request.manufacturer_name
        )
    else:
        result = engine.classify(request.text, request.manufacturer_name)
    if result is None:
        return ClassifyResponse(matched=False)

    return ClassifyResponse(
        matched=True,
        code=result.code,
        name=result.name,
        confidence=result.confidence,
        rule_priority=result.rule_priority,
    )


@router.post("/map-code", response_model=MapCodeResponse)
async def map_code(request: MapCodeRequest, engine: Engine) -> MapCodeResponse:
    """Map an external tariff code to subcode, component type and leaf."""
    mapping = engine.map_external_code(
        request.source_code,
        request.source_name,
        request.description,
    )
    leaf = engine.mapper.resolve_leaf(mapping.subcode)
    return MapCodeResponse(
        xc_subcode=mapping.subcode,
        component_type=mapping.component_type,
        leaf_code=leaf.code if leaf is not None else None,
        reverted=engine.mapper.is_reverted(mapping.subcode),
    )


def _match_response(match: PriceMatch) -> PriceMatchResponse:
    price = match.reference_price
    return PriceMatchResponse(
        reference_price_id=match.reference_price_id,
        match_type=match.match_type,
        match_score=match.match_score,
        distance=match.distance,
        is_partial=match.is_partial,
        note=match.note,
        price_amount=price["price_amount"],
        source_country=price.get("source_country"),
        source_code=price.get("source_code"),
        component_type=price.get("component_type"),
        price_scope=price.get("price_scope"),
        reference_price=price,
    )


@router.post("/prices", response_model=PriceResolutionResponse)
async def resolve_prices(
    query: PriceQuery,
    engine: Engine,
    store: DataStore,
) -> PriceResolutionResponse:
    """Resolve reference prices for a product and/or category.

    Returns 422 when neither id is given.
    """
    matches = await engine.resolve_prices(
        store,
        product_id=query.product_id,
        category_id=query.category_id,
        countries=query.countries,
    )
    return PriceResolutionResponse(
        product_id=query.product_id,
        category_id=query.category_id,
        count=len(matches),
        matches=[_match_response(m) for m in matches],
    )


@router.post("/estimate", response_model=EstimateResponse)
async def estimate(request: EstimateRequest, engine: Engine) -> EstimateResponse:
    """Estimate a component price range from a set price."""
    result = engine.estimate_component(request.category_code, request.set_price)
    if result is None:
        return EstimateResponse(found=False)

    return EstimateResponse(
        found=True,
        min=result.min,
        max=result.max,
        label=result.label,
        code_prefix=result.code_prefix,
        fraction_range=result.fraction_range,
        estimated=result.estimated,
    )
