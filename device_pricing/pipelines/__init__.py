"""Batch correction pipelines."""

from device_pricing.pipelines.base import BatchPipeline, PipelineOptions, RowOutcome
from device_pricing.pipelines.classify_products import ClassifyProductsPipeline
from device_pricing.pipelines.classify_reference_prices import ClassifyReferencePricesPipeline
from device_pricing.pipelines.correct_reference_prices import CorrectReferencePricesPipeline
from device_pricing.pipelines.decompose_sets import DecomposeSetsPipeline
from device_pricing.pipelines.map_leaf_categories import MapLeafCategoriesPipeline
from device_pricing.pipelines.match_products_to_prices import MatchProductsToPricesPipeline
from device_pricing.pipelines.registry import PipelineRegistry

# Run order for a full refresh: later pipelines read what earlier ones wrote
DEFAULT_SEQUENCE = [
    "classify_products",
    "classify_reference_prices",
    "correct_reference_prices",
    "map_leaf_categories",
    "decompose_sets",
    "match_products_to_prices",
]


def register_all_pipelines() -> None:
    """Register all available pipelines with the PipelineRegistry.

    This function should be called during application startup to ensure all
    pipelines are available to the CLI and the API.
    """
    PipelineRegistry.register("classify_products", ClassifyProductsPipeline)
    PipelineRegistry.register("classify_reference_prices", ClassifyReferencePricesPipeline)
    PipelineRegistry.register("correct_reference_prices", CorrectReferencePricesPipeline)
    PipelineRegistry.register("map_leaf_categories", MapLeafCategoriesPipeline)
    PipelineRegistry.register("decompose_sets", DecomposeSetsPipeline)
    PipelineRegistry.register("match_products_to_prices", MatchProductsToPricesPipeline)


__all__ = [
    "DEFAULT_SEQUENCE",
    "register_all_pipelines",
    "BatchPipeline",
    "PipelineOptions",
    "PipelineRegistry",
    "RowOutcome",
    "ClassifyProductsPipeline",
    "ClassifyReferencePricesPipeline",
    "CorrectReferencePricesPipeline",
    "MapLeafCategoriesPipeline",
    "DecomposeSetsPipeline",
    "MatchProductsToPricesPipeline",
]
