"""External service clients."""

from device_pricing.services.extraction_client import (
    ExtractedProduct,
    ExtractionClient,
    ExtractionFound,
    ExtractionPending,
    ExtractionResult,
    ExtractionUnavailable,
    SuggestionSource,
    get_extraction_client,
)

__all__ = [
    "ExtractedProduct",
    "ExtractionClient",
    "ExtractionFound",
    "ExtractionPending",
    "ExtractionResult",
    "ExtractionUnavailable",
    "SuggestionSource",
    "get_extraction_client",
]
