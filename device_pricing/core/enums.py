"""Closed value sets shared across the engine."""

from enum import Enum
from typing import assert_never


class ComponentType(str, Enum):
    """What a reference price physically covers."""

    SINGLE_COMPONENT = "single_component"
    SET = "set"
    REVISION_SET = "revision_set"
    INDIVIDUAL_MODULAR = "individual_modular"
    FIXATION_DEVICE = "fixation_device"
    ARTHROSCOPIC = "arthroscopic"
    TEMPORARY = "temporary"
    OTHER = "other"


class PriceScope(str, Enum):
    """Granularity of a price: one part, a full kit, or a procedure."""

    COMPONENT = "component"
    SET = "set"
    PROCEDURE = "procedure"


class MatchType(str, Enum):
    """Resolution tier a price was found in, strongest first."""

    PRODUCT_MATCH = "product_match"
    CATEGORY_LEAF = "category_leaf"
    CATEGORY_ANCESTOR = "category_ancestor"


class Confidence(str, Enum):
    """Classifier confidence bucket."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def match_type_rank(match_type: MatchType) -> int:
    """Sort rank of a tier; lower ranks are more trustworthy."""
    if match_type is MatchType.PRODUCT_MATCH:
        return 0
    elif match_type is MatchType.CATEGORY_LEAF:
        return 1
    elif match_type is MatchType.CATEGORY_ANCESTOR:
        return 2
    else:
        assert_never(match_type)


def confidence_rank(confidence: Confidence) -> int:
    """Numeric rank of a confidence bucket; higher is more confident."""
    if confidence is Confidence.HIGH:
        return 3
    elif confidence is Confidence.MEDIUM:
        return 2
    elif confidence is Confidence.LOW:
        return 1
    else:
        assert_never(confidence)

