"""Classification Rule Engine.

Assigns a hierarchy code to free product text using prioritised keyword
rules. Matching is case-insensitive substring matching, so short keywords
can hit inside longer words; exclude keywords on a rule suppress the known
false positives. Rules sharing keywords must be separated by priority: the
engine never ranks by specificity on its own.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import assert_never

from device_pricing.core.engine_config import ClassificationRule, ConfidenceThresholds
from device_pricing.core.enums import Confidence
from device_pricing.core.errors import IntegrityViolation
from device_pricing.core.hierarchy import HierarchyStore
from device_pricing.infra.logging import get_logger
from device_pricing.services.extraction_client import (
    ExtractionFound,
    ExtractionPending,
    ExtractionResult,
    ExtractionUnavailable,
    SuggestionSource,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class Classification:
    """Result of classifying one text."""

    code: str
    name: str
    confidence: Confidence
    rule_priority: int | None = None


def confidence_for_priority(priority: int, thresholds: ConfidenceThresholds) -> Confidence:
    """Map a rule priority onto a confidence bucket."""
    if priority >= thresholds.high:
        return Confidence.HIGH
    if priority >= thresholds.medium:
        return Confidence.MEDIUM
    return Confidence.LOW


class RuleClassifier:
    """Deterministic keyword classifier.

    Rules are stably sorted by priority (highest first) once at
    construction. The first rule whose keywords hit and whose exclude
    keywords do not wins.
    """

    def __init__(
        self,
        rules: Sequence[ClassificationRule],
        hierarchy: HierarchyStore | None = None,
        thresholds: ConfidenceThresholds | None = None,
        cache_size: int = 4096,
    ) -> None:
        self._thresholds = thresholds or ConfidenceThresholds()
        self._hierarchy = hierarchy
        self._rules = tuple(sorted(rules, key=lambda r: -r.priority))
        self._names: dict[str, str] = {}

        missing: list[str] = []
        for rule in self._rules:
            if hierarchy is not None:
                if not hierarchy.has_code(rule.target_code):
                    missing.append(f"rule target {rule.target_code} not in hierarchy")
                    continue
                self._names[rule.target_code] = rule.name or hierarchy.get_by_code(rule.target_code).name
            else:
                self._names[rule.target_code] = rule.name or rule.target_code

        if missing:
            raise IntegrityViolation("Classification rules reference unknown codes", missing)

        self._classify_cached = lru_cache(maxsize=cache_size)(self._classify)

        logger.info("Rule classifier ready", rule_count=len(self._rules))

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        return self._rules

    def classify(self, text: str, manufacturer_name: str | None = None) -> Classification | None:
        """Classify product text.

        Args:
            text: Product name or description
            manufacturer_name: Appended to the text when known

        Returns:
            Winning classification, or None when no rule matches
        """
        if manufacturer_name:
            text = f"{text} {manufacturer_name}"
        return self._classify_cached(text.lower())

    def _classify(self, lowered: str) -> Classification | None:
        for rule in self._rules:
            if not any(keyword in lowered for keyword in rule.keywords):
                continue
            if any(keyword in lowered for keyword in rule.exclude_keywords):
                continue
            return Classification(
                code=rule.target_code,
                name=self._names[rule.target_code],
                confidence=confidence_for_priority(rule.priority, self._thresholds),
                rule_priority=rule.priority,
            )
        return None

    def classify_extracted(
        self,
        result: ExtractionResult,
        text: str,
        manufacturer_name: str | None = None,
    ) -> Classification | None:
        """Classify using an extraction result, falling back to the rules.

        A suggestion is used only when its code exists in the hierarchy.
        Pending and unavailable lookups fall back to the rules and are
        logged so callers can tell them apart from "no suggestion".
        """
        if isinstance(result, ExtractionFound):
            code = result.record.suggested_category_code
            if code and self._hierarchy is not None and self._hierarchy.has_code(code):
                confidence = (
                    Confidence.HIGH
                    if result.record.source is SuggestionSource.DOCUMENT
                    else Confidence.MEDIUM
                )
                return Classification(
                    code=code,
                    name=self._hierarchy.get_by_code(code).name,
                    confidence=confidence,
                )
            if code:
                logger.warning("Extraction suggested unknown code", code=code)
        elif isinstance(result, ExtractionPending):
            logger.info("Extraction pending, using rules", job_id=result.job_id)
        elif isinstance(result, ExtractionUnavailable):
            logger.warning("Extraction unavailable, using rules", reason=result.reason)
        else:
            assert_never(result)

        return self.classify(text, manufacturer_name)
