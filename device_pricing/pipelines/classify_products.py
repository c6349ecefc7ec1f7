"""Assign or deepen product categories with the rule classifier."""

from device_pricing.config import settings
from device_pricing.core.enums import Confidence, confidence_rank
from device_pricing.infra.store import Row
from device_pricing.pipelines.base import BatchPipeline, RowOutcome


class ClassifyProductsPipeline(BatchPipeline):
    """Classifies product text and updates `category_id`.

    Buckets:
    - new: no category yet
    - deepen: the new code sits below the current one
    - fix: moved to another branch (only with allow_reassign)
    - review: below the auto-apply confidence, or a cross-branch move
      without allow_reassign
    - no_match / unchanged
    """

    table = "products"

    @property
    def name(self) -> str:
        return "classify_products"

    @property
    def min_confidence(self) -> Confidence:
        return Confidence(settings.auto_apply_min_confidence)

    async def process_row(self, row: Row) -> RowOutcome:
        hierarchy = self.engine.hierarchy
        text = " ".join(part for part in (row.get("name"), row.get("description")) if part)
        result = self.engine.classify(text, row.get("manufacturer_name"))
        if result is None:
            return RowOutcome.unchanged("no_match")

        target = hierarchy.get_by_code(result.code)
        current_id = row.get("category_id")
        if current_id == target.id:
            return RowOutcome.unchanged()

        if confidence_rank(result.confidence) < confidence_rank(self.min_confidence):
            self.logger.info(
                "Classification needs review",
                row_id=row["id"],
                code=result.code,
                confidence=result.confidence.value,
            )
            return RowOutcome.unchanged("review")

        if current_id is None or current_id not in hierarchy:
            bucket = "new"
        elif hierarchy.is_descendant_or_self(target.id, current_id):
            bucket = "deepen"
        elif hierarchy.is_descendant_or_self(current_id, target.id):
            # Never generalise an existing, more specific category
            return RowOutcome.unchanged()
        elif self.options.allow_reassign:
            bucket = "fix"
        else:
            return RowOutcome.unchanged("review")

        return RowOutcome(buckets=(bucket,), patch={"category_id": target.id})
