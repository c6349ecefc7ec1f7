"""Data-quality corrections on reference prices."""

from device_pricing.core.decomposition import ESTIMATED_MARKER
from device_pricing.core.resolver import SPLIT_PRICE_MARKER, split_price_note
from device_pricing.infra.store import Row
from device_pricing.pipelines.base import BatchPipeline, RowOutcome, append_note


class CorrectReferencePricesPipeline(BatchPipeline):
    """Applies the enumerated overrides and flags split prices.

    - leaf_reverted: complete-kit subcodes lose their component leaf
    - type_fixed: mis-tagged subcodes get their corrected component type
    - split_flagged: "part X of Y" rows get a SPLIT_PRICE note

    Price columns are never touched.
    Component estimates created by decomposition are left alone.
    """

    table = "reference_prices"

    @property
    def name(self) -> str:
        return "correct_reference_prices"

    async def process_row(self, row: Row) -> RowOutcome:
        if ESTIMATED_MARKER in (row.get("notes") or ""):
            return RowOutcome.unchanged("estimated")

        corrections = self.engine.config.corrections
        subcode = row.get("xc_subcode")
        notes = row.get("notes")
        patch = {}
        buckets = []

        if subcode in corrections.revert_leaf_subcodes and row.get("leaf_category_id"):
            patch["leaf_category_id"] = None
            notes = append_note(notes, f"[corrected] leaf reverted for complete set {subcode}")
            buckets.append("leaf_reverted")

        fixed = corrections.component_type_fixes.get(subcode) if subcode else None
        if fixed is not None and row.get("component_type") != fixed.value:
            patch["component_type"] = fixed.value
            notes = append_note(
                notes,
                f"[corrected] component_type {row.get('component_type')} -> {fixed.value}",
            )
            buckets.append("type_fixed")

        match = self.engine.config.split_price_pattern.search(row.get("component_description") or "")
        if match and SPLIT_PRICE_MARKER not in (row.get("notes") or ""):
            notes = append_note(notes, split_price_note(match.group(1), match.group(2)))
            buckets.append("split_flagged")

        if not buckets:
            return RowOutcome.unchanged()

        patch["notes"] = notes
        return RowOutcome(buckets=tuple(buckets), patch=patch)
