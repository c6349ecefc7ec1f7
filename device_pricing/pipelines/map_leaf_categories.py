"""Narrow reference prices to leaf categories by tariff subcode."""

from collections.abc import Sequence

from device_pricing.core.decomposition import ESTIMATED_MARKER
from device_pricing.infra.store import Filter, Row, not_null
from device_pricing.pipelines.base import BatchPipeline, RowOutcome, append_note


class MapLeafCategoriesPipeline(BatchPipeline):
    """Sets `leaf_category_id` from the subcode leaf table.

    Only narrows: subcodes without a mapping (or on the revert list) keep
    the broad category. A leaf outside the broad category is a validation
    failure and the row is skipped.
    """

    table = "reference_prices"

    @property
    def name(self) -> str:
        return "map_leaf_categories"

    def target_filters(self) -> Sequence[Filter]:
        return (not_null("xc_subcode"),)

    async def process_row(self, row: Row) -> RowOutcome:
        if ESTIMATED_MARKER in (row.get("notes") or ""):
            return RowOutcome.unchanged("estimated")
        if row.get("leaf_category_id") and not self.options.force:
            return RowOutcome.unchanged("skipped")

        subcode = row.get("xc_subcode")
        leaf_id = self.engine.mapper.narrow(str(row["id"]), subcode, row.get("category_id"))
        if leaf_id is None:
            bucket = "reverted_subcode" if self.engine.mapper.is_reverted(subcode) else "unmapped"
            return RowOutcome.unchanged(bucket)

        if row.get("leaf_category_id") == leaf_id:
            return RowOutcome.unchanged()

        leaf = self.engine.hierarchy.get_node(leaf_id)
        return RowOutcome(
            buckets=("mapped",),
            patch={
                "leaf_category_id": leaf_id,
                "notes": append_note(row.get("notes"), f"[leaf] {subcode} -> {leaf.code}"),
            },
        )
