"""Derive tariff subcodes and component types for reference prices."""

from device_pricing.core.decomposition import ESTIMATED_MARKER
from device_pricing.infra.store import Row
from device_pricing.pipelines.base import BatchPipeline, RowOutcome, append_note


class ClassifyReferencePricesPipeline(BatchPipeline):
    """Populates `xc_subcode` and `component_type` from `source_code`.

    Rows that already carry both fields are skipped unless `force` is set.
    Component estimates created by decomposition are never reclassified.
    Changed rows are bucketed by their resulting component type.
    """

    table = "reference_prices"

    @property
    def name(self) -> str:
        return "classify_reference_prices"

    async def process_row(self, row: Row) -> RowOutcome:
        if ESTIMATED_MARKER in (row.get("notes") or ""):
            return RowOutcome.unchanged("estimated")
        if row.get("xc_subcode") and row.get("component_type") and not self.options.force:
            return RowOutcome.unchanged("skipped")

        mapping = self.engine.map_external_code(
            row.get("source_code"),
            row.get("source_name"),
            row.get("component_description"),
        )

        patch = {}
        if row.get("xc_subcode") != mapping.subcode:
            patch["xc_subcode"] = mapping.subcode
        if row.get("component_type") != mapping.component_type.value:
            patch["component_type"] = mapping.component_type.value

        if not patch:
            return RowOutcome.unchanged()

        patch["notes"] = append_note(
            row.get("notes"),
            f"[classified] subcode={mapping.subcode or '-'} type={mapping.component_type.value}",
        )
        return RowOutcome(buckets=(mapping.component_type.value,), patch=patch)
