"""Split set-scope reference prices into component estimates."""

from collections import defaultdict
from decimal import Decimal

from device_pricing.core.decomposition import DECOMPOSED_MARKER, ESTIMATED_MARKER
from device_pricing.core.enums import PriceScope
from device_pricing.core.engine import EngineContext
from device_pricing.core.errors import ValidationFailure
from device_pricing.core.resolver import effective_category_id
from device_pricing.infra.store import Row, Store, eq, in_, is_null
from device_pricing.pipelines.base import BatchPipeline, PipelineOptions, RowOutcome, append_note


class DecomposeSetsPipeline(BatchPipeline):
    """Creates component rows for complete-kit prices.

    Each decomposed set gets `[decomposed]` appended to its notes, which
    also keeps later runs from splitting it again. Component rows are
    created with `[estimated]` notes and are never used to corroborate
    other decompositions.
    """

    table = "reference_prices"

    def __init__(
        self,
        engine: EngineContext,
        store: Store,
        options: PipelineOptions | None = None,
    ) -> None:
        super().__init__(engine, store, options)
        self._observed: dict[str, list[Decimal]] | None = None

    @property
    def name(self) -> str:
        return "decompose_sets"

    async def before_batch(self, rows: list[Row]) -> None:
        # Observed component prices are loaded once per run
        if self._observed is not None:
            return

        node_ids: set[str] = set()
        for template in self.engine.config.set_templates:
            node_ids.update(self.engine.decomposer.component_node_ids(template).values())

        component_filter = eq("price_scope", PriceScope.COMPONENT.value)
        by_leaf = await self.store.select(
            self.table, [component_filter, in_("leaf_category_id", sorted(node_ids))]
        )
        by_category = await self.store.select(
            self.table,
            [component_filter, is_null("leaf_category_id"), in_("category_id", sorted(node_ids))],
        )

        observed: dict[str, list[Decimal]] = defaultdict(list)
        for price in [*by_leaf, *by_category]:
            if ESTIMATED_MARKER in (price.get("notes") or ""):
                continue
            observed[effective_category_id(price)].append(Decimal(str(price["price_amount"])))
        self._observed = dict(observed)

    async def process_row(self, row: Row) -> RowOutcome:
        decomposer = self.engine.decomposer
        if not decomposer.is_decomposable(row):
            return RowOutcome.unchanged("skipped")

        category_id = effective_category_id(row)
        if category_id is None or category_id not in self.engine.hierarchy:
            raise ValidationFailure(str(row["id"]), ["set price has no known category"])

        node = self.engine.hierarchy.get_node(category_id)
        template = decomposer.template_for(node.code)
        if template is None:
            return RowOutcome.unchanged("no_template")

        plan = decomposer.plan(row, template, self._observed)
        components = decomposer.build_rows(plan, row)

        return RowOutcome(
            buckets=(template.name,),
            patch={"notes": append_note(row.get("notes"), DECOMPOSED_MARKER, separator=" ")},
            upserts=[(self.table, component) for component in components],
            warnings=plan.warnings,
        )
