"""Rebuild the cached product/price match table."""

from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal

from device_pricing.config import settings
from device_pricing.core.engine import EngineContext
from device_pricing.core.enums import MatchType
from device_pricing.core.resolver import (
    PRODUCT_MATCH_SCORE,
    ProductMatchScore,
    effective_category_id,
    score_product_match,
)
from device_pricing.infra.store import Filter, Row, Store, eq, in_, not_null
from device_pricing.models.base import new_id
from device_pricing.pipelines.base import BatchPipeline, PipelineOptions, RowOutcome

MATCH_TABLE = "product_price_matches"
RULE_METHOD = "rule"


class MatchProductsToPricesPipeline(BatchPipeline):
    """Scores every classified product against reference prices.

    Prices attached to the product's category or one of its ancestors are
    scored by `score_product_match`; explicit links always score 1.00.
    Only new or changed matches are written and stale rule matches are
    deleted. Manual matches are never touched.
    """

    table = "products"

    def __init__(
        self,
        engine: EngineContext,
        store: Store,
        options: PipelineOptions | None = None,
    ) -> None:
        super().__init__(engine, store, options)
        self._by_category: dict[str, list[Row]] | None = None
        self._by_product: dict[str, list[Row]] = {}

    @property
    def name(self) -> str:
        return "match_products_to_prices"

    @property
    def max_matches(self) -> int:
        return settings.max_matches_per_product

    def target_filters(self) -> Sequence[Filter]:
        return (not_null("category_id"),)

    async def before_batch(self, rows: list[Row]) -> None:
        if self._by_category is not None:
            return

        by_category: dict[str, list[Row]] = defaultdict(list)
        by_product: dict[str, list[Row]] = defaultdict(list)
        for price in await self.store.select("reference_prices"):
            category_id = effective_category_id(price)
            if category_id:
                by_category[category_id].append(price)
            if price.get("product_id"):
                by_product[str(price["product_id"])].append(price)

        self._by_category = dict(by_category)
        self._by_product = dict(by_product)
        self.logger.info(
            "Reference prices indexed",
            categories=len(self._by_category),
            linked_products=len(self._by_product),
        )

    def score_candidates(self, product: Row) -> list[tuple[str, ProductMatchScore]]:
        """Best score per reference price, highest first."""
        hierarchy = self.engine.hierarchy
        best: dict[str, ProductMatchScore] = {}

        for price in self._by_product.get(str(product["id"]), []):
            best[str(price["id"])] = ProductMatchScore(
                score=PRODUCT_MATCH_SCORE,
                reason="explicit product link",
                match_type=MatchType.PRODUCT_MATCH,
            )

        if product["category_id"] in hierarchy:
            for node in hierarchy.get_ancestor_chain(product["category_id"]):
                for price in (self._by_category or {}).get(node.id, []):
                    price_id = str(price["id"])
                    if price_id in best:
                        continue
                    scored = score_product_match(
                        product, price, hierarchy, self.engine.config.brand_keywords
                    )
                    if scored is not None:
                        best[price_id] = scored

        ranked = sorted(best.items(), key=lambda item: (-item[1].score, item[0]))
        return ranked[:self.max_matches]

    async def process_row(self, row: Row) -> RowOutcome:
        product_id = str(row["id"])
        ranked = self.score_candidates(row)

        existing = {
            str(match["reference_price_id"]): match
            for match in await self.store.select(MATCH_TABLE, [eq("product_id", product_id)])
        }

        upserts: list[tuple[str, Row]] = []
        for price_id, scored in ranked:
            current = existing.get(price_id)
            if current is not None and current.get("match_method") != RULE_METHOD:
                continue
            if current is not None and _same_match(current, scored):
                continue
            upserts.append(
                (
                    MATCH_TABLE,
                    {
                        "id": current["id"] if current is not None else new_id(),
                        "product_id": product_id,
                        "reference_price_id": price_id,
                        "match_score": scored.score,
                        "match_type": scored.match_type.value,
                        "match_reason": scored.reason,
                        "match_method": RULE_METHOD,
                    },
                )
            )

        wanted = {price_id for price_id, _ in ranked}
        stale = sorted(
            str(match["id"])
            for price_id, match in existing.items()
            if match.get("match_method") == RULE_METHOD and price_id not in wanted
        )
        deletes = [(MATCH_TABLE, [in_("id", stale)])] if stale else []

        bucket = "matched" if ranked else "no_match"
        if not upserts and not deletes:
            return RowOutcome.unchanged(bucket if not ranked else "unchanged")
        return RowOutcome(buckets=(bucket,), upserts=upserts, deletes=deletes)


def _same_match(current: Row, scored: ProductMatchScore) -> bool:
    return (
        Decimal(str(current.get("match_score"))) == scored.score
        and current.get("match_type") == scored.match_type.value
        and current.get("match_reason") == scored.reason
    )
