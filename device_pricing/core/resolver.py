"""Reference-Price Resolution Engine.

Finds reference prices for a product or category in three tiers,
strongest first:
1. product_match: prices explicitly linked to the product
2. category_leaf: prices whose effective category is the category itself
3. category_ancestor: prices attached to an ancestor, scored down by distance

The effective category of a price is its leaf category when set, else its
broad category.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from device_pricing.core.enums import MatchType, match_type_rank
from device_pricing.core.errors import InvalidArgument, NotFound
from device_pricing.core.hierarchy import CategoryNode, HierarchyStore
from device_pricing.infra.logging import get_logger
from device_pricing.infra.store import Filter, Row, Store, eq, in_, is_null

logger = get_logger(__name__)

PRODUCT_MATCH_SCORE = Decimal("1.00")
LEAF_MATCH_SCORE = Decimal("0.90")
ANCESTOR_BASE_SCORE = Decimal("0.80")
ANCESTOR_DECAY = Decimal("0.10")
MIN_ANCESTOR_SCORE = Decimal("0.10")

SPLIT_PRICE_MARKER = "SPLIT_PRICE"

# Rule-based product/price matching
MATCH_BASE_SCORE = Decimal("0.30")
DEPTH_BONUS = {0: Decimal("0.20"), 1: Decimal("0.15"), 2: Decimal("0.10")}
BRAND_BONUS = Decimal("0.30")
KEYWORD_BONUS = Decimal("0.15")
MAX_RULE_SCORE = Decimal("0.95")
MIN_RULE_SCORE = Decimal("0.30")
WORD_SPLIT = re.compile(r"[\s\-/,]+")
STOP_WORDS = frozenset({"dia", "mm", "taper", "size", "with", "for", "the", "and"})


def split_price_note(part: str, total: str) -> str:
    return f"{SPLIT_PRICE_MARKER}: This is a partial entry (part {part} of {total}). Actual price is higher."


def effective_category_id(price: Row) -> str | None:
    return price.get("leaf_category_id") or price.get("category_id")


def ancestor_score(distance: int) -> Decimal:
    """Score of an ancestor match; the parent (distance 1) scores highest."""
    return max(MIN_ANCESTOR_SCORE, ANCESTOR_BASE_SCORE - ANCESTOR_DECAY * (distance - 1))


@dataclass(frozen=True)
class PriceMatch:
    """One resolved reference price."""

    reference_price: Row
    match_type: MatchType
    match_score: Decimal
    distance: int = 0
    is_partial: bool = False
    note: str | None = None

    @property
    def reference_price_id(self) -> str:
        return str(self.reference_price["id"])

    def sort_key(self) -> tuple[int, int, Decimal, str]:
        return (
            match_type_rank(self.match_type),
            self.distance,
            Decimal(str(self.reference_price.get("price_amount") or 0)),
            self.reference_price_id,
        )


class PriceResolver:
    """Resolves reference prices against the hierarchy."""

    def __init__(
        self,
        store: Store,
        hierarchy: HierarchyStore,
        split_price_pattern: re.Pattern[str],
    ) -> None:
        self._store = store
        self._hierarchy = hierarchy
        self._split_price_pattern = split_price_pattern

    def detect_split_price(self, price: Row) -> str | None:
        """Split-price note for a partial entry, or None."""
        description = price.get("component_description") or ""
        match = self._split_price_pattern.search(description)
        if match:
            return split_price_note(match.group(1), match.group(2))
        notes = price.get("notes") or ""
        if SPLIT_PRICE_MARKER in notes:
            return next(part.strip() for part in notes.split(";") if SPLIT_PRICE_MARKER in part)
        return None

    async def resolve_prices(
        self,
        product_id: str | None = None,
        category_id: str | None = None,
        countries: Sequence[str] | None = None,
    ) -> list[PriceMatch]:
        """Resolve reference prices for a product and/or category.

        Args:
            product_id: Product to resolve for
            category_id: Category to resolve for (defaults to the product's)
            countries: Only return prices from these source countries

        Returns:
            Matches ordered by tier, ancestor distance, then price

        Raises:
            InvalidArgument: If neither id is given
        """
        if not product_id and not category_id:
            raise InvalidArgument("resolve_prices needs a product_id or a category_id")

        country_filters: list[Filter] = [in_("source_country", countries)] if countries else []
        candidates: list[PriceMatch] = []

        if product_id:
            products = await self._store.select("products", [eq("id", product_id)])
            if not products:
                logger.warning("Product not found, resolving by category only", product_id=product_id)
            else:
                category_id = category_id or products[0].get("category_id")
                linked = await self._store.select(
                    "reference_prices", [eq("product_id", product_id), *country_filters]
                )
                candidates.extend(
                    self._match(price, MatchType.PRODUCT_MATCH, PRODUCT_MATCH_SCORE)
                    for price in linked
                )

        if category_id:
            candidates.extend(await self._category_matches(category_id, country_filters))

        best: dict[str, PriceMatch] = {}
        for match in candidates:
            current = best.get(match.reference_price_id)
            if current is None or match.sort_key()[:2] < current.sort_key()[:2]:
                best[match.reference_price_id] = match

        results = sorted(best.values(), key=lambda m: m.sort_key())
        logger.debug(
            "Prices resolved",
            product_id=product_id,
            category_id=category_id,
            result_count=len(results),
        )
        return results

    async def _category_matches(
        self, category_id: str, country_filters: list[Filter]
    ) -> list[PriceMatch]:
        try:
            chain = self._hierarchy.get_ancestor_chain(category_id)
        except NotFound:
            logger.warning("Category not found, no category tiers", category_id=category_id)
            return []

        node = chain[-1]
        depth_by_id = {n.id: n.depth for n in chain}
        ids = list(depth_by_id)

        by_leaf = await self._store.select(
            "reference_prices", [in_("leaf_category_id", ids), *country_filters]
        )
        by_category = await self._store.select(
            "reference_prices",
            [is_null("leaf_category_id"), in_("category_id", ids), *country_filters],
        )

        matches: list[PriceMatch] = []
        for price in [*by_leaf, *by_category]:
            effective = effective_category_id(price)
            distance = node.depth - depth_by_id[effective]
            if distance == 0:
                matches.append(self._match(price, MatchType.CATEGORY_LEAF, LEAF_MATCH_SCORE))
            else:
                matches.append(
                    self._match(
                        price,
                        MatchType.CATEGORY_ANCESTOR,
                        ancestor_score(distance),
                        distance=distance,
                    )
                )
        return matches

    def _match(
        self,
        price: Row,
        match_type: MatchType,
        score: Decimal,
        distance: int = 0,
    ) -> PriceMatch:
        note = self.detect_split_price(price)
        return PriceMatch(
            reference_price=price,
            match_type=match_type,
            match_score=score,
            distance=distance,
            is_partial=note is not None,
            note=note,
        )


@dataclass(frozen=True)
class ProductMatchScore:
    score: Decimal
    reason: str
    match_type: MatchType


def score_product_match(
    product: Row,
    price: Row,
    hierarchy: HierarchyStore,
    brand_keywords: dict[str, tuple[str, ...]],
) -> ProductMatchScore | None:
    """Rule-based score for caching a product/price pair.

    The price's effective category must be the product's category or one
    of its ancestors. Closer depth and manufacturer brand hits raise the
    score; 1.0 is reserved for explicit links.
    """
    product_category = product.get("category_id")
    price_category = effective_category_id(price)
    if not product_category or not price_category:
        return None
    if product_category not in hierarchy or price_category not in hierarchy:
        return None

    product_node: CategoryNode = hierarchy.get_node(product_category)
    price_node: CategoryNode = hierarchy.get_node(price_category)
    if not hierarchy.is_descendant_or_self(product_node.id, price_node.id):
        return None

    depth_diff = abs(product_node.depth - price_node.depth)
    score = MATCH_BASE_SCORE
    reasons: list[str] = []

    bonus = DEPTH_BONUS.get(depth_diff)
    if bonus is not None:
        score += bonus
        reasons.append("exact category depth" if depth_diff == 0 else f"category depth ±{depth_diff}")

    manufacturer_code = price.get("manufacturer_name")
    if manufacturer_code:
        name = (product.get("name") or "").lower()
        haystacks = (
            name,
            (product.get("description") or "").lower(),
            (product.get("manufacturer_name") or "").lower(),
        )
        brand = next(
            (b for b in brand_keywords.get(manufacturer_code, ()) if any(b in h for h in haystacks)),
            None,
        )
        if brand is not None:
            score += BRAND_BONUS
            reasons.append(f"brand match: {brand}")
        else:
            description = (price.get("component_description") or "").lower()
            for word in WORD_SPLIT.split(name):
                if len(word) >= 4 and word not in STOP_WORDS and word in description:
                    score += KEYWORD_BONUS
                    reasons.append(f"keyword: {word}")
                    break

    score = min(MAX_RULE_SCORE, score)
    if score < MIN_RULE_SCORE:
        return None

    match_type = MatchType.CATEGORY_LEAF if depth_diff == 0 else MatchType.CATEGORY_ANCESTOR
    return ProductMatchScore(
        score=score.quantize(Decimal("0.01")),
        reason="; ".join(reasons) if reasons else "category ancestor",
        match_type=match_type,
    )
