"""Tests for reference price resolution and product match scoring."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from device_pricing.core.engine import EngineContext
from device_pricing.core.enums import MatchType
from device_pricing.core.errors import InvalidArgument
from device_pricing.core.hierarchy import HierarchyStore
from device_pricing.core.resolver import (
    PriceResolver,
    ancestor_score,
    effective_category_id,
    score_product_match,
    split_price_note,
)
from device_pricing.infra.memory_store import MemoryStore


class TestHelpers:

    def test_ancestor_score_decays(self):
        assert ancestor_score(1) == Decimal("0.80")
        assert ancestor_score(2) == Decimal("0.70")
        assert ancestor_score(12) == Decimal("0.10")

    def test_effective_category_prefers_leaf(self):
        assert effective_category_id({"category_id": "P0908", "leaf_category_id": "P090803"}) == "P090803"
        assert effective_category_id({"category_id": "P0908", "leaf_category_id": None}) == "P0908"

    def test_split_note_text(self):
        assert split_price_note("1", "2") == (
            "SPLIT_PRICE: This is a partial entry (part 1 of 2). Actual price is higher."
        )


class TestResolvePrices:
    """Tests for PriceResolver.resolve_prices()."""

    @pytest.fixture
    def resolver(self, engine: EngineContext, store: MemoryStore) -> PriceResolver:
        return engine.resolver(store)

    @pytest.mark.asyncio
    async def test_requires_an_id_before_any_store_call(self, engine: EngineContext):
        store = AsyncMock()
        resolver = engine.resolver(store)

        with pytest.raises(InvalidArgument):
            await resolver.resolve_prices()

        store.select.assert_not_called()

    @pytest.mark.asyncio
    async def test_leaf_before_ancestor(self, resolver, store, make_price, make_product):
        await store.upsert("products", make_product("prod-1", "Cup", category_id="P09080301"))
        await store.upsert("reference_prices", make_price("ancestor", category_id="P0908"))
        await store.upsert("reference_prices", make_price("leaf", category_id="P09080301"))

        matches = await resolver.resolve_prices(product_id="prod-1")

        assert [m.reference_price_id for m in matches] == ["leaf", "ancestor"]
        assert [m.match_type for m in matches] == [MatchType.CATEGORY_LEAF, MatchType.CATEGORY_ANCESTOR]
        assert matches[0].match_score == Decimal("0.90")
        assert matches[1].distance == 2
        assert matches[1].match_score == Decimal("0.70")

    @pytest.mark.asyncio
    async def test_leaf_category_is_effective(self, resolver, store, make_price):
        await store.upsert(
            "reference_prices",
            make_price("narrowed", category_id="P0908", leaf_category_id="P09080301"),
        )

        matches = await resolver.resolve_prices(category_id="P09080301")

        assert len(matches) == 1
        assert matches[0].match_type is MatchType.CATEGORY_LEAF

    @pytest.mark.asyncio
    async def test_prices_below_category_are_not_returned(self, resolver, store, make_price):
        await store.upsert("reference_prices", make_price("deeper", category_id="P09080301"))
        assert await resolver.resolve_prices(category_id="P0908") == []

    @pytest.mark.asyncio
    async def test_product_link_first_and_deduplicated(self, resolver, store, make_price, make_product):
        await store.upsert("products", make_product("prod-1", "Cup", category_id="P09080301"))
        await store.upsert(
            "reference_prices",
            make_price("linked", category_id="P09080301", product_id="prod-1", price_amount=Decimal("5000")),
        )
        await store.upsert("reference_prices", make_price("leaf", category_id="P09080301"))

        matches = await resolver.resolve_prices(product_id="prod-1")

        assert [m.reference_price_id for m in matches] == ["linked", "leaf"]
        assert matches[0].match_type is MatchType.PRODUCT_MATCH
        assert matches[0].match_score == Decimal("1.00")

    @pytest.mark.asyncio
    async def test_same_tier_sorted_by_price(self, resolver, store, make_price):
        await store.upsert("reference_prices", make_price("b", category_id="P0908", price_amount=Decimal("900")))
        await store.upsert("reference_prices", make_price("a", category_id="P0908", price_amount=Decimal("1200")))

        matches = await resolver.resolve_prices(category_id="P0908")

        assert [m.reference_price_id for m in matches] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_split_price_is_flagged(self, resolver, store, make_price):
        await store.upsert(
            "reference_prices",
            make_price(
                "split",
                source_country="FR",
                category_id="P0909",
                component_description="Genou, cale de rattrapage (Part 1/2)",
            ),
        )

        matches = await resolver.resolve_prices(category_id="P0909")

        assert len(matches) == 1
        assert matches[0].is_partial is True
        assert matches[0].note == split_price_note("1", "2")

    @pytest.mark.asyncio
    async def test_slovak_split_price(self, resolver, store, make_price):
        await store.upsert(
            "reference_prices",
            make_price("split", category_id="P0908", component_description="Endoprotéza, časť 2/3"),
        )
        matches = await resolver.resolve_prices(category_id="P0908")
        assert matches[0].note == split_price_note("2", "3")

    @pytest.mark.asyncio
    async def test_split_note_from_notes(self, resolver, store, make_price):
        note = split_price_note("1", "2")
        await store.upsert(
            "reference_prices",
            make_price("split", category_id="P0908", notes=f"[classified] subcode=-; {note}"),
        )
        matches = await resolver.resolve_prices(category_id="P0908")
        assert matches[0].is_partial is True
        assert matches[0].note == note

    @pytest.mark.asyncio
    async def test_country_filter(self, resolver, store, make_price):
        await store.upsert("reference_prices", make_price("sk", category_id="P0908", source_country="SK"))
        await store.upsert("reference_prices", make_price("fr", category_id="P0908", source_country="FR"))

        matches = await resolver.resolve_prices(category_id="P0908", countries=["FR"])

        assert [m.reference_price_id for m in matches] == ["fr"]

    @pytest.mark.asyncio
    async def test_unknown_product_uses_category(self, resolver, store, make_price):
        await store.upsert("reference_prices", make_price("leaf", category_id="P0908"))
        matches = await resolver.resolve_prices(product_id="missing", category_id="P0908")
        assert [m.reference_price_id for m in matches] == ["leaf"]

    @pytest.mark.asyncio
    async def test_unknown_category_is_empty(self, resolver):
        assert await resolver.resolve_prices(category_id="missing") == []


class TestScoreProductMatch:
    """Tests for score_product_match()."""

    @pytest.fixture
    def brands(self, engine: EngineContext) -> dict[str, tuple[str, ...]]:
        return engine.config.brand_keywords

    def test_same_category(self, hierarchy: HierarchyStore, brands, make_price, make_product):
        product = make_product("p", "Cup 54", category_id="P09080301")
        result = score_product_match(product, make_price("r", category_id="P09080301"), hierarchy, brands)

        assert result.score == Decimal("0.50")
        assert result.match_type is MatchType.CATEGORY_LEAF
        assert result.reason == "exact category depth"

    def test_ancestor_depth(self, hierarchy: HierarchyStore, brands, make_price, make_product):
        product = make_product("p", "Cup 54", category_id="P09080301")

        two_up = score_product_match(product, make_price("r", category_id="P0908"), hierarchy, brands)
        three_up = score_product_match(product, make_price("r", category_id="P09"), hierarchy, brands)

        assert two_up.score == Decimal("0.40")
        assert two_up.match_type is MatchType.CATEGORY_ANCESTOR
        assert three_up.score == Decimal("0.30")
        assert three_up.reason == "category ancestor"

    def test_brand_match(self, hierarchy: HierarchyStore, brands, make_price, make_product):
        product = make_product("p", "Avenir Complete stem", category_id="P09080301")
        price = make_price("r", category_id="P09080301", manufacturer_name="ZIM")

        result = score_product_match(product, price, hierarchy, brands)

        assert result.score == Decimal("0.80")
        assert "brand match: avenir" in result.reason

    def test_keyword_match(self, hierarchy: HierarchyStore, brands, make_price, make_product):
        product = make_product("p", "Acetabular shell 54", category_id="P09080301")
        price = make_price(
            "r",
            category_id="P09080301",
            manufacturer_name="STR",
            component_description="Trident acetabular shell",
        )

        result = score_product_match(product, price, hierarchy, brands)

        assert result.score == Decimal("0.65")
        assert "keyword: acetabular" in result.reason

    def test_other_branch_is_none(self, hierarchy: HierarchyStore, brands, make_price, make_product):
        product = make_product("p", "Cup", category_id="P09080301")
        assert score_product_match(product, make_price("r", category_id="P0909"), hierarchy, brands) is None

    def test_more_specific_price_is_none(self, hierarchy: HierarchyStore, brands, make_price, make_product):
        product = make_product("p", "Hip", category_id="P0908")
        assert score_product_match(product, make_price("r", category_id="P09080301"), hierarchy, brands) is None

    def test_uncategorised_is_none(self, hierarchy: HierarchyStore, brands, make_price, make_product):
        product = make_product("p", "Cup")
        assert score_product_match(product, make_price("r", category_id="P0908"), hierarchy, brands) is None
