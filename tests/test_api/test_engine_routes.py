"""Tests for the engine endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from device_pricing.api.deps import get_extraction
from device_pricing.infra.memory_store import MemoryStore
from device_pricing.main import app
from device_pricing.services.extraction_client import (
    ExtractedProduct,
    ExtractionFound,
    ExtractionUnavailable,
    SuggestionSource,
)


@pytest.fixture
def extraction():
    """Extraction client stub wired through dependency overrides."""
    stub = AsyncMock()
    app.dependency_overrides[get_extraction] = lambda: stub
    yield stub
    app.dependency_overrides.pop(get_extraction, None)


class TestClassify:

    @pytest.mark.asyncio
    async def test_rule_match(self, client: AsyncClient):
        response = await client.post("/classify", json={"text": "Taperloc Complete stem"})

        assert response.status_code == 200
        data = response.json()
        assert data["matched"] is True
        assert data["code"] == "P090804010201"
        assert data["confidence"] == "high"
        assert data["rule_priority"] == 95

    @pytest.mark.asyncio
    async def test_no_match(self, client: AsyncClient):
        response = await client.post("/classify", json={"text": "Surgical gloves"})
        assert response.json() == {
            "matched": False,
            "code": None,
            "name": None,
            "confidence": None,
            "rule_priority": None,
        }

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, client: AsyncClient):
        response = await client.post("/classify", json={"text": ""})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_extraction_suggestion_used(self, client: AsyncClient, extraction: AsyncMock):
        extraction.extract.return_value = ExtractionFound(
            record=ExtractedProduct(
                name="Persona tibial plate",
                suggested_category_code="P0909030201",
                source=SuggestionSource.DOCUMENT,
            )
        )

        response = await client.post(
            "/classify", json={"text": "Persona tibial plate", "use_extraction": True}
        )

        data = response.json()
        assert data["code"] == "P0909030201"
        assert data["confidence"] == "high"
        assert data["rule_priority"] is None
        extraction.extract.assert_awaited_once_with("Persona tibial plate")

    @pytest.mark.asyncio
    async def test_extraction_unavailable_falls_back(
        self, client: AsyncClient, extraction: AsyncMock
    ):
        extraction.extract.return_value = ExtractionUnavailable(reason="timeout")

        response = await client.post(
            "/classify", json={"text": "Taperloc Complete stem", "use_extraction": True}
        )

        assert response.json()["code"] == "P090804010201"
        assert response.json()["rule_priority"] == 95


class TestMapCode:

    @pytest.mark.asyncio
    async def test_single_component(self, client: AsyncClient):
        response = await client.post("/map-code", json={"source_code": "XC1.17/X01203"})

        assert response.json() == {
            "xc_subcode": "XC1.17",
            "component_type": "single_component",
            "leaf_code": "P09080405",
            "reverted": False,
        }

    @pytest.mark.asyncio
    async def test_complete_set_has_no_leaf(self, client: AsyncClient):
        response = await client.post("/map-code", json={"source_code": "XC1.1"})

        data = response.json()
        assert data["component_type"] == "set"
        assert data["leaf_code"] is None
        assert data["reverted"] is True

    @pytest.mark.asyncio
    async def test_no_code(self, client: AsyncClient):
        response = await client.post("/map-code", json={})
        assert response.json()["component_type"] == "other"
        assert response.json()["xc_subcode"] is None


class TestPrices:

    @pytest.mark.asyncio
    async def test_requires_an_id(self, client: AsyncClient):
        response = await client.post("/prices", json={})

        assert response.status_code == 422
        assert response.json()["error_type"] == "InvalidArgument"

    @pytest.mark.asyncio
    async def test_unknown_category_is_empty(self, client: AsyncClient):
        response = await client.post("/prices", json={"category_id": "missing"})
        assert response.status_code == 200
        assert response.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_leaf_and_ancestor(self, client: AsyncClient, store: MemoryStore, make_price):
        await store.upsert("reference_prices", make_price("leaf", category_id="P09080301"))
        await store.upsert(
            "reference_prices",
            make_price("hip", category_id="P0908", source_country="CZ", price_amount=Decimal("9000")),
        )

        response = await client.post(
            "/prices", json={"category_id": "P09080301", "countries": ["sk", "cz"]}
        )

        data = response.json()
        assert data["count"] == 2
        leaf, hip = data["matches"]
        assert leaf["reference_price_id"] == "leaf"
        assert leaf["match_type"] == "category_leaf"
        assert Decimal(leaf["match_score"]) == Decimal("0.90")
        assert hip["match_type"] == "category_ancestor"
        assert hip["distance"] == 2
        assert Decimal(hip["match_score"]) == Decimal("0.70")

    @pytest.mark.asyncio
    async def test_country_filter(self, client: AsyncClient, store: MemoryStore, make_price):
        await store.upsert("reference_prices", make_price("leaf", category_id="P09080301"))

        response = await client.post(
            "/prices", json={"category_id": "P09080301", "countries": ["FR"]}
        )

        assert response.json()["count"] == 0


class TestEstimate:

    @pytest.mark.asyncio
    async def test_found(self, client: AsyncClient):
        response = await client.post(
            "/estimate", json={"category_code": "P090801", "set_price": "2000"}
        )

        data = response.json()
        assert data["found"] is True
        assert Decimal(data["min"]) == Decimal("600.00")
        assert Decimal(data["max"]) == Decimal("700.00")
        assert data["label"] == "femoral stem"
        assert data["estimated"] is True

    @pytest.mark.asyncio
    async def test_not_found(self, client: AsyncClient):
        response = await client.post("/estimate", json={"category_code": "P0912", "set_price": 100})
        assert response.json()["found"] is False

    @pytest.mark.asyncio
    async def test_price_must_be_positive(self, client: AsyncClient):
        response = await client.post("/estimate", json={"category_code": "P090801", "set_price": 0})
        assert response.status_code == 422
