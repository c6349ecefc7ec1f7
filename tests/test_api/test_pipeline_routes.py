"""Tests for the pipeline endpoints."""

import pytest
from httpx import AsyncClient

from device_pricing.infra.memory_store import MemoryStore
from device_pricing.pipelines import DEFAULT_SEQUENCE


class TestPipelineRoutes:

    @pytest.mark.asyncio
    async def test_list(self, client: AsyncClient):
        response = await client.get("/pipelines")

        assert response.status_code == 200
        data = response.json()
        assert data["default_sequence"] == DEFAULT_SEQUENCE
        assert set(DEFAULT_SEQUENCE) <= set(data["pipelines"])

    @pytest.mark.asyncio
    async def test_run_defaults_to_dry_run(
        self, client: AsyncClient, store: MemoryStore, make_price
    ):
        await store.upsert("reference_prices", make_price("p1", source_code="XC1.17/X01203"))
        writes = store.write_count

        response = await client.post("/pipelines/classify_reference_prices/run", json={})

        assert response.status_code == 200
        report = response.json()
        assert report["dry_run"] is True
        assert report["changed_ids"] == ["p1"]
        assert report["written"] == 0
        assert report["changes"][0]["after"]["xc_subcode"] == "XC1.17"
        assert store.write_count == writes

    @pytest.mark.asyncio
    async def test_run_and_write(self, client: AsyncClient, store: MemoryStore, make_price):
        await store.upsert("reference_prices", make_price("p1", source_code="XC1.17/X01203"))

        response = await client.post(
            "/pipelines/classify_reference_prices/run", json={"dry_run": False, "batch_size": 10}
        )

        assert response.json()["written"] == 1
        assert store.rows("reference_prices")[0]["component_type"] == "single_component"

    @pytest.mark.asyncio
    async def test_unknown_pipeline(self, client: AsyncClient):
        response = await client.post("/pipelines/nope/run", json={})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_options(self, client: AsyncClient):
        response = await client.post(
            "/pipelines/classify_products/run", json={"batch_size": 0}
        )
        assert response.status_code == 422
