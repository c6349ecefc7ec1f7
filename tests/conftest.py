"""Shared fixtures: packaged scheme and rules, in-memory store, API client."""

from collections.abc import AsyncGenerator, Callable
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from device_pricing.config import DEFAULT_ENGINE_CONFIG
from device_pricing.core.engine import EngineContext
from device_pricing.core.engine_config import EngineConfig
from device_pricing.core.hierarchy import HierarchyStore, build_nodes, read_scheme
from device_pricing.infra.memory_store import MemoryStore
from device_pricing.pipelines import PipelineRegistry, register_all_pipelines


@pytest.fixture(scope="session")
def engine_config() -> EngineConfig:
    """Packaged engine tables."""
    return EngineConfig.from_yaml(DEFAULT_ENGINE_CONFIG.read_text(encoding="utf-8"))


@pytest.fixture(scope="session")
def hierarchy() -> HierarchyStore:
    """Packaged scheme with node ids equal to codes."""
    return HierarchyStore(build_nodes(read_scheme()))


@pytest.fixture(scope="session")
def engine(engine_config: EngineConfig, hierarchy: HierarchyStore) -> EngineContext:
    return EngineContext.build(engine_config, hierarchy)


def _price_row(price_id: str, **fields: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": price_id,
        "price_amount": Decimal("1000.00"),
        "price_original": None,
        "currency_original": None,
        "source_country": "SK",
        "source_name": "VZP",
        "source_code": None,
        "xc_subcode": None,
        "manufacturer_name": None,
        "component_type": None,
        "price_scope": "component",
        "product_id": None,
        "category_id": None,
        "leaf_category_id": None,
        "component_description": None,
        "notes": None,
    }
    row.update(fields)
    return row


def _product_row(product_id: str, name: str, **fields: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": product_id,
        "name": name,
        "sku": None,
        "manufacturer_name": None,
        "description": None,
        "category_id": None,
    }
    row.update(fields)
    return row


@pytest.fixture
def make_price() -> Callable[..., dict[str, Any]]:
    """Factory for reference price rows with sensible defaults."""
    return _price_row


@pytest.fixture
def make_product() -> Callable[..., dict[str, Any]]:
    return _product_row


@pytest.fixture
def store(hierarchy: HierarchyStore) -> MemoryStore:
    """Store holding the packaged categories and nothing else."""
    return MemoryStore({"categories": [node.as_dict() for node in hierarchy.nodes()]})


@pytest.fixture
def registered_pipelines() -> None:
    PipelineRegistry._pipelines = {}
    register_all_pipelines()


@pytest_asyncio.fixture
async def client(
    engine: EngineContext,
    store: MemoryStore,
    registered_pipelines: None,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the engine and an in-memory store."""
    from device_pricing.main import app

    app.state.engine = engine
    app.state.store = store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.state.engine = None
    app.state.store = None
