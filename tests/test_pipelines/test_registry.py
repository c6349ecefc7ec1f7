"""Tests for PipelineRegistry."""

import pytest

from device_pricing.core.engine import EngineContext
from device_pricing.infra.memory_store import MemoryStore
from device_pricing.pipelines import DEFAULT_SEQUENCE, PipelineRegistry
from device_pricing.pipelines.base import PipelineOptions
from device_pricing.pipelines.decompose_sets import DecomposeSetsPipeline


@pytest.mark.usefixtures("registered_pipelines")
class TestPipelineRegistry:

    def test_default_sequence_registered(self):
        assert set(DEFAULT_SEQUENCE) <= set(PipelineRegistry.available_pipelines())

    def test_get_builds_new_instance(self, engine: EngineContext, store: MemoryStore):
        options = PipelineOptions(dry_run=True, batch_size=7)

        first = PipelineRegistry.get("decompose_sets", engine, store, options)
        second = PipelineRegistry.get("decompose_sets", engine, store, options)

        assert isinstance(first, DecomposeSetsPipeline)
        assert first is not second
        assert first.batch_size == 7
        assert first.options.dry_run is True

    def test_get_unknown(self, engine: EngineContext, store: MemoryStore):
        with pytest.raises(ValueError, match="not found in registry"):
            PipelineRegistry.get("nope", engine, store)

    def test_build_sequence_keeps_order(self, engine: EngineContext, store: MemoryStore):
        names = ["map_leaf_categories", "classify_reference_prices"]

        pipelines = PipelineRegistry.build_sequence(names, engine, store)

        assert [p.name for p in pipelines] == names

    @pytest.mark.parametrize("name,pipeline_class", [("", DecomposeSetsPipeline), ("x", object)])
    def test_register_rejects_invalid(self, name, pipeline_class):
        with pytest.raises(ValueError):
            PipelineRegistry.register(name, pipeline_class)
