"""Registry for looking up batch pipelines by name."""

from device_pricing.core.engine import EngineContext
from device_pricing.infra.store import Store
from device_pricing.pipelines.base import BatchPipeline, PipelineOptions


class PipelineRegistry:
    """Registry for batch pipelines.

    Allows registering pipelines by name and building them for a run
    from the CLI or the API.
    """

    _pipelines: dict[str, type[BatchPipeline]] = {}

    @classmethod
    def register(cls, name: str, pipeline_class: type[BatchPipeline]) -> None:
        """Register a pipeline.

        Args:
            name: Unique identifier for the pipeline
            pipeline_class: BatchPipeline class (not instance)

        Raises:
            ValueError: If name is empty or pipeline_class is not a BatchPipeline subclass
        """
        if not name or not isinstance(name, str):
            raise ValueError(f"Pipeline name must be a non-empty string, got {name}")

        if not isinstance(pipeline_class, type) or not issubclass(pipeline_class, BatchPipeline):
            raise ValueError(
                f"pipeline_class must be a BatchPipeline subclass, got {pipeline_class}"
            )

        cls._pipelines[name] = pipeline_class

    @classmethod
    def get(
        cls,
        name: str,
        engine: EngineContext,
        store: Store,
        options: PipelineOptions | None = None,
    ) -> BatchPipeline:
        """Get a new instance of a registered pipeline.

        Raises:
            ValueError: If pipeline not found in registry
        """
        if name not in cls._pipelines:
            raise ValueError(f"Pipeline '{name}' not found in registry")

        return cls._pipelines[name](engine, store, options)

    @classmethod
    def build_sequence(
        cls,
        names: list[str],
        engine: EngineContext,
        store: Store,
        options: PipelineOptions | None = None,
    ) -> list[BatchPipeline]:
        """Build pipelines for a list of names, in the given order.

        Raises:
            ValueError: If any name is not found in registry
        """
        return [cls.get(name, engine, store, options) for name in names]

    @classmethod
    def available_pipelines(cls) -> list[str]:
        """Get list of all registered pipeline names."""
        return list(cls._pipelines.keys())
