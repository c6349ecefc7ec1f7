"""Engine context - the wired set of engine components.

Built once at startup from an EngineConfig and a HierarchyStore. Building
it validates every lookup table against the hierarchy, so an inconsistent
deployment fails before any work is accepted.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from device_pricing.core.classifier import Classification, RuleClassifier
from device_pricing.core.code_mapper import CodeMapper, CodeMapping
from device_pricing.core.decomposition import SetDecomposer
from device_pricing.core.engine_config import EngineConfig, load_engine_config
from device_pricing.core.fractions import ComponentEstimate, FractionEstimator
from device_pricing.core.hierarchy import HierarchyStore, import_scheme, load_hierarchy, read_scheme
from device_pricing.core.resolver import PriceMatch, PriceResolver
from device_pricing.infra.logging import get_logger
from device_pricing.infra.store import Store

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineContext:
    """Immutable bundle passed to pipelines and API handlers."""

    config: EngineConfig
    hierarchy: HierarchyStore
    classifier: RuleClassifier
    mapper: CodeMapper
    estimator: FractionEstimator
    decomposer: SetDecomposer

    @classmethod
    def build(cls, config: EngineConfig, hierarchy: HierarchyStore) -> "EngineContext":
        """Wire and validate all components.

        Raises:
            IntegrityViolation: If any table references a missing code
        """
        context = cls(
            config=config,
            hierarchy=hierarchy,
            classifier=RuleClassifier(
                config.classification_rules,
                hierarchy=hierarchy,
                thresholds=config.confidence,
            ),
            mapper=CodeMapper(config, hierarchy),
            estimator=FractionEstimator(config.fractions, config.min_prefix_length),
            decomposer=SetDecomposer(config.set_templates, hierarchy),
        )
        logger.info(
            "Engine context built",
            config_version=config.version,
            category_count=len(hierarchy),
        )
        return context

    def resolver(self, store: Store) -> PriceResolver:
        return PriceResolver(store, self.hierarchy, self.config.split_price_pattern)

    def classify(self, text: str, manufacturer_name: str | None = None) -> Classification | None:
        return self.classifier.classify(text, manufacturer_name)

    def map_external_code(
        self,
        source_code: str | None,
        source_name: str | None = None,
        description: str | None = None,
    ) -> CodeMapping:
        return self.mapper.map_external_code(source_code, source_name, description)

    async def resolve_prices(
        self,
        store: Store,
        product_id: str | None = None,
        category_id: str | None = None,
        countries: Sequence[str] | None = None,
    ) -> list[PriceMatch]:
        return await self.resolver(store).resolve_prices(product_id, category_id, countries)

    def estimate_component(
        self, category_code: str, set_price: Decimal | float | int
    ) -> ComponentEstimate | None:
        return self.estimator.estimate(category_code, set_price)


async def load_engine(
    store: Store,
    config_path: Path | str | None = None,
    scheme_path: Path | str | None = None,
) -> EngineContext:
    """Load config and hierarchy from their sources and build the context.

    When `scheme_path` is given and the categories table is empty, the
    scheme is imported first.

    Raises:
        FileNotFoundError: If the config file does not exist
        IntegrityViolation: If any table or the hierarchy is inconsistent
    """
    config = load_engine_config(config_path)
    hierarchy = await load_hierarchy(store)
    if len(hierarchy) == 0 and scheme_path is not None:
        logger.info("Categories table empty, importing scheme", scheme_path=str(scheme_path))
        await import_scheme(store, read_scheme(scheme_path))
        hierarchy = await load_hierarchy(store)
    return EngineContext.build(config, hierarchy)
