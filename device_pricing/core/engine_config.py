"""Engine Configuration - immutable lookup tables for the engine.

Classification rules, subcode mapping tables, correction overrides,
component fractions and set templates are loaded from one YAML file:
1. Settings.engine_config_path (defaults to the packaged data/engine.yaml)
2. An explicit path passed to the loader (tests, alternate rule sets)

The parsed EngineConfig is frozen and passed explicitly to each component.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from device_pricing.config import settings
from device_pricing.core.enums import ComponentType
from device_pricing.core.errors import IntegrityViolation
from device_pricing.infra.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClassificationRule:
    """Keyword rule assigning a hierarchy code to free text."""

    target_code: str
    keywords: tuple[str, ...]
    priority: int
    exclude_keywords: tuple[str, ...] = field(default_factory=tuple)
    name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClassificationRule":
        """Create from dictionary."""
        return cls(
            target_code=data["code"],
            keywords=tuple(k.lower() for k in data.get("keywords", [])),
            priority=int(data["priority"]),
            exclude_keywords=tuple(k.lower() for k in data.get("exclude", [])),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class ConfidenceThresholds:
    """Priority cut-offs for the high and medium confidence buckets."""

    high: int = 90
    medium: int = 70

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConfidenceThresholds":
        """Create from dictionary."""
        return cls(high=int(data.get("high", 90)), medium=int(data.get("medium", 70)))


@dataclass(frozen=True)
class SubcodeRule:
    """Ordered regex rule deriving a component type from a subcode."""

    pattern: re.Pattern[str]
    component_type: ComponentType

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubcodeRule":
        """Create from dictionary."""
        return cls(
            pattern=re.compile(data["pattern"]),
            component_type=ComponentType(data["type"]),
        )


@dataclass(frozen=True)
class DescriptionScheme:
    """Description-pattern rules for a country scheme without subcodes."""

    source_names: frozenset[str]
    rules: tuple[SubcodeRule, ...]
    default: ComponentType

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DescriptionScheme":
        """Create from dictionary."""
        return cls(
            source_names=frozenset(data.get("source_names", [])),
            rules=tuple(
                SubcodeRule(
                    pattern=re.compile(rule["pattern"], re.IGNORECASE),
                    component_type=ComponentType(rule["type"]),
                )
                for rule in data.get("rules", [])
            ),
            default=ComponentType(data.get("default", ComponentType.SINGLE_COMPONENT.value)),
        )


@dataclass(frozen=True)
class CorrectionOverrides:
    """Authoritative fixes applied after the initial mapping pass."""

    revert_leaf_subcodes: frozenset[str] = field(default_factory=frozenset)
    component_type_fixes: dict[str, ComponentType] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CorrectionOverrides":
        """Create from dictionary."""
        return cls(
            revert_leaf_subcodes=frozenset(data.get("revert_leaf", [])),
            component_type_fixes={
                subcode: ComponentType(value)
                for subcode, value in data.get("component_type_fixes", {}).items()
            },
        )


@dataclass(frozen=True)
class FractionEntry:
    """Share of a set price attributable to one component class."""

    code_prefix: str
    fraction_min: Decimal
    fraction_max: Decimal
    label: str

    @classmethod
    def from_dict(cls, code_prefix: str, data: dict[str, Any]) -> "FractionEntry":
        """Create from dictionary."""
        low, high = data["fraction"]
        return cls(
            code_prefix=code_prefix,
            fraction_min=Decimal(str(low)),
            fraction_max=Decimal(str(high)),
            label=data["label"],
        )


@dataclass(frozen=True)
class SetComponent:
    """One component of a set template."""

    code: str
    fraction: Decimal
    label: str


@dataclass(frozen=True)
class SetTemplate:
    """Split of a complete kit into component price shares."""

    name: str
    category_prefix: str
    components: tuple[SetComponent, ...]

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "SetTemplate":
        """Create from dictionary."""
        return cls(
            name=name,
            category_prefix=data["category_prefix"],
            components=tuple(
                SetComponent(
                    code=component["code"],
                    fraction=Decimal(str(component["fraction"])),
                    label=component["label"],
                )
                for component in data.get("components", [])
            ),
        )

    @property
    def fraction_total(self) -> Decimal:
        return sum((c.fraction for c in self.components), Decimal("0"))


@dataclass(frozen=True)
class EngineConfig:
    """Complete lookup-table configuration for the engine.

    Loaded from YAML; never mutated after construction.
    """

    version: str
    classification_rules: tuple[ClassificationRule, ...]
    confidence: ConfidenceThresholds
    subcode_pattern: re.Pattern[str]
    subcode_rules: tuple[SubcodeRule, ...]
    family_component_types: dict[str, ComponentType]
    description_schemes: tuple[DescriptionScheme, ...]
    leaf_map: dict[str, str]
    corrections: CorrectionOverrides
    split_price_pattern: re.Pattern[str]
    fractions: dict[str, FractionEntry]
    min_prefix_length: int
    set_templates: tuple[SetTemplate, ...]
    brand_keywords: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "EngineConfig":
        """Parse YAML content into EngineConfig.

        Args:
            yaml_content: Raw YAML string

        Returns:
            Parsed EngineConfig

        Raises:
            IntegrityViolation: If a table is malformed
        """
        data = yaml.safe_load(yaml_content) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineConfig":
        """Create from dictionary."""
        classification = data.get("classification", {})
        component_types = data.get("component_types", {})
        fractions_data = data.get("fractions", {})

        try:
            config = cls(
                version=str(data.get("version", "0.0.0")),
                classification_rules=tuple(
                    ClassificationRule.from_dict(rule)
                    for rule in classification.get("rules", [])
                ),
                confidence=ConfidenceThresholds.from_dict(classification.get("confidence", {})),
                subcode_pattern=re.compile(
                    data.get("subcode_pattern", r"^([A-Z]{2}\d+(?:\.\d+)*)")
                ),
                subcode_rules=tuple(
                    SubcodeRule.from_dict(rule) for rule in component_types.get("subcode_rules", [])
                ),
                family_component_types={
                    family: ComponentType(value)
                    for family, value in component_types.get("families", {}).items()
                },
                description_schemes=tuple(
                    DescriptionScheme.from_dict(scheme)
                    for scheme in component_types.get("description_schemes", [])
                ),
                leaf_map=dict(data.get("leaf_map", {})),
                corrections=CorrectionOverrides.from_dict(data.get("corrections", {})),
                split_price_pattern=re.compile(
                    data.get("split_price_pattern", r"part\s*(\d+)\s*/\s*(\d+)"),
                    re.IGNORECASE,
                ),
                fractions={
                    prefix: FractionEntry.from_dict(prefix, entry)
                    for prefix, entry in fractions_data.get("table", {}).items()
                },
                min_prefix_length=int(fractions_data.get("min_prefix_length", 6)),
                set_templates=tuple(
                    SetTemplate.from_dict(name, template)
                    for name, template in data.get("set_templates", {}).items()
                ),
                brand_keywords={
                    code: tuple(k.lower() for k in keywords)
                    for code, keywords in data.get("brand_keywords", {}).items()
                },
            )
        except (KeyError, TypeError, ValueError, re.error) as e:
            raise IntegrityViolation(f"Malformed engine config: {e}") from e

        problems = config.validate()
        if problems:
            raise IntegrityViolation("Invalid engine config", problems)
        return config

    def validate(self) -> list[str]:
        """Check table consistency that does not need the hierarchy."""
        problems: list[str] = []

        if self.confidence.high < self.confidence.medium:
            problems.append("confidence.high must be >= confidence.medium")

        for entry in self.fractions.values():
            if not (0 <= entry.fraction_min <= entry.fraction_max <= 1):
                problems.append(f"fraction range for {entry.code_prefix} must satisfy 0 <= min <= max <= 1")

        for template in self.set_templates:
            if not template.components:
                problems.append(f"set template {template.name} has no components")
            for component in template.components:
                if not component.code.startswith(template.category_prefix):
                    problems.append(
                        f"set template {template.name}: {component.code} is outside "
                        f"{template.category_prefix}"
                    )

        for subcode in self.corrections.revert_leaf_subcodes:
            if not self.subcode_pattern.match(subcode):
                problems.append(f"revert list entry {subcode} is not a valid subcode")

        return problems

    def referenced_codes(self) -> set[str]:
        """Hierarchy codes the tables point at, for startup validation."""
        codes = {rule.target_code for rule in self.classification_rules}
        codes.update(self.leaf_map.values())
        for template in self.set_templates:
            codes.update(c.code for c in template.components)
        return codes


class EngineConfigLoader:
    """Loads engine configuration from YAML files."""

    def __init__(self) -> None:
        self._cache: dict[Path, EngineConfig] = {}

    def load(self, path: Path | str | None = None) -> EngineConfig:
        """Load engine configuration.

        Args:
            path: YAML file. Defaults to settings.engine_config_path.

        Returns:
            Loaded EngineConfig

        Raises:
            FileNotFoundError: If the file does not exist
            IntegrityViolation: If the config is invalid
        """
        config_path = Path(path or settings.engine_config_path).resolve()

        if config_path in self._cache:
            logger.debug("Using cached engine config", path=str(config_path))
            return self._cache[config_path]

        if not config_path.exists():
            raise FileNotFoundError(f"Engine config not found: {config_path}")

        config = EngineConfig.from_yaml(config_path.read_text(encoding="utf-8"))

        self._cache[config_path] = config
        logger.info(
            "Engine config loaded",
            path=str(config_path),
            version=config.version,
            classification_rules=len(config.classification_rules),
            leaf_mappings=len(config.leaf_map),
            fraction_entries=len(config.fractions),
            set_templates=[t.name for t in config.set_templates],
        )

        return config

    def clear_cache(self) -> None:
        """Clear the config cache."""
        self._cache.clear()
        logger.info("Engine config cache cleared")


# Singleton loader
_loader: EngineConfigLoader | None = None


def get_config_loader() -> EngineConfigLoader:
    """Get the singleton config loader."""
    global _loader
    if _loader is None:
        _loader = EngineConfigLoader()
    return _loader


def load_engine_config(path: Path | str | None = None) -> EngineConfig:
    """Convenience function to load the engine config."""
    return get_config_loader().load(path)
