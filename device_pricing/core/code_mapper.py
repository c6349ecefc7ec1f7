"""Cross-Scheme Code Mapper.

Bridges external tariff codes onto the classification hierarchy:
- extracts the canonical subcode from a raw tariff code
- derives the component type from the subcode (or from the description
  for country schemes without subcodes)
- narrows a broad category to a leaf when the subcode has a mapping

Correction overrides are applied at derivation time, so a freshly mapped
row and a corrected row always agree.
"""

import re
from dataclasses import dataclass

from device_pricing.core.engine_config import EngineConfig
from device_pricing.core.enums import ComponentType
from device_pricing.core.errors import IntegrityViolation, NotFound, ValidationFailure
from device_pricing.core.hierarchy import CategoryNode, HierarchyStore
from device_pricing.infra.logging import get_logger

logger = get_logger(__name__)

FAMILY_PATTERN = re.compile(r"^([A-Z]+\d+)")


@dataclass(frozen=True)
class CodeMapping:
    """Derived fields for one external code."""

    subcode: str | None
    component_type: ComponentType


def extract_subcode(source_code: str | None, pattern: re.Pattern[str]) -> str | None:
    """Canonical subcode of a raw tariff code.

    "XC1.17/X01203" -> "XC1.17". Applying it to its own output returns
    the same value.
    """
    if not source_code:
        return None
    match = pattern.match(source_code.strip())
    return match.group(1) if match else None


def subcode_family(subcode: str) -> str | None:
    """Family prefix of a subcode ("XC4.12" -> "XC4")."""
    match = FAMILY_PATTERN.match(subcode)
    return match.group(1) if match else None


class CodeMapper:
    """Maps external tariff codes onto hierarchy nodes.

    Every leaf target is checked against the hierarchy at construction;
    a missing target raises IntegrityViolation and the mapper is not built.
    """

    def __init__(self, config: EngineConfig, hierarchy: HierarchyStore) -> None:
        self._config = config
        self._hierarchy = hierarchy

        missing = sorted(
            f"{subcode} -> {code}"
            for subcode, code in config.leaf_map.items()
            if not hierarchy.has_code(code)
        )
        if missing:
            raise IntegrityViolation("Leaf mapping targets missing from hierarchy", missing)

        self._leaves: dict[str, CategoryNode] = {
            subcode: hierarchy.get_by_code(code) for subcode, code in config.leaf_map.items()
        }

        logger.info(
            "Code mapper ready",
            leaf_mappings=len(self._leaves),
            subcode_rules=len(config.subcode_rules),
            reverted_subcodes=len(config.corrections.revert_leaf_subcodes),
        )

    def extract_subcode(self, source_code: str | None) -> str | None:
        return extract_subcode(source_code, self._config.subcode_pattern)

    def component_type_for(
        self,
        subcode: str | None,
        source_code: str | None,
        source_name: str | None = None,
        description: str | None = None,
    ) -> ComponentType:
        """Component type for a subcode, or for a description when there is none."""
        if not source_code:
            return ComponentType.OTHER

        if subcode is None:
            for scheme in self._config.description_schemes:
                if source_name not in scheme.source_names:
                    continue
                for rule in scheme.rules:
                    if description and rule.pattern.search(description):
                        return rule.component_type
                return scheme.default
            return ComponentType.OTHER

        fixed = self._config.corrections.component_type_fixes.get(subcode)
        if fixed is not None:
            return fixed

        for rule in self._config.subcode_rules:
            if rule.pattern.search(subcode):
                return rule.component_type

        family = subcode_family(subcode)
        if family is not None and family in self._config.family_component_types:
            return self._config.family_component_types[family]
        return ComponentType.OTHER

    def map_external_code(
        self,
        source_code: str | None,
        source_name: str | None = None,
        description: str | None = None,
    ) -> CodeMapping:
        """Derive subcode and component type from a raw tariff code."""
        subcode = self.extract_subcode(source_code)
        return CodeMapping(
            subcode=subcode,
            component_type=self.component_type_for(subcode, source_code, source_name, description),
        )

    def is_reverted(self, subcode: str | None) -> bool:
        """Whether the subcode prices a complete kit and must not carry a leaf."""
        return subcode is not None and subcode in self._config.corrections.revert_leaf_subcodes

    def resolve_leaf(self, subcode: str | None) -> CategoryNode | None:
        """Leaf node for a subcode, or None when there is no positive evidence."""
        if subcode is None or self.is_reverted(subcode):
            return None
        return self._leaves.get(subcode)

    def narrow(self, row_id: str, subcode: str | None, category_id: str | None) -> str | None:
        """Leaf id for a reference price row.

        Returns None when the subcode has no mapping; the row keeps its
        broad classification.

        Raises:
            ValidationFailure: If the leaf would not be the broad category
                or one of its descendants
        """
        leaf = self.resolve_leaf(subcode)
        if leaf is None:
            return None
        if category_id is None:
            return leaf.id

        try:
            narrows = self._hierarchy.is_descendant_or_self(leaf.id, category_id)
        except NotFound:
            raise ValidationFailure(row_id, [f"category {category_id} not in hierarchy"]) from None

        if not narrows:
            broad = self._hierarchy.get_node(category_id)
            raise ValidationFailure(
                row_id,
                [f"leaf {leaf.code} is not within category {broad.code}"],
            )
        return leaf.id
