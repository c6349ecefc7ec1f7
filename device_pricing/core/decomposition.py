"""Set decomposition - split a complete-kit price into component estimates.

A set template lists the components of a kit and the share of the set
price each one takes. Before a decomposition is written it must pass the
checklist:
- template fractions sum to 1.0 within tolerance
- no component above the share limit (warning only)
- where component-scope prices were observed for the same components, at
  least one estimate lands within the corroboration tolerance of one
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from device_pricing.core.engine_config import SetTemplate
from device_pricing.core.enums import ComponentType, PriceScope
from device_pricing.core.errors import IntegrityViolation, ValidationFailure
from device_pricing.core.fractions import round_currency
from device_pricing.core.hierarchy import CategoryNode, HierarchyStore
from device_pricing.infra.logging import get_logger
from device_pricing.infra.store import Row
from device_pricing.models.base import derived_id

logger = get_logger(__name__)

DECOMPOSED_MARKER = "[decomposed]"
ESTIMATED_MARKER = "[estimated]"


@dataclass(frozen=True)
class PlannedComponent:
    node: CategoryNode
    label: str
    fraction: Decimal
    price_amount: Decimal


@dataclass(frozen=True)
class DecompositionPlan:
    """Checked split of one set price."""

    source_id: str
    template: SetTemplate
    components: tuple[PlannedComponent, ...]
    warnings: tuple[str, ...] = field(default_factory=tuple)


class SetDecomposer:
    """Plans component rows for set-scope reference prices."""

    def __init__(
        self,
        templates: Sequence[SetTemplate],
        hierarchy: HierarchyStore,
        sum_tolerance: Decimal = Decimal("0.02"),
        max_component_share: Decimal = Decimal("0.50"),
        corroboration_tolerance: Decimal = Decimal("0.30"),
    ) -> None:
        self._hierarchy = hierarchy
        self._templates = sorted(templates, key=lambda t: -len(t.category_prefix))
        self._sum_tolerance = sum_tolerance
        self._max_component_share = max_component_share
        self._corroboration_tolerance = corroboration_tolerance

        missing = [
            f"{template.name}: {component.code}"
            for template in templates
            for component in template.components
            if not hierarchy.has_code(component.code)
        ]
        if missing:
            raise IntegrityViolation("Set template components missing from hierarchy", missing)

    @staticmethod
    def is_decomposable(row: Row) -> bool:
        """Whether a row prices a complete kit that has not been split yet."""
        if DECOMPOSED_MARKER in (row.get("notes") or ""):
            return False
        if row.get("price_scope") == PriceScope.PROCEDURE.value:
            return False
        if row.get("component_type") == ComponentType.INDIVIDUAL_MODULAR.value:
            return False
        if row.get("price_scope") == PriceScope.SET.value:
            return True
        return row.get("component_type") in (ComponentType.SET.value, ComponentType.REVISION_SET.value)

    def template_for(self, category_code: str) -> SetTemplate | None:
        """Template with the longest prefix covering the code."""
        for template in self._templates:
            if category_code.startswith(template.category_prefix):
                return template
        return None

    def component_node_ids(self, template: SetTemplate) -> dict[str, str]:
        """Component code -> node id."""
        return {c.code: self._hierarchy.get_by_code(c.code).id for c in template.components}

    def plan(
        self,
        row: Row,
        template: SetTemplate,
        observed: Mapping[str, Sequence[Decimal]] | None = None,
    ) -> DecompositionPlan:
        """Split a set price and run the checklist.

        Args:
            row: Set-scope reference price row
            template: Template for the row's category
            observed: Component node id -> independently observed prices

        Raises:
            ValidationFailure: If the checklist fails
        """
        row_id = str(row["id"])
        reasons: list[str] = []
        warnings: list[str] = []

        total = template.fraction_total
        if abs(total - Decimal("1")) > self._sum_tolerance:
            reasons.append(f"fractions of {template.name} sum to {total}, expected 1.0")

        set_price = Decimal(str(row["price_amount"]))
        # A narrowed leaf bounds the kit
        category_id = row.get("leaf_category_id") or row.get("category_id")
        components: list[PlannedComponent] = []
        for component in template.components:
            node = self._hierarchy.get_by_code(component.code)
            if category_id and not self._hierarchy.is_descendant_or_self(node.id, category_id):
                reasons.append(f"{component.code} is outside the row category")
            if component.fraction > self._max_component_share:
                warnings.append(f"{component.label} takes {component.fraction:.0%} of the set")
            components.append(
                PlannedComponent(
                    node=node,
                    label=component.label,
                    fraction=component.fraction,
                    price_amount=round_currency(set_price * component.fraction),
                )
            )

        observed = observed or {}
        if any(observed.get(c.node.id) for c in components):
            corroborated = any(
                abs(c.price_amount - price) <= self._corroboration_tolerance * price
                for c in components
                for price in observed.get(c.node.id, ())
            )
            if not corroborated:
                reasons.append("no component estimate within 30% of an observed component price")

        if reasons:
            raise ValidationFailure(row_id, reasons)

        for warning in warnings:
            logger.warning("Decomposition warning", row_id=row_id, warning=warning)

        return DecompositionPlan(
            source_id=row_id,
            template=template,
            components=tuple(components),
            warnings=tuple(warnings),
        )

    def build_rows(self, plan: DecompositionPlan, row: Row) -> list[Row]:
        """Component-scope rows for a checked plan.

        Ids derive from the set id and component code, so writing the same
        plan twice overwrites instead of duplicating.
        """
        source_code = row.get("source_code")
        price_original = row.get("price_original")
        rows: list[Row] = []
        for component in plan.components:
            percent = (component.fraction * 100).quantize(Decimal("1"))
            rows.append({
                "id": derived_id(plan.source_id, component.node.code),
                "price_amount": component.price_amount,
                "price_original": (
                    round_currency(Decimal(str(price_original)) * component.fraction)
                    if price_original is not None
                    else None
                ),
                "currency_original": row.get("currency_original"),
                "source_country": row["source_country"],
                "source_name": row.get("source_name"),
                "source_code": f"{source_code}/component" if source_code else None,
                "xc_subcode": row.get("xc_subcode"),
                "manufacturer_name": row.get("manufacturer_name"),
                "component_type": ComponentType.SINGLE_COMPONENT.value,
                "price_scope": PriceScope.COMPONENT.value,
                "category_id": row.get("category_id"),
                "leaf_category_id": component.node.id,
                "component_description": f"{component.label} ({plan.template.name})",
                "notes": f"{ESTIMATED_MARKER} {component.label}: {percent}% of set {plan.source_id}",
            })
        return rows
