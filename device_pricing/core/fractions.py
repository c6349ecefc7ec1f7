"""Component-Fraction Estimator.

Approximates the price of one component from the price of a complete set,
using a table of typical component shares keyed by hierarchy code prefix.
Results are display and triage estimates only.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from device_pricing.core.engine_config import FractionEntry
from device_pricing.infra.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


def round_currency(amount: Decimal) -> Decimal:
    """Round to two decimals, half-up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_fraction_range(fraction_min: Decimal, fraction_max: Decimal) -> str:
    """Human-readable share, e.g. "30–35%"."""
    low = (fraction_min * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    high = (fraction_max * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{low}–{high}%"


@dataclass(frozen=True)
class ComponentEstimate:
    """Estimated price range of one component. Always an estimate."""

    min: Decimal
    max: Decimal
    label: str
    code_prefix: str
    fraction_min: Decimal
    fraction_max: Decimal
    estimated: bool = True

    @property
    def fraction_range(self) -> str:
        return format_fraction_range(self.fraction_min, self.fraction_max)


class FractionEstimator:
    """Longest-prefix lookup over the component fraction table."""

    def __init__(self, table: dict[str, FractionEntry], min_prefix_length: int = 6) -> None:
        self._table = dict(table)
        self._min_prefix_length = min_prefix_length

    def lookup(self, category_code: str) -> FractionEntry | None:
        """Most specific table entry for a code.

        Tries the full code first, then drops one character at a time down
        to the minimum prefix length.
        """
        for length in range(len(category_code), self._min_prefix_length - 1, -1):
            entry = self._table.get(category_code[:length])
            if entry is not None:
                return entry
        return None

    def estimate(self, category_code: str, set_price: Decimal | float | int) -> ComponentEstimate | None:
        """Estimate a component price range from a set price.

        Returns:
            ComponentEstimate, or None when no prefix has a table entry
        """
        entry = self.lookup(category_code)
        if entry is None:
            logger.debug("No fraction entry", category_code=category_code)
            return None

        price = Decimal(str(set_price))
        return ComponentEstimate(
            min=round_currency(price * entry.fraction_min),
            max=round_currency(price * entry.fraction_max),
            label=entry.label,
            code_prefix=entry.code_prefix,
            fraction_min=entry.fraction_min,
            fraction_max=entry.fraction_max,
        )
