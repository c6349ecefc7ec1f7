"""Tests for the component-fraction estimator."""

from decimal import Decimal

import pytest

from device_pricing.core.engine import EngineContext
from device_pricing.core.engine_config import FractionEntry
from device_pricing.core.fractions import FractionEstimator, format_fraction_range, round_currency


def entry(prefix: str, low: str, high: str, label: str) -> FractionEntry:
    return FractionEntry(
        code_prefix=prefix,
        fraction_min=Decimal(low),
        fraction_max=Decimal(high),
        label=label,
    )


class TestHelpers:

    def test_round_currency_half_up(self):
        assert round_currency(Decimal("10.005")) == Decimal("10.01")
        assert round_currency(Decimal("10.004")) == Decimal("10.00")

    def test_format_fraction_range(self):
        assert format_fraction_range(Decimal("0.30"), Decimal("0.35")) == "30–35%"


class TestFractionEstimator:
    """Tests for FractionEstimator lookups and estimates."""

    @pytest.fixture
    def estimator(self) -> FractionEstimator:
        return FractionEstimator(
            {
                "P0908": entry("P0908", "0.50", "0.60", "hip part"),
                "P090803": entry("P090803", "0.15", "0.20", "acetabular cup"),
            },
            min_prefix_length=4,
        )

    def test_longest_prefix_wins(self, estimator: FractionEstimator):
        assert estimator.lookup("P09080301").code_prefix == "P090803"

    def test_falls_back_to_shorter_prefix(self, estimator: FractionEstimator):
        assert estimator.lookup("P09080401").code_prefix == "P0908"

    def test_exact_code(self, estimator: FractionEstimator):
        assert estimator.lookup("P090803").code_prefix == "P090803"

    def test_stops_at_min_prefix_length(self):
        estimator = FractionEstimator({"P09": entry("P09", "0.1", "0.2", "x")}, min_prefix_length=4)
        assert estimator.lookup("P0908") is None

    def test_no_entry(self, estimator: FractionEstimator):
        assert estimator.estimate("P0909", 1000) is None

    def test_femoral_stem_from_set_price(self, engine: EngineContext):
        result = engine.estimate_component("P090801", 2000)

        assert result is not None
        assert result.min == Decimal("600.00")
        assert result.max == Decimal("700.00")
        assert result.label == "femoral stem"
        assert result.estimated is True
        assert result.fraction_range == "30–35%"

    def test_rounds_to_cents(self, estimator: FractionEstimator):
        result = estimator.estimate("P090803", Decimal("999.99"))
        assert result.min == Decimal("150.00")
        assert result.max == Decimal("200.00")

    def test_accepts_float_price(self, estimator: FractionEstimator):
        result = estimator.estimate("P090803", 100.1)
        assert result.min == Decimal("15.02")
