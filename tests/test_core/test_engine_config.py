"""Tests for engine configuration loading."""

from decimal import Decimal
from pathlib import Path

import pytest

from device_pricing.config import DEFAULT_ENGINE_CONFIG
from device_pricing.core.engine_config import (
    ClassificationRule,
    CorrectionOverrides,
    EngineConfig,
    EngineConfigLoader,
    FractionEntry,
    SetTemplate,
    get_config_loader,
)
from device_pricing.core.enums import ComponentType
from device_pricing.core.errors import IntegrityViolation
from device_pricing.core.hierarchy import HierarchyStore

MINIMAL_YAML = """
version: "1.0.0"
classification:
  confidence: {high: 90, medium: 70}
  rules:
    - {code: P0908, keywords: [Hip], exclude: [Knee], priority: 50}
subcode_pattern: '^(XC\\d+(?:\\.\\d+)*)'
component_types:
  subcode_rules:
    - {pattern: '^XC1\\.1$', type: set}
leaf_map:
  XC1.1: P090803
corrections:
  revert_leaf: [XC1.1]
  component_type_fixes: {XC2.7: set}
fractions:
  min_prefix_length: 4
  table:
    P0908: {fraction: [0.10, 0.20], label: hip part}
set_templates:
  hip:
    category_prefix: P0908
    components:
      - {code: P090803, fraction: 0.6, label: cup}
      - {code: P090804, fraction: 0.4, label: stem}
"""


class TestConfigParts:
    """Tests for the frozen config dataclasses."""

    def test_rule_from_dict_lowercases(self):
        rule = ClassificationRule.from_dict(
            {"code": "P0908", "keywords": ["HIP", "Acetab"], "exclude": ["Knee"], "priority": 50}
        )
        assert rule.keywords == ("hip", "acetab")
        assert rule.exclude_keywords == ("knee",)
        assert rule.priority == 50
        assert rule.name is None

    def test_fraction_entry_uses_decimals(self):
        entry = FractionEntry.from_dict("P090801", {"fraction": [0.30, 0.35], "label": "femoral stem"})
        assert entry.fraction_min == Decimal("0.3")
        assert entry.fraction_max == Decimal("0.35")

    def test_corrections_from_dict(self):
        corrections = CorrectionOverrides.from_dict(
            {"revert_leaf": ["XC1.1"], "component_type_fixes": {"XC2.7": "set"}}
        )
        assert "XC1.1" in corrections.revert_leaf_subcodes
        assert corrections.component_type_fixes["XC2.7"] is ComponentType.SET

    def test_template_fraction_total(self):
        template = SetTemplate.from_dict(
            "t",
            {
                "category_prefix": "P0909",
                "components": [
                    {"code": "P090903", "fraction": 0.7, "label": "a"},
                    {"code": "P090907", "fraction": 0.3, "label": "b"},
                ],
            },
        )
        assert template.fraction_total == Decimal("1.0")


class TestEngineConfig:
    """Tests for EngineConfig parsing and validation."""

    def test_from_yaml(self):
        config = EngineConfig.from_yaml(MINIMAL_YAML)

        assert config.version == "1.0.0"
        assert config.classification_rules[0].keywords == ("hip",)
        assert config.subcode_pattern.match("XC1.17/X01203").group(1) == "XC1.17"
        assert config.leaf_map == {"XC1.1": "P090803"}
        assert config.min_prefix_length == 4
        assert config.set_templates[0].name == "hip"
        assert config.referenced_codes() == {"P0908", "P090803", "P090804"}

    def test_packaged_config_is_valid(self, engine_config: EngineConfig):
        assert engine_config.validate() == []
        assert len(engine_config.classification_rules) >= 40
        assert engine_config.fractions["P090801"].label == "femoral stem"
        assert {t.name for t in engine_config.set_templates} == {"hip_total", "knee_total"}

    def test_packaged_codes_exist_in_packaged_scheme(
        self, engine_config: EngineConfig, hierarchy: HierarchyStore
    ):
        missing = [code for code in engine_config.referenced_codes() if not hierarchy.has_code(code)]
        assert missing == []

    def test_unknown_component_type_is_integrity_violation(self):
        bad = MINIMAL_YAML.replace("type: set}", "type: bundle}")
        with pytest.raises(IntegrityViolation, match="Malformed"):
            EngineConfig.from_yaml(bad)

    def test_missing_rule_key_is_integrity_violation(self):
        bad = MINIMAL_YAML.replace("{code: P0908, keywords: [Hip], exclude: [Knee], priority: 50}", "{code: P0908}")
        with pytest.raises(IntegrityViolation):
            EngineConfig.from_yaml(bad)

    def test_inverted_thresholds_rejected(self):
        bad = MINIMAL_YAML.replace("{high: 90, medium: 70}", "{high: 60, medium: 70}")
        with pytest.raises(IntegrityViolation, match="confidence.high"):
            EngineConfig.from_yaml(bad)

    def test_template_component_outside_prefix_rejected(self):
        bad = MINIMAL_YAML.replace("{code: P090804, fraction: 0.4", "{code: P0909, fraction: 0.4")
        with pytest.raises(IntegrityViolation, match="outside"):
            EngineConfig.from_yaml(bad)

    def test_fraction_range_rejected(self):
        bad = MINIMAL_YAML.replace("[0.10, 0.20]", "[0.30, 0.20]")
        with pytest.raises(IntegrityViolation, match="fraction range"):
            EngineConfig.from_yaml(bad)


class TestEngineConfigLoader:
    """Tests for EngineConfigLoader."""

    def test_load_caches_by_path(self, tmp_path: Path):
        path = tmp_path / "engine.yaml"
        path.write_text(MINIMAL_YAML, encoding="utf-8")
        loader = EngineConfigLoader()

        first = loader.load(path)
        second = loader.load(str(path))

        assert first is second

    def test_clear_cache(self, tmp_path: Path):
        path = tmp_path / "engine.yaml"
        path.write_text(MINIMAL_YAML, encoding="utf-8")
        loader = EngineConfigLoader()

        first = loader.load(path)
        loader.clear_cache()
        assert loader.load(path) is not first

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            EngineConfigLoader().load(tmp_path / "absent.yaml")

    def test_default_path(self):
        config = EngineConfigLoader().load(DEFAULT_ENGINE_CONFIG)
        assert config.version

    def test_singleton(self):
        assert get_config_loader() is get_config_loader()
