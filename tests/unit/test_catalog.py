"""Unit tests for gherkit.catalog."""

from pathlib import Path

import pytest

from gherkit.catalog import (
    CatalogError,
    CheckStatus,
    catalog_from_data,
    check_steps,
    load_step_catalog,
)
from gherkit.parser import parse_feature


class TestLoadStepCatalog:
    def test_mapping_form(self, tmp_path: Path, sample_catalog: str) -> None:
        path = tmp_path / "steps.yaml"
        path.write_text(sample_catalog)
        registry = load_step_catalog(path)
        assert len(registry) == 5
        assert registry.definitions[0].name == "customer"

    def test_plain_list(self) -> None:
        registry = catalog_from_data(["a user", "a basket"])
        assert [d.pattern.source for d in registry.definitions] == ["a user", "a basket"]

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "steps.yaml"
        path.write_text("")
        assert len(load_step_catalog(path)) == 0

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "steps.yaml"
        path.write_text("steps: [unclosed")
        with pytest.raises(CatalogError, match="Invalid YAML"):
            load_step_catalog(path)

    def test_missing_steps_key(self) -> None:
        with pytest.raises(CatalogError, match="'steps'"):
            catalog_from_data({"patterns": []})

    def test_entry_without_pattern(self) -> None:
        with pytest.raises(CatalogError, match="step 2"):
            catalog_from_data({"steps": [{"pattern": "ok"}, {"name": "nameless"}]})

    def test_bad_pattern(self) -> None:
        with pytest.raises(CatalogError, match="Invalid step pattern"):
            catalog_from_data(["a (b"])


class TestCheckSteps:
    def test_all_matched(self, sample_feature: str, sample_catalog: str, tmp_path: Path) -> None:
        path = tmp_path / "steps.yaml"
        path.write_text(sample_catalog)
        checks = check_steps(parse_feature(sample_feature), load_step_catalog(path))
        # 1 background step plus 3 steps in each of the 2 examples
        assert len(checks) == 7
        assert all(c.ok for c in checks)

    def test_unmatched_with_suggestion(self) -> None:
        feature = parse_feature("Feature: F\nScenario: s\nGiven a registered custmer\n")
        checks = check_steps(feature, catalog_from_data(["a registered customer"]))
        assert checks[0].status is CheckStatus.UNMATCHED
        assert checks[0].example == "Scenario: s"
        assert "a registered customer" in checks[0].suggestion

    def test_ambiguous(self) -> None:
        feature = parse_feature("Feature: F\nScenario: s\nGiven a user\n")
        checks = check_steps(feature, catalog_from_data(["a <thing>", "a user"]))
        assert checks[0].status is CheckStatus.AMBIGUOUS
        assert checks[0].patterns == ("a <thing>", "a user")
