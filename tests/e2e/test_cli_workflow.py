"""E2E test: CLI workflow from init to step checking.

init -> write features and a step catalog -> parse -> check -> status.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from gherkit.cli import cli
from gherkit.config import load_config, save_config

pytestmark = pytest.mark.e2e


class TestCliWorkflow:
    def test_init_to_check(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        sample_feature: str,
        sample_catalog: str,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        runner = CliRunner()

        # Step 1: init
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert (tmp_path / ".gherkit" / "config.json").exists()
        assert (tmp_path / "features").is_dir()

        # Step 2: write a feature and a catalog
        (tmp_path / "features" / "checkout.feature").write_text(sample_feature)
        (tmp_path / "steps.yaml").write_text(sample_catalog)

        # Step 3: parse the configured features
        result = runner.invoke(cli, ["parse"])
        assert result.exit_code == 0
        assert "Feature: Checkout" in result.output
        assert "Paying with a voucher (3 step(s))" in result.output

        # Step 4: every step binds
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 0
        assert "7 of 7 step(s) bound to a single pattern." in result.output

        # Step 5: status
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "Feature files: 1" in result.output
        assert "Examples: 2" in result.output
        assert "Step catalog: steps.yaml" in result.output

    def test_init_twice_keeps_config(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        runner = CliRunner()
        runner.invoke(cli, ["init"])
        config = load_config(tmp_path)
        config.include_tags = ["smoke"]
        save_config(config, tmp_path)

        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "already initialized" in result.output
        assert load_config(tmp_path).include_tags == ["smoke"]


class TestParseCommand:
    def test_json_output(self, tmp_path: Path, outline_feature: str) -> None:
        path = tmp_path / "cukes.feature"
        path.write_text(outline_feature)
        result = CliRunner().invoke(cli, ["parse", str(path), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data[0]["rules"][0]["examples"]) == 3

    def test_tag_filter_marks_skipped(self, tmp_path: Path, sample_feature: str) -> None:
        path = tmp_path / "checkout.feature"
        path.write_text(sample_feature)
        result = CliRunner().invoke(cli, ["parse", str(path), "--exclude", "slow"])
        assert result.exit_code == 0
        assert "  - Paying with a voucher" in result.output
        assert "    Paying by card" in result.output
        assert "Tag filter: not @slow" in result.output

    def test_directory_argument(self, tmp_path: Path, sample_feature: str) -> None:
        (tmp_path / "a.feature").write_text(sample_feature)
        (tmp_path / "b.feature").write_text(sample_feature.replace("Checkout", "Refunds"))
        result = CliRunner().invoke(cli, ["parse", str(tmp_path)])
        assert "Feature: Checkout" in result.output
        assert "Feature: Refunds" in result.output

    def test_parse_error_reports_location(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.feature"
        path.write_text("Feature: A\nFeature: B\n")
        result = CliRunner().invoke(cli, ["parse", str(path)])
        assert result.exit_code == 1
        assert (
            f"{path}:2: Cannot have multiple Features in a single Gherkin document"
            in result.output
        )

    def test_uninitialized_without_paths(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["parse"])
        assert result.exit_code == 1
        assert "Error: No paths given. Project is not initialized" in result.output

    def test_broken_config_without_paths(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".gherkit").mkdir()
        (tmp_path / ".gherkit" / "config.json").write_text("{not json")
        result = CliRunner().invoke(cli, ["parse"])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestCheckCommand:
    def test_reports_unmatched(self, tmp_path: Path) -> None:
        feature = tmp_path / "f.feature"
        feature.write_text("Feature: F\nScenario: s\nGiven a registered custmer\n")
        catalog = tmp_path / "steps.yaml"
        catalog.write_text("steps:\n  - pattern: a registered customer\n")
        result = CliRunner().invoke(cli, ["check", str(feature), "--steps", str(catalog)])
        assert result.exit_code == 1
        assert "[UNMATCHED] F / Scenario: s: Given a registered custmer" in result.output
        assert "Closest patterns: a registered customer" in result.output
        assert "0 of 1 step(s)" in result.output

    def test_bad_catalog(self, tmp_path: Path) -> None:
        feature = tmp_path / "f.feature"
        feature.write_text("Feature: F\n")
        catalog = tmp_path / "steps.yaml"
        catalog.write_text("steps: [unclosed")
        result = CliRunner().invoke(cli, ["check", str(feature), "--steps", str(catalog)])
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output

    def test_uninitialized_without_catalog(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        feature = tmp_path / "f.feature"
        feature.write_text("Feature: F\n")
        result = CliRunner().invoke(cli, ["check", str(feature)])
        assert result.exit_code == 1
        assert "Error: No --steps catalog given. Project is not initialized" in result.output


class TestStatusCommand:
    def test_uninitialized(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["status"])
        assert "not initialized" in result.output

    def test_verbose_flag(self, initialized_project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(initialized_project)
        result = CliRunner().invoke(cli, ["--verbose", "status"])
        assert result.exit_code == 0
        assert "Tag filter: none" in result.output
