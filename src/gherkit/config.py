"""Configuration management for gherkit projects."""

from __future__ import annotations

import json
from pathlib import Path

from gherkit.models import ProjectConfig
from gherkit.tags import TagExpression, from_tag_lists

GHERKIT_DIR = ".gherkit"
CONFIG_FILE = "config.json"
FEATURE_SUFFIX = ".feature"


class ConfigError(Exception):
    """Raised when a project config file exists but cannot be read."""


def _config_path(project_root: Path) -> Path:
    return project_root / GHERKIT_DIR / CONFIG_FILE


def save_config(config: ProjectConfig, project_root: Path) -> Path:
    """Save project config to .gherkit/config.json. Returns the config path."""
    gherkit_dir = project_root / GHERKIT_DIR
    gherkit_dir.mkdir(parents=True, exist_ok=True)
    path = _config_path(project_root)
    data = {
        "version": config.version,
        "features_dir": config.features_dir,
        "steps_file": config.steps_file,
        "include_tags": config.include_tags,
        "exclude_tags": config.exclude_tags,
    }
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path


def load_config(project_root: Path) -> ProjectConfig:
    """Load project config from .gherkit/config.json."""
    path = _config_path(project_root)
    if not path.exists():
        raise FileNotFoundError(f"No config found at {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid config at {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return ProjectConfig(
        version=data.get("version", "0.1.0"),
        features_dir=data.get("features_dir", "features"),
        steps_file=data.get("steps_file", "steps.yaml"),
        include_tags=list(data.get("include_tags", [])),
        exclude_tags=list(data.get("exclude_tags", [])),
    )


def is_initialized(project_root: Path) -> bool:
    """Check if the project is initialized for gherkit."""
    return _config_path(project_root).exists()


def ensure_initialized(project_root: Path) -> ProjectConfig:
    """Ensure the project is initialized. Raises if not."""
    if not is_initialized(project_root):
        raise RuntimeError(
            "Project is not initialized. Run `gherkit init` first."
        )
    return load_config(project_root)


def find_feature_files(project_root: Path, config: ProjectConfig) -> list[Path]:
    """All .feature files under the configured features directory, sorted."""
    features_dir = project_root / config.features_dir
    if not features_dir.is_dir():
        return []
    return sorted(features_dir.rglob(f"*{FEATURE_SUFFIX}"))


def tag_expression_from_config(
    include: list[str], exclude: list[str],
) -> TagExpression | None:
    """Build the selection expression from include/exclude tag lists."""
    return from_tag_lists(include, exclude)
