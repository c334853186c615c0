"""Step catalogs: YAML lists of step patterns, checked against features.

A catalog file looks like::

    steps:
      - pattern: I log in as <user>
        name: login
      - pattern: the basket holds <count(\\d+)> items

A bare list of pattern strings is accepted as well.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from gherkit.models import Feature, Step
from gherkit.steps import (
    AmbiguousStepError,
    NoMatchingStepError,
    StepPatternError,
    StepRegistry,
)


class CatalogError(Exception):
    """Raised when a step catalog cannot be loaded."""


class CheckStatus(Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    AMBIGUOUS = "ambiguous"


@dataclass
class StepCheck:
    """The outcome of binding one step against a catalog."""

    step: Step
    status: CheckStatus
    example: str | None = None
    patterns: tuple[str, ...] = ()
    suggestion: str = ""

    @property
    def ok(self) -> bool:
        return self.status is CheckStatus.MATCHED


def load_step_catalog(path: Path) -> StepRegistry:
    """Load a YAML step catalog into a registry of no-op definitions."""
    try:
        raw = yaml.safe_load(Path(path).read_text())
    except yaml.YAMLError as exc:
        raise CatalogError(f"Invalid YAML in {path}: {exc}") from exc
    return catalog_from_data(raw, source=str(path))


def catalog_from_data(raw: Any, source: str = "<catalog>") -> StepRegistry:
    """Build a registry from already-parsed catalog data."""
    if raw is None:
        return StepRegistry()
    if isinstance(raw, dict):
        if "steps" not in raw:
            raise CatalogError(f"Missing required key 'steps' in {source}")
        raw = raw["steps"] or []
    if not isinstance(raw, list):
        raise CatalogError(f"Invalid step catalog format in {source}: expected a list of steps")

    registry = StepRegistry()
    for i, entry in enumerate(raw):
        if isinstance(entry, str):
            pattern, name = entry, None
        elif isinstance(entry, dict) and isinstance(entry.get("pattern"), str):
            pattern, name = entry["pattern"], entry.get("name")
        else:
            raise CatalogError(f"{source}: step {i + 1} must be a string or have a 'pattern'")
        try:
            registry.add(pattern, name=name)
        except StepPatternError as exc:
            raise CatalogError(f"{source}: step {i + 1}: {exc}") from exc
    return registry


def check_steps(feature: Feature, registry: StepRegistry) -> list[StepCheck]:
    """Bind every Background and Example step of ``feature`` against ``registry``."""
    checks: list[StepCheck] = []
    if feature.background is not None:
        for step in feature.background.steps:
            checks.append(_check(step, registry, feature.background.description))
    for example in feature.examples:
        for step in example.steps:
            checks.append(_check(step, registry, example.description))
    return checks


def _check(step: Step, registry: StepRegistry, example: str | None) -> StepCheck:
    try:
        definition, _ = registry.match(step)
    except NoMatchingStepError:
        return StepCheck(
            step, CheckStatus.UNMATCHED, example, suggestion=_suggest(step, registry),
        )
    except AmbiguousStepError as exc:
        return StepCheck(step, CheckStatus.AMBIGUOUS, example, patterns=tuple(exc.patterns))
    return StepCheck(step, CheckStatus.MATCHED, example, patterns=(definition.pattern.source,))


def _suggest(step: Step, registry: StepRegistry) -> str:
    candidates = [d.pattern.source for d in registry.definitions]
    nearby = difflib.get_close_matches(step.text, candidates, n=3, cutoff=0.25)
    return f"Closest patterns: {', '.join(nearby)}" if nearby else ""
