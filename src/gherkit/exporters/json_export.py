"""JSON export for parsed features."""

from __future__ import annotations

import json
from typing import Any

from gherkit.models import Background, DataTable, DocString, Example, Feature, Rule, Step


def _step_to_dict(step: Step) -> dict[str, Any]:
    data: dict[str, Any] = {"description": step.description}
    if isinstance(step.argument, DocString):
        data["doc_string"] = {
            "content": step.argument.content,
            "media_type": step.argument.media_type,
        }
    elif isinstance(step.argument, DataTable):
        data["data_table"] = [list(row) for row in step.argument.rows]
    return data


def _example_to_dict(example: Example) -> dict[str, Any]:
    return {
        "description": example.description,
        "tags": list(example.tags),
        "steps": [_step_to_dict(s) for s in example.steps],
    }


def _rule_to_dict(rule: Rule) -> dict[str, Any]:
    return {
        "description": rule.description,
        "tags": list(rule.tags),
        "examples": [_example_to_dict(e) for e in rule.examples],
    }


def _background_to_dict(background: Background | None) -> dict[str, Any] | None:
    if background is None:
        return None
    return {
        "description": background.description,
        "steps": [_step_to_dict(s) for s in background.steps],
    }


def feature_to_dict(feature: Feature) -> dict[str, Any]:
    """Serialize a Feature to a JSON-compatible dict."""
    return {
        "description": feature.description,
        "tags": list(feature.tags),
        "background": _background_to_dict(feature.background),
        "rules": [_rule_to_dict(r) for r in feature.rules],
    }


def export_json(feature: Feature, indent: int = 2) -> str:
    """Export a Feature as a JSON string."""
    return json.dumps(feature_to_dict(feature), indent=indent)
