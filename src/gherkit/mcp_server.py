"""FastMCP server exposing gherkit tools to MCP clients."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from fastmcp import FastMCP

from gherkit import tables
from gherkit.catalog import (
    CatalogError,
    CheckStatus,
    catalog_from_data,
    check_steps,
    load_step_catalog,
)
from gherkit.config import find_feature_files, is_initialized, load_config
from gherkit.exporters.json_export import feature_to_dict
from gherkit.models import Feature, GherkinParseError
from gherkit.parser import parse_feature, parse_feature_file, parse_feature_files
from gherkit.tags import from_tag_lists

mcp = FastMCP("gherkit")

FORMATTERS: dict[str, Callable[[Any], Any]] = {
    "first_row_as_keys": tables.first_row_as_keys,
    "first_column_as_keys": tables.first_column_as_keys,
    "first_column_as_keys_and_first_row_as_property_names":
        tables.first_column_as_keys_and_first_row_as_property_names,
    "key_value_map": tables.key_value_map,
    "as_list": tables.as_list,
}


# --- Helpers ---


def _load(content: str | None, file_path: str | None) -> Feature | dict[str, Any]:
    """Parse from a path or inline content; an error dict on failure."""
    try:
        if file_path:
            return parse_feature_file(Path(file_path))
        if content:
            return parse_feature(content)
    except GherkinParseError as e:
        return {"error": e.message, "line": e.line_number}
    except (OSError, UnicodeDecodeError) as e:
        return {"error": str(e)}
    return {"error": "Provide either 'content' or 'file_path'"}


# --- Tool implementation functions (testable without MCP) ---


def _parse_feature(
    content: str | None = None, file_path: str | None = None,
) -> dict[str, Any]:
    feature = _load(content, file_path)
    if isinstance(feature, dict):
        return feature
    data = feature_to_dict(feature)
    data["example_count"] = len(feature.examples)
    return data


def _filter_examples(
    content: str | None = None,
    file_path: str | None = None,
    include: list[str] | None = None,
    exclude: list[str] | None = None,
) -> dict[str, Any]:
    feature = _load(content, file_path)
    if isinstance(feature, dict):
        return feature
    expression = from_tag_lists(include or [], exclude or [])
    selected, skipped = [], []
    for example in feature.examples:
        if expression is None or expression.matches(example.tags):
            selected.append(example.name)
        else:
            skipped.append(example.name)
    return {
        "expression": str(expression) if expression is not None else None,
        "selected": selected,
        "skipped": skipped,
    }


def _check_steps(
    content: str | None = None,
    file_path: str | None = None,
    patterns: list[str] | None = None,
    steps_file: str | None = None,
) -> dict[str, Any]:
    feature = _load(content, file_path)
    if isinstance(feature, dict):
        return feature
    try:
        if steps_file:
            registry = load_step_catalog(Path(steps_file))
        else:
            registry = catalog_from_data(patterns or [])
    except (CatalogError, OSError) as e:
        return {"error": str(e)}

    checks = check_steps(feature, registry)
    return {
        "checks": [
            {
                "step": c.step.description,
                "example": c.example,
                "status": c.status.value,
                "patterns": list(c.patterns),
                "suggestion": c.suggestion,
            }
            for c in checks
        ],
        "unmatched": sum(1 for c in checks if c.status is CheckStatus.UNMATCHED),
        "ambiguous": sum(1 for c in checks if c.status is CheckStatus.AMBIGUOUS),
    }


def _format_table(rows: list[list[str]], formatter: str) -> dict[str, Any]:
    fn = FORMATTERS.get(formatter)
    if fn is None:
        return {"error": f"Unknown formatter '{formatter}'. Choose from: {', '.join(FORMATTERS)}"}
    try:
        return {"result": fn(rows)}
    except tables.DataTableFormatError as e:
        return {"error": str(e)}


def _get_project_status(project_root: str = ".") -> dict[str, Any]:
    root = Path(project_root)
    status: dict[str, Any] = {"initialized": is_initialized(root)}
    if not status["initialized"]:
        return status

    config = load_config(root)
    files = find_feature_files(root, config)
    result = parse_feature_files(files)
    status["feature_files"] = len(files)
    status["example_count"] = sum(len(f.examples) for f in result.features)
    status["parse_errors"] = len(result.errors)
    status["steps_file"] = config.steps_file
    return status


# --- MCP tool registrations ---


@mcp.tool(name="parse_feature")
def parse_feature_tool(content: str | None = None, file_path: str | None = None) -> dict:
    """Parse a Gherkin feature into its Background, Rules and Examples.

    Provide the feature text as 'content' or a path as 'file_path'. Scenario
    Outlines come back already expanded, one Example per row of values.
    """
    return _parse_feature(content, file_path)


@mcp.tool()
def filter_examples(
    content: str | None = None,
    file_path: str | None = None,
    include: list[str] | None = None,
    exclude: list[str] | None = None,
) -> dict:
    """List which Examples a tag filter selects.

    An Example is selected when it carries any 'include' tag (or no include
    tags are given) and none of the 'exclude' tags.
    """
    return _filter_examples(content, file_path, include, exclude)


@mcp.tool(name="check_steps")
def check_steps_tool(
    content: str | None = None,
    file_path: str | None = None,
    patterns: list[str] | None = None,
    steps_file: str | None = None,
) -> dict:
    """Check that every step of a feature binds to exactly one step pattern."""
    return _check_steps(content, file_path, patterns, steps_file)


@mcp.tool()
def format_table(rows: list[list[str]], formatter: str) -> dict:
    """Shape data-table rows with a named formatter."""
    return _format_table(rows, formatter)


@mcp.tool()
def get_project_status(project_root: str = ".") -> dict:
    """Get the current gherkit project status."""
    return _get_project_status(project_root)
