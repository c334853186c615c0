"""gherkit: Gherkin parsing, tag filtering and step matching."""

from gherkit.models import (
    Background,
    DataTable,
    DocString,
    Example,
    Feature,
    GherkinParseError,
    Rule,
    Step,
)
from gherkit.parser import parse_feature, parse_feature_bytes, parse_feature_file
from gherkit.steps import StepDefinition, StepInput, StepRegistry, find_match
from gherkit.tags import TagExpression, not_, tag

__version__ = "0.1.0"

__all__ = [
    "Background",
    "DataTable",
    "DocString",
    "Example",
    "Feature",
    "GherkinParseError",
    "Rule",
    "Step",
    "StepDefinition",
    "StepInput",
    "StepRegistry",
    "TagExpression",
    "find_match",
    "not_",
    "parse_feature",
    "parse_feature_bytes",
    "parse_feature_file",
    "tag",
]
