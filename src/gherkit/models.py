"""Core data models for gherkit."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union


class GherkinParseError(Exception):
    """Raised when a Gherkin document cannot be parsed."""

    def __init__(
        self, message: str, line_number: int | None = None, line: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.line = line


@dataclass(frozen=True)
class DocString:
    """A multi-line doc string argument."""

    content: str
    media_type: str | None = None


@dataclass(frozen=True)
class DataTable:
    """A rectangular grid of table cells."""

    rows: tuple[tuple[str, ...], ...] = ()

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def formatted(self, formatter: Callable[[list[list[str]]], Any]) -> Any:
        """Shape the table with one of the formatters in gherkit.tables."""
        return formatter([list(row) for row in self.rows])


StepArgument = Union[DocString, DataTable]


@dataclass(frozen=True)
class Step:
    """A single Given/When/Then/And/But line."""

    description: str
    argument: StepArgument | None = None

    @property
    def keyword(self) -> str:
        return self.description.split(" ", 1)[0]

    @property
    def text(self) -> str:
        parts = self.description.split(" ", 1)
        return parts[1].strip() if len(parts) > 1 else ""

    @property
    def doc_string(self) -> str | None:
        return self.argument.content if isinstance(self.argument, DocString) else None

    @property
    def data_table(self) -> DataTable | None:
        return self.argument if isinstance(self.argument, DataTable) else None


def _strip_keyword(description: str | None) -> str | None:
    if description is None:
        return None
    head, sep, tail = description.partition(":")
    return tail.strip() if sep else description


@dataclass(frozen=True)
class Example:
    """A concrete scenario."""

    description: str | None = None
    tags: tuple[str, ...] = ()
    steps: tuple[Step, ...] = ()

    @property
    def name(self) -> str | None:
        return _strip_keyword(self.description)


@dataclass(frozen=True)
class Rule:
    """A grouping of Examples. Implicit rules have no description."""

    description: str | None = None
    tags: tuple[str, ...] = ()
    examples: tuple[Example, ...] = ()

    @property
    def name(self) -> str | None:
        return _strip_keyword(self.description)


@dataclass(frozen=True)
class Background:
    """Given-only steps prefixed to every Example of a Feature."""

    description: str | None = None
    steps: tuple[Step, ...] = ()


@dataclass(frozen=True)
class Feature:
    """A parsed Gherkin document."""

    description: str | None = None
    tags: tuple[str, ...] = ()
    background: Background | None = None
    rules: tuple[Rule, ...] = ()

    @property
    def name(self) -> str | None:
        return _strip_keyword(self.description)

    @property
    def examples(self) -> list[Example]:
        return [example for rule in self.rules for example in rule.examples]


@dataclass
class FileParseError:
    """A parse failure recorded while loading several files."""

    message: str
    line_number: int | None = None
    source_file: str | None = None


@dataclass
class ParseResult:
    """Result of parsing one or more feature files."""

    features: list[Feature] = field(default_factory=list)
    errors: list[FileParseError] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return len(self.errors) == 0


@dataclass
class ProjectConfig:
    """Project configuration for gherkit."""

    version: str = "0.1.0"
    features_dir: str = "features"
    steps_file: str = "steps.yaml"
    include_tags: list[str] = field(default_factory=list)
    exclude_tags: list[str] = field(default_factory=list)
