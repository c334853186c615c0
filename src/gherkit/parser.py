"""Gherkin state-machine parser.

Grammar (informal):
    document    := TAG* FEATURE TEXT* background? (rule | example)*
    background  := BACKGROUND TEXT* given_step+
    rule        := TAG* RULE TEXT* example*
    example     := TAG* EXAMPLE_KEYWORD TEXT* step* data_block*
    data_block  := TAG* DATA_KEYWORD ROW ROW+
    step        := STEP_KEYWORD (doc_string | ROW+)?
    doc_string  := FENCE LINE* FENCE

Blank lines and ``#`` comment lines are dropped before parsing. The parser
walks the remaining lines once, front to back, and stops at the first error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Iterable, NoReturn, Optional

from gherkit.models import (
    Background,
    DataTable,
    DocString,
    Example,
    Feature,
    FileParseError,
    GherkinParseError,
    ParseResult,
    Rule,
    Step,
    StepArgument,
)

logger = logging.getLogger(__name__)


class Keyword(Enum):
    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"
    SCENARIO = "Scenario"
    SCENARIOS = "Scenarios"
    SCENARIO_OUTLINE = "Scenario Outline"
    SCENARIO_TEMPLATE = "Scenario Template"
    EXAMPLE = "Example"
    EXAMPLES = "Examples"
    DATA = "Data"
    BACKGROUND = "Background"
    RULE = "Rule"
    FEATURE = "Feature"


PRIMARY_STEP_KEYWORDS = (Keyword.GIVEN, Keyword.WHEN, Keyword.THEN)
CONTINUATION_KEYWORDS = (Keyword.AND, Keyword.BUT)
STEP_KEYWORDS = PRIMARY_STEP_KEYWORDS + CONTINUATION_KEYWORDS
OUTLINE_KEYWORDS = (Keyword.SCENARIO_OUTLINE, Keyword.SCENARIO_TEMPLATE)
EXAMPLE_KEYWORDS = OUTLINE_KEYWORDS + (Keyword.EXAMPLE, Keyword.SCENARIO)
DATA_KEYWORDS = (Keyword.EXAMPLES, Keyword.SCENARIOS, Keyword.DATA)

# Longest first so "Scenario Outline" is reported before "Scenario"
_KEYWORDS_BY_LENGTH = sorted(Keyword, key=lambda k: len(k.value), reverse=True)

DOC_STRING_FENCES = ('"""', "```")
PLACEHOLDER_RE = re.compile(r"<([^<>\s](?:[^<>]*[^<>\s])?)>")


def match_keyword(text: str, keywords: Iterable[Keyword] = Keyword) -> Keyword | None:
    """Return the keyword ``text`` starts with, if any of ``keywords``."""
    allowed = set(keywords)
    for keyword in _KEYWORDS_BY_LENGTH:
        if keyword not in allowed:
            continue
        value = keyword.value
        if text == value or text.startswith(value + ":") or text.startswith(value + " "):
            return keyword
    return None


class LineKind(Enum):
    KEYWORD = auto()
    TAG = auto()
    TABLE_ROW = auto()
    DOC_STRING_FENCE = auto()
    TEXT = auto()


@dataclass(frozen=True)
class Line:
    kind: LineKind
    text: str
    line_number: int
    keyword: Keyword | None = None


class Lexer:
    """Turns raw Gherkin text into the sequence of significant lines."""

    def __init__(self, content: str) -> None:
        self.lines = content.splitlines()

    def tokenize(self) -> list[Line]:
        tokens: list[Line] = []
        for i, raw in enumerate(self.lines):
            stripped = raw.strip()
            if not stripped or stripped.startswith("#"):
                continue
            tokens.append(self._classify(stripped, i + 1))
        return tokens

    def _classify(self, text: str, line_number: int) -> Line:
        if text.startswith("@"):
            return Line(LineKind.TAG, text, line_number)
        if text.startswith("|"):
            return Line(LineKind.TABLE_ROW, text, line_number)
        if text.startswith(DOC_STRING_FENCES):
            return Line(LineKind.DOC_STRING_FENCE, text, line_number)
        keyword = match_keyword(text)
        if keyword is not None:
            return Line(LineKind.KEYWORD, text, line_number, keyword)
        return Line(LineKind.TEXT, text, line_number)


def split_tags(text: str) -> list[str]:
    """Split a tag line into bare tag names, dropping duplicates."""
    text = re.sub(r"\s#.*$", "", text)
    names: list[str] = []
    for token in text.split():
        if not token.startswith("@"):
            continue
        names.extend(part for part in token.split("@") if part)
    return list(dict.fromkeys(names))


def split_cells(text: str) -> list[str]:
    """Split a ``| a | b |`` row into trimmed cells, honoring \\| \\\\ and \\n."""
    body = text.strip()
    if body.startswith("|"):
        body = body[1:]
    cells: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            escaped = body[i + 1]
            current.append({"|": "|", "n": "\n", "\\": "\\"}.get(escaped, char + escaped))
            i += 2
            continue
        if char == "|":
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    trailing = "".join(current).strip()
    if trailing:
        cells.append(trailing)
    return cells


def _merge_tags(*groups: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(name for group in groups for name in group))


def _append_description(existing: str | None, text: str) -> str:
    return ((existing or "") + " " + text).strip()


# ── Parse-time drafts ────────────────────────────────────────────────


@dataclass
class _BackgroundDraft:
    description: str
    steps: list[Step] = field(default_factory=list)


@dataclass
class _FeatureDraft:
    description: str
    tags: list[str]
    background: _BackgroundDraft | None = None
    rules: list[Rule] = field(default_factory=list)


@dataclass
class _RuleDraft:
    description: str | None
    tags: list[str]
    examples: list[Example] = field(default_factory=list)


@dataclass
class _DataBlock:
    tags: list[str]
    line_number: int
    rows: list[list[str]] = field(default_factory=list)


@dataclass
class _ExampleDraft:
    description: str
    keyword: Keyword
    tags: list[str]
    line_number: int
    steps: list[Step] = field(default_factory=list)
    data: list[_DataBlock] = field(default_factory=list)


@dataclass
class _StepDraft:
    description: str
    line_number: int
    fence: str | None = None
    media_type: str | None = None
    doc_lines: list[str] | None = None
    doc_closed: bool = False
    rows: list[list[str]] | None = None

    @property
    def has_argument(self) -> bool:
        return self.doc_lines is not None or self.rows is not None

    def build(self) -> Step:
        argument: StepArgument | None = None
        if self.doc_lines is not None:
            argument = DocString("\n".join(self.doc_lines), self.media_type)
        elif self.rows is not None:
            argument = DataTable(tuple(tuple(row) for row in self.rows))
        return Step(self.description, argument)


# ── State machine ────────────────────────────────────────────────────


class ParserState(Enum):
    START = auto()
    IN_FEATURE = auto()
    IN_BACKGROUND = auto()
    IN_RULE = auto()
    IN_EXAMPLE = auto()
    IN_STEP = auto()
    IN_ARGUMENT = auto()
    ERROR = auto()
    COMPLETE = auto()


Transition = Callable[[Optional[Line]], Optional[ParserState]]


class Parser:
    """State-machine parser over the lines produced by the Lexer.

    Each state offers the current line to its transitions in order; the
    first one that accepts it names the next state. ``None`` as the line
    means the input is exhausted, which only completion transitions accept.
    """

    def __init__(self, lines: list[Line]) -> None:
        self.lines = lines
        self.pos = 0
        self.state = ParserState.START
        self.error: GherkinParseError | None = None
        self.result: Feature | None = None

        self.pending_tags: list[str] = []
        self.feature: _FeatureDraft | None = None
        self.rule: _RuleDraft | None = None
        self.example: _ExampleDraft | None = None
        self.step: _StepDraft | None = None
        self.step_owner = ParserState.IN_EXAMPLE

        self.transitions: dict[ParserState, tuple[Transition, ...]] = {
            ParserState.START: (self._parse_feature, self._parse_tag),
            ParserState.IN_FEATURE: (
                self._parse_feature_description,
                self._parse_background,
                self._parse_tag,
                self._parse_rule,
                self._parse_top_level_example,
                self._parse_feature,
                self._complete_feature,
            ),
            ParserState.IN_BACKGROUND: (
                self._parse_background_description,
                self._parse_background_step,
                self._complete_background,
            ),
            ParserState.IN_RULE: (
                self._parse_rule_description,
                self._parse_tag,
                self._parse_example,
                self._complete_rule,
            ),
            ParserState.IN_EXAMPLE: (
                self._parse_example_description,
                self._parse_tag,
                self._parse_example_step,
                self._parse_data,
                self._complete_example,
            ),
            ParserState.IN_STEP: (self._parse_argument_start, self._complete_step),
            ParserState.IN_ARGUMENT: (self._parse_argument_line, self._complete_argument),
        }

    def parse(self) -> Feature:
        """Run the state machine to completion. Raises GherkinParseError."""
        while self.state not in (ParserState.ERROR, ParserState.COMPLETE):
            line = self._peek()
            try:
                self.state = self._next_state(line)
            except GherkinParseError as exc:
                self.error = exc
                self.state = ParserState.ERROR

        if self.state is ParserState.ERROR:
            assert self.error is not None
            raise self.error
        assert self.result is not None
        return self.result

    def _next_state(self, line: Line | None) -> ParserState:
        for transition in self.transitions[self.state]:
            next_state = transition(line)
            if next_state is not None:
                return next_state
        if line is None:
            if self.feature is None:
                raise GherkinParseError("No Feature found in Gherkin document")
            raise GherkinParseError("Unexpected end of Gherkin document")
        self._fail(f"Unable to parse invalid Gherkin: {line.text}", line)

    # ── Helpers ──────────────────────────────────────────────────────

    def _peek(self) -> Line | None:
        if self.pos < len(self.lines):
            return self.lines[self.pos]
        return None

    def _advance(self) -> None:
        self.pos += 1

    @staticmethod
    def _fail(message: str, line: Line | None = None, line_number: int | None = None) -> NoReturn:
        if line is not None:
            raise GherkinParseError(message, line.line_number, line.text)
        raise GherkinParseError(message, line_number)

    @staticmethod
    def _keyword(line: Line | None, keywords: tuple[Keyword, ...]) -> Keyword | None:
        if line is None or line.kind is not LineKind.KEYWORD:
            return None
        return line.keyword if line.keyword in keywords else None

    @staticmethod
    def _is_text(line: Line | None) -> bool:
        return line is not None and line.kind is LineKind.TEXT

    def _take_tags(self) -> list[str]:
        tags, self.pending_tags = self.pending_tags, []
        return tags

    def _open_step(self, line: Line, owner: ParserState) -> ParserState:
        self.step = _StepDraft(line.text, line.line_number)
        self.step_owner = owner
        self._advance()
        return ParserState.IN_STEP

    # ── Shared transitions ───────────────────────────────────────────

    def _parse_tag(self, line: Line | None) -> ParserState | None:
        if line is None or line.kind is not LineKind.TAG:
            return None
        self.pending_tags = list(_merge_tags(self.pending_tags, split_tags(line.text)))
        self._advance()
        return self.state

    def _parse_feature(self, line: Line | None) -> ParserState | None:
        if self._keyword(line, (Keyword.FEATURE,)) is None:
            return None
        assert line is not None
        if self.feature is not None:
            self._fail("Cannot have multiple Features in a single Gherkin document", line)
        self.feature = _FeatureDraft(description=line.text, tags=self._take_tags())
        self._advance()
        return ParserState.IN_FEATURE

    # ── Feature ──────────────────────────────────────────────────────

    def _parse_feature_description(self, line: Line | None) -> ParserState | None:
        feature = self.feature
        assert feature is not None
        if not self._is_text(line) or feature.background or feature.rules or self.rule:
            return None
        assert line is not None
        feature.description = _append_description(feature.description, line.text)
        self._advance()
        return ParserState.IN_FEATURE

    def _parse_background(self, line: Line | None) -> ParserState | None:
        if self._keyword(line, (Keyword.BACKGROUND,)) is None:
            return None
        assert line is not None and self.feature is not None
        if self.feature.background is not None:
            self._fail(
                "Cannot have more than one Background section in a single Gherkin feature", line,
            )
        if self.feature.rules or self.rule is not None:
            self._fail(
                "Cannot declare a Background section after the first "
                "Rule/Scenario/Example in a Gherkin feature",
                line,
            )
        self.feature.background = _BackgroundDraft(description=line.text)
        self._advance()
        return ParserState.IN_BACKGROUND

    def _parse_rule(self, line: Line | None) -> ParserState | None:
        if self._keyword(line, (Keyword.RULE,)) is None:
            return None
        assert line is not None
        self.rule = _RuleDraft(description=line.text, tags=self._take_tags())
        self._advance()
        return ParserState.IN_RULE

    def _parse_top_level_example(self, line: Line | None) -> ParserState | None:
        # Legacy scenarios outside any Rule are wrapped in an implicit one
        if self._keyword(line, EXAMPLE_KEYWORDS) is None:
            return None
        self.rule = _RuleDraft(description=None, tags=[])
        return self._parse_example(line)

    def _complete_feature(self, line: Line | None) -> ParserState | None:
        if line is not None:
            return None
        feature = self.feature
        assert feature is not None
        background = None
        if feature.background is not None:
            background = Background(feature.background.description, tuple(feature.background.steps))
        self.result = Feature(
            description=feature.description,
            tags=tuple(feature.tags),
            background=background,
            rules=tuple(feature.rules),
        )
        logger.debug(
            "Parsed '%s': %d rule(s), %d example(s)",
            self.result.name, len(self.result.rules), len(self.result.examples),
        )
        return ParserState.COMPLETE

    # ── Background ───────────────────────────────────────────────────

    def _parse_background_description(self, line: Line | None) -> ParserState | None:
        background = self.feature.background if self.feature else None
        if not self._is_text(line) or background is None or background.steps:
            return None
        assert line is not None
        background.description = _append_description(background.description, line.text)
        self._advance()
        return ParserState.IN_BACKGROUND

    def _parse_background_step(self, line: Line | None) -> ParserState | None:
        keyword = self._keyword(line, STEP_KEYWORDS)
        if keyword is None:
            return None
        assert line is not None and self.feature and self.feature.background
        if keyword in CONTINUATION_KEYWORDS:
            if not self.feature.background.steps:
                self._fail(f"'{keyword.value}' steps must follow a Given step", line)
        elif keyword is not Keyword.GIVEN:
            self._fail("Background steps can only consist of Givens", line)
        return self._open_step(line, ParserState.IN_BACKGROUND)

    def _complete_background(self, line: Line | None) -> ParserState | None:
        assert self.feature is not None and self.feature.background is not None
        if not self.feature.background.steps:
            self._fail("A Background section must have at least one step", line)
        return ParserState.IN_FEATURE

    # ── Rule ─────────────────────────────────────────────────────────

    def _parse_rule_description(self, line: Line | None) -> ParserState | None:
        rule = self.rule
        if not self._is_text(line) or rule is None or rule.examples:
            return None
        assert line is not None
        rule.description = _append_description(rule.description, line.text)
        self._advance()
        return ParserState.IN_RULE

    def _parse_example(self, line: Line | None) -> ParserState | None:
        keyword = self._keyword(line, EXAMPLE_KEYWORDS)
        if keyword is None:
            return None
        assert line is not None
        self.example = _ExampleDraft(
            description=line.text,
            keyword=keyword,
            tags=self._take_tags(),
            line_number=line.line_number,
        )
        self._advance()
        return ParserState.IN_EXAMPLE

    def _complete_rule(self, line: Line | None) -> ParserState | None:
        rule = self.rule
        assert rule is not None and self.feature is not None
        self.feature.rules.append(Rule(rule.description, tuple(rule.tags), tuple(rule.examples)))
        self.rule = None
        return ParserState.IN_FEATURE

    # ── Example ──────────────────────────────────────────────────────

    def _parse_example_description(self, line: Line | None) -> ParserState | None:
        example = self.example
        if not self._is_text(line) or example is None or example.steps or example.data:
            return None
        assert line is not None
        example.description = _append_description(example.description, line.text)
        self._advance()
        return ParserState.IN_EXAMPLE

    def _parse_example_step(self, line: Line | None) -> ParserState | None:
        keyword = self._keyword(line, STEP_KEYWORDS)
        if keyword is None:
            return None
        assert line is not None and self.example is not None
        if self.example.data:
            self._fail("Steps cannot follow the Examples of a Scenario Outline", line)
        if keyword in CONTINUATION_KEYWORDS and not self.example.steps:
            self._fail(f"'{keyword.value}' steps must follow a Given, When or Then step", line)
        return self._open_step(line, ParserState.IN_EXAMPLE)

    def _parse_data(self, line: Line | None) -> ParserState | None:
        example = self.example
        assert example is not None
        if self._keyword(line, DATA_KEYWORDS) is not None:
            assert line is not None
            example.data.append(_DataBlock(tags=self._take_tags(), line_number=line.line_number))
            self._advance()
            return ParserState.IN_EXAMPLE
        if line is None or line.kind is not LineKind.TABLE_ROW:
            return None
        if not example.data:
            self._fail("Table rows must follow a step or an Examples keyword", line)
        example.data[-1].rows.append(split_cells(line.text))
        self._advance()
        return ParserState.IN_EXAMPLE

    def _complete_example(self, line: Line | None) -> ParserState | None:
        example, rule, feature = self.example, self.rule, self.feature
        if example is None:
            return None
        assert rule is not None and feature is not None
        inherited = (rule.tags, feature.tags)

        if not example.data:
            if example.keyword in OUTLINE_KEYWORDS:
                self._fail(
                    f"'{example.keyword.value}' requires an Examples block",
                    line_number=example.line_number,
                )
            rule.examples.append(Example(
                description=example.description,
                tags=_merge_tags(example.tags, *inherited),
                steps=tuple(example.steps),
            ))
        else:
            rule.examples.extend(self._expand_outline(example, inherited))

        self.example = None
        return ParserState.IN_RULE

    def _expand_outline(
        self, example: _ExampleDraft, inherited: tuple[list[str], list[str]],
    ) -> list[Example]:
        """Produce one Example per value row of each data block."""
        searchable = " ".join(
            [example.description]
            + [step.description for step in example.steps]
            + [_argument_text(step.argument) for step in example.steps]
        )
        tokens = list(dict.fromkeys(PLACEHOLDER_RE.findall(searchable)))

        for block in example.data:
            if len(block.rows) < 2:
                self._fail(
                    "An Examples block needs a header row and at least one row of values",
                    line_number=block.line_number,
                )
            if any(len(row) != len(tokens) for row in block.rows):
                self._fail(
                    f"Data values must be provided for all {len(tokens)} different tokens "
                    "that were specified in the Example, and there should be no additional "
                    "data values",
                    line_number=block.line_number,
                )
            if set(block.rows[0]) != set(tokens) or len(set(block.rows[0])) != len(tokens):
                self._fail(
                    f"Examples header ({', '.join(block.rows[0])}) does not match the "
                    f"tokens used in the Example ({', '.join(tokens)})",
                    line_number=block.line_number,
                )

        expanded: list[Example] = []
        for block in example.data:
            header, values = block.rows[0], block.rows[1:]
            tags = _merge_tags(example.tags, block.tags, *inherited)
            for row in values:
                substitutions = dict(zip(header, row))
                expanded.append(Example(
                    description=_substitute(example.description, substitutions),
                    tags=tags,
                    steps=tuple(_substitute_step(step, substitutions) for step in example.steps),
                ))
        return expanded

    # ── Step ─────────────────────────────────────────────────────────

    def _parse_argument_start(self, line: Line | None) -> ParserState | None:
        step = self.step
        if line is None or step is None or step.has_argument:
            return None
        if line.kind is LineKind.DOC_STRING_FENCE:
            step.fence = line.text[:3]
            step.media_type = line.text[3:].strip() or None
            step.doc_lines = []
        elif line.kind is LineKind.TABLE_ROW:
            step.rows = [split_cells(line.text)]
        else:
            return None
        self._advance()
        return ParserState.IN_ARGUMENT

    def _complete_step(self, line: Line | None) -> ParserState | None:
        step = self.step
        assert step is not None and self.feature is not None
        if self.step_owner is ParserState.IN_BACKGROUND:
            assert self.feature.background is not None
            self.feature.background.steps.append(step.build())
        else:
            assert self.example is not None
            self.example.steps.append(step.build())
        self.step = None
        return self.step_owner

    def _parse_argument_line(self, line: Line | None) -> ParserState | None:
        step = self.step
        if line is None or step is None:
            return None
        if step.doc_lines is not None:
            if step.doc_closed:
                return None
            if line.text == step.fence:
                step.doc_closed = True
                self._advance()
                return ParserState.IN_STEP
            step.doc_lines.append(line.text)
            self._advance()
            return ParserState.IN_ARGUMENT
        if step.rows is not None and line.kind is LineKind.TABLE_ROW:
            step.rows.append(split_cells(line.text))
            self._advance()
            return ParserState.IN_ARGUMENT
        return None

    def _complete_argument(self, line: Line | None) -> ParserState | None:
        step = self.step
        assert step is not None
        if step.doc_lines is not None and not step.doc_closed:
            self._fail(
                f"Unterminated doc string in step '{step.description}'",
                line_number=step.line_number,
            )
        if step.rows is not None:
            if not step.rows:
                self._fail(
                    "Can't have a data table argument with no rows", line_number=step.line_number,
                )
            width = len(step.rows[0])
            if width == 0:
                self._fail(
                    "Can't have a data table argument with no columns",
                    line_number=step.line_number,
                )
            if any(len(row) != width for row in step.rows):
                self._fail(
                    "Data table arguments should have the same number of elements per row",
                    line_number=step.line_number,
                )
        return ParserState.IN_STEP


def _argument_text(argument: StepArgument | None) -> str:
    if isinstance(argument, DataTable):
        return " ".join(" ".join(row) for row in argument.rows)
    if isinstance(argument, DocString):
        return argument.content
    return ""


def _substitute(text: str, substitutions: dict[str, str]) -> str:
    return PLACEHOLDER_RE.sub(lambda m: substitutions.get(m.group(1), m.group(0)), text)


def _substitute_step(step: Step, substitutions: dict[str, str]) -> Step:
    argument = step.argument
    if isinstance(argument, DocString):
        argument = DocString(_substitute(argument.content, substitutions), argument.media_type)
    elif isinstance(argument, DataTable):
        argument = DataTable(tuple(
            tuple(_substitute(cell, substitutions) for cell in row) for row in argument.rows
        ))
    return Step(_substitute(step.description, substitutions), argument)


# ── Entry points ─────────────────────────────────────────────────────


def parse_feature(content: str) -> Feature:
    """Parse Gherkin text into a Feature. Raises GherkinParseError."""
    tokens = Lexer(content).tokenize()
    return Parser(tokens).parse()


def parse_feature_bytes(data: bytes) -> Feature:
    """Parse UTF-8 encoded Gherkin. Raises UnicodeDecodeError on bad input."""
    return parse_feature(data.decode("utf-8"))


def parse_feature_file(path: Path) -> Feature:
    """Parse a .feature file."""
    return parse_feature_bytes(Path(path).read_bytes())


def parse_feature_files(paths: Iterable[Path]) -> ParseResult:
    """Parse several files, collecting each file's failure instead of stopping."""
    result = ParseResult()
    for path in paths:
        try:
            result.features.append(parse_feature_file(path))
        except GherkinParseError as exc:
            result.errors.append(FileParseError(exc.message, exc.line_number, str(path)))
        except UnicodeDecodeError as exc:
            result.errors.append(FileParseError(
                f"The file could not be decoded as UTF-8: {exc.reason}", None, str(path),
            ))
    return result
