"""Step patterns: compile author-facing patterns and bind steps to handlers.

Pattern mini-language:
    <name>            captures one or more characters
    <name(regex)>     captures text matching the given regular expression
    \\<               a literal "<"

Everything else in the pattern is used as a regular expression fragment as
written. The compiled pattern must match the whole step description,
including its leading Given/When/Then/And/But keyword (case-insensitive).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from gherkit.models import DataTable, Step, StepArgument

logger = logging.getLogger(__name__)

KEYWORD_PREFIX = r"^(?i:given|when|then|and|but)\s+"
_NAME_RE = re.compile(r"\w+")


class StepPatternError(ValueError):
    """Raised when a step pattern cannot be compiled."""


class StepMatchError(LookupError):
    """Raised when a step cannot be bound to exactly one definition."""

    def __init__(self, message: str, step: Step) -> None:
        super().__init__(message)
        self.step = step


class NoMatchingStepError(StepMatchError):
    """No registered pattern matches the step."""


class AmbiguousStepError(StepMatchError):
    """More than one registered pattern matches the step."""

    def __init__(self, message: str, step: Step, patterns: list[str]) -> None:
        super().__init__(message, step)
        self.patterns = patterns


@dataclass(frozen=True)
class StepPattern:
    """A compiled step pattern."""

    source: str
    regex: re.Pattern[str]
    names: tuple[str, ...]

    def match(self, description: str) -> dict[str, str] | None:
        found = self.regex.match(description)
        if found is None:
            return None
        return {name: found.group(name) for name in self.names}


def compile_step_pattern(pattern: str) -> StepPattern:
    """Compile an author-facing step pattern."""
    body = pattern.strip()
    if body.startswith("^"):
        body = body[1:]
    if body.endswith("$") and not body.endswith("\\$"):
        body = body[:-1]

    parts: list[str] = []
    names: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            parts.append(re.escape("<") if body[i + 1] == "<" else body[i:i + 2])
            i += 2
            continue
        if char == "<":
            placeholder = _read_placeholder(body, i)
            if placeholder is not None:
                name, subpattern, end = placeholder
                if name in names:
                    raise StepPatternError(
                        f"Placeholder <{name}> appears more than once in step pattern '{pattern}'"
                    )
                names.append(name)
                parts.append(f"(?P<{name}>{subpattern})")
                i = end
                continue
        parts.append(char)
        i += 1

    try:
        regex = re.compile(KEYWORD_PREFIX + "(?:" + "".join(parts) + ")$")
    except re.error as exc:
        raise StepPatternError(f"Invalid step pattern '{pattern}': {exc}") from exc
    return StepPattern(source=pattern, regex=regex, names=tuple(names))


def _read_placeholder(body: str, start: int) -> tuple[str, str, int] | None:
    """Read a placeholder at ``start``. Returns (name, subpattern, end) or None."""
    name_match = _NAME_RE.match(body, start + 1)
    if name_match is None:
        return None
    name = name_match.group(0)
    pos = name_match.end()
    if pos < len(body) and body[pos] == ">":
        return name, ".+", pos + 1
    if pos >= len(body) or body[pos] != "(":
        return None

    # Find the parenthesis closing the custom subpattern
    depth = 0
    i = pos
    while i < len(body):
        char = body[i]
        if char == "\\":
            i += 2
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                if i + 1 < len(body) and body[i + 1] == ">":
                    return name, body[pos + 1:i], i + 2
                return None
        i += 1
    return None


@dataclass(frozen=True)
class StepInput:
    """The bound input handed to a step action."""

    step: Step
    values: dict[str, str] = field(default_factory=dict)

    def __getitem__(self, name: str) -> str:
        try:
            return self.values[name]
        except KeyError:
            raise KeyError(
                f"The matched values for step '{self.step.description}' "
                f"do not contain a value for '{name}'"
            ) from None

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.values.get(name, default)

    @property
    def argument(self) -> StepArgument | None:
        return self.step.argument

    @property
    def doc_string(self) -> str | None:
        return self.step.doc_string

    @property
    def data_table(self) -> DataTable | None:
        return self.step.data_table


StepAction = Callable[[StepInput], Any]


def _no_action(step_input: StepInput) -> None:
    return None


@dataclass(frozen=True)
class StepDefinition:
    """A compiled pattern paired with the action it triggers."""

    pattern: StepPattern
    action: StepAction = _no_action
    name: str | None = None

    @classmethod
    def create(
        cls, pattern: str, action: StepAction = _no_action, name: str | None = None,
    ) -> StepDefinition:
        return cls(pattern=compile_step_pattern(pattern), action=action, name=name)


def find_match(
    step: Step, definitions: Iterable[StepDefinition],
) -> tuple[StepDefinition, StepInput]:
    """Bind ``step`` to the single definition whose pattern matches it."""
    matches: list[tuple[StepDefinition, dict[str, str]]] = []
    for definition in definitions:
        values = definition.pattern.match(step.description)
        if values is not None:
            matches.append((definition, values))

    if not matches:
        raise NoMatchingStepError(
            f"No matching step definitions found for the step '{step.description}'", step,
        )
    if len(matches) > 1:
        patterns = [d.pattern.source for d, _ in matches]
        raise AmbiguousStepError(
            f"Multiple matching step definitions found for the step "
            f"'{step.description}': {', '.join(patterns)}",
            step,
            patterns,
        )
    definition, values = matches[0]
    logger.debug("Bound '%s' to pattern '%s'", step.description, definition.pattern.source)
    return definition, StepInput(step=step, values=values)


class StepRegistry:
    """An explicit, ordered collection of step definitions.

    Definitions are added while the test suite is composed; afterwards the
    registry is only read, so one registry can serve concurrent matchers.
    """

    def __init__(self, definitions: Iterable[StepDefinition] = ()) -> None:
        self._definitions: list[StepDefinition] = list(definitions)

    @property
    def definitions(self) -> tuple[StepDefinition, ...]:
        return tuple(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def add(
        self, pattern: str, action: StepAction = _no_action, name: str | None = None,
    ) -> StepDefinition:
        definition = StepDefinition.create(pattern, action, name)
        self._definitions.append(definition)
        return definition

    def step(self, pattern: str) -> Callable[[StepAction], StepAction]:
        """Decorator registering ``pattern`` for the decorated function."""
        def decorator(action: StepAction) -> StepAction:
            self.add(pattern, action, getattr(action, "__name__", None))
            return action
        return decorator

    # The keyword a step is written with does not restrict which steps match.
    given = step
    when = step
    then = step

    def match(self, step: Step) -> tuple[StepDefinition, StepInput]:
        return find_match(step, self._definitions)
