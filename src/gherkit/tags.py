"""Boolean tag expressions used to select which examples run.

Expressions are built from two leaves and four combinators::

    tag("smoke").and_("fast")           # both tags present
    not_("wip").or_("forced")           # "wip" absent, or "forced" present
    tag("a").or_(tag("b").and_("c"))    # sub-expressions group explicitly

The right operand of a combinator is either a tag name or another
expression. The two forms evaluate differently: with a tag name the left
side's partial result is carried forward, with an expression both sides are
reduced to plain success/failure first.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, Union


class ExpressionKind(Enum):
    TAG = auto()
    NOT = auto()
    AND_TAG = auto()
    OR_TAG = auto()
    AND_NOT_TAG = auto()
    OR_NOT_TAG = auto()
    AND = auto()
    OR = auto()
    AND_NOT = auto()
    OR_NOT = auto()


class MatchResult(Enum):
    SUCCESS = auto()
    NOT_INCLUDED = auto()
    EXCLUDED = auto()
    NOT_INCLUDED_AND_EXCLUDED = auto()
    FAILURE = auto()


S = MatchResult.SUCCESS
N = MatchResult.NOT_INCLUDED
E = MatchResult.EXCLUDED
NE = MatchResult.NOT_INCLUDED_AND_EXCLUDED
F = MatchResult.FAILURE

# left result -> (result when the right tag is present, result when absent)
_AND_TAG = {S: (S, N), E: (E, NE), N: (N, N), NE: (NE, NE), F: (F, F)}
_OR_TAG = {S: (S, S), E: (E, NE), N: (S, N), NE: (E, NE), F: (F, F)}
_OR_NOT_TAG = {S: (S, S), E: (E, S), N: (N, N), NE: (NE, N), F: (F, F)}
_AND_NOT_TAG = {S: (E, S), E: (E, E), N: (NE, N), NE: (NE, NE), F: (F, F)}

_TAG_TABLES = {
    ExpressionKind.AND_TAG: _AND_TAG,
    ExpressionKind.OR_TAG: _OR_TAG,
    ExpressionKind.OR_NOT_TAG: _OR_NOT_TAG,
    ExpressionKind.AND_NOT_TAG: _AND_NOT_TAG,
}

Operand = Union["TagExpression", str]


@dataclass(frozen=True)
class TagExpression:
    """A node of a tag expression tree."""

    kind: ExpressionKind
    name: str | None = None
    left: TagExpression | None = None
    right: TagExpression | None = None

    def and_(self, other: Operand) -> TagExpression:
        return self._combine(other, ExpressionKind.AND_TAG, ExpressionKind.AND)

    def or_(self, other: Operand) -> TagExpression:
        return self._combine(other, ExpressionKind.OR_TAG, ExpressionKind.OR)

    def and_not(self, other: Operand) -> TagExpression:
        return self._combine(other, ExpressionKind.AND_NOT_TAG, ExpressionKind.AND_NOT)

    def or_not(self, other: Operand) -> TagExpression:
        return self._combine(other, ExpressionKind.OR_NOT_TAG, ExpressionKind.OR_NOT)

    __and__ = and_
    __or__ = or_

    def _combine(
        self, other: Operand, tag_kind: ExpressionKind, expression_kind: ExpressionKind,
    ) -> TagExpression:
        if isinstance(other, TagExpression):
            return TagExpression(expression_kind, left=self, right=other)
        if isinstance(other, str):
            return TagExpression(tag_kind, name=other, left=self)
        raise TypeError(f"Cannot combine a tag expression with {type(other).__name__}")

    def matches(self, tags: Iterable[str] | str | None) -> bool:
        """Return True if the given tag set satisfies this expression."""
        if tags is None:
            tag_set: frozenset[str] = frozenset()
        elif isinstance(tags, str):
            tag_set = frozenset([tags])
        else:
            tag_set = frozenset(tags)
        return self._match_result(tag_set) is MatchResult.SUCCESS

    def _match_result(self, tags: frozenset[str]) -> MatchResult:
        kind = self.kind

        if kind is ExpressionKind.TAG:
            return S if self.name in tags else N
        if kind is ExpressionKind.NOT:
            return S if self.name not in tags else E

        assert self.left is not None
        if kind in _TAG_TABLES:
            present, absent = _TAG_TABLES[kind][self.left._match_result(tags)]
            return present if self.name in tags else absent

        assert self.right is not None
        first = self.left._match_result(tags) is S
        second = self.right._match_result(tags) is S
        if kind is ExpressionKind.AND:
            return S if first and second else F
        if kind is ExpressionKind.OR:
            return S if first or second else F
        if kind is ExpressionKind.AND_NOT:
            return S if first and not second else F
        if kind is ExpressionKind.OR_NOT:
            return S if first or not second else F
        raise ValueError(f"Unknown tag expression kind: {kind}")

    def __str__(self) -> str:
        kind = self.kind
        if kind is ExpressionKind.TAG:
            return f"@{self.name}"
        if kind is ExpressionKind.NOT:
            return f"not @{self.name}"
        operator = _OPERATORS[kind]
        right = f"@{self.name}" if kind in _TAG_TABLES else f"({self.right})"
        return f"{self.left} {operator} {right}"


_OPERATORS = {
    ExpressionKind.AND_TAG: "and",
    ExpressionKind.AND: "and",
    ExpressionKind.OR_TAG: "or",
    ExpressionKind.OR: "or",
    ExpressionKind.AND_NOT_TAG: "and not",
    ExpressionKind.AND_NOT: "and not",
    ExpressionKind.OR_NOT_TAG: "or not",
    ExpressionKind.OR_NOT: "or not",
}


def tag(name: str) -> TagExpression:
    """Match when ``name`` is among the tags."""
    return TagExpression(ExpressionKind.TAG, name=name)


def not_(name: str) -> TagExpression:
    """Match when ``name`` is not among the tags."""
    return TagExpression(ExpressionKind.NOT, name=name)


def from_tag_lists(
    include: Iterable[str] = (), exclude: Iterable[str] = (),
) -> TagExpression | None:
    """Build "any of include, and none of exclude". None when both are empty."""
    include = [name.lstrip("@") for name in include]
    exclude = [name.lstrip("@") for name in exclude]
    expression: TagExpression | None = None
    for name in include:
        expression = tag(name) if expression is None else expression.or_(tag(name))
    for name in exclude:
        expression = not_(name) if expression is None else expression.and_(not_(name))
    return expression
