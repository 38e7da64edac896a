"""
Condition AST for the survey logic DSL.

Conditions are stored as DSL text (the wire/storage format), but the
engine never evaluates raw strings. Text is parsed once into these
nodes by surveynav.parser and printed back by surveynav.parser.to_dsl.

ARCHITECTURAL RULE:
    These nodes are structure only.
    Evaluation lives in surveynav.evaluator.
    Printing lives in surveynav.parser.
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class Condition(ABC):
    """
    Base class for all condition nodes.

    Exists to give the node hierarchy a common type. DO NOT add
    evaluation or printing here.
    """
    pass


class ComparisonKind(Enum):
    """
    The comparison shapes the DSL supports.

    Each maps to exactly one surface form:
        EQUALS         equals(answer('Q1'), 'x')
        NOT_EQUALS     not(equals(answer('Q1'), 'x'))
        ANY_SELECTED   anySelected('Q1', ['a', 'b'])
        ALL_SELECTED   allSelected('Q1', ['a', 'b'])
        NONE_SELECTED  not(anySelected('Q1', ['a', 'b']))
        GREATER_THAN   greaterThan(answer('Q1'), '18')
        LESS_THAN      lessThan(answer('Q1'), '65')
        CONTAINS       contains(answer('Q1'), 'x')
        IS_NOT_EMPTY   isNotEmpty(answer('Q1'))
        IS_EMPTY       isEmpty(answer('Q1'))

    IS_EMPTY is the negated form of IS_NOT_EMPTY, so an unanswered
    question is empty.
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    ANY_SELECTED = "any_selected"
    ALL_SELECTED = "all_selected"
    NONE_SELECTED = "none_selected"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    IS_NOT_EMPTY = "is_not_empty"
    IS_EMPTY = "is_empty"

    @property
    def negated(self) -> bool:
        return self in (ComparisonKind.NOT_EQUALS, ComparisonKind.NONE_SELECTED, ComparisonKind.IS_EMPTY)

    @property
    def positive(self) -> "ComparisonKind":
        """The non-negated form this kind is the complement of."""
        if self is ComparisonKind.NOT_EQUALS:
            return ComparisonKind.EQUALS
        if self is ComparisonKind.NONE_SELECTED:
            return ComparisonKind.ANY_SELECTED
        if self is ComparisonKind.IS_EMPTY:
            return ComparisonKind.IS_NOT_EMPTY
        return self


class Combinator(Enum):
    """Logical joiner for a parenthesised group. Never mixed within a group."""

    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class Comparison(Condition):
    """
    A single test against one question's answer.

    Properties:
        kind: which comparison shape
        variable: the question's variableName (e.g. "Q3")
        values: the literal(s); exactly one for the answer(...)-and-value
            forms, none for IS_EMPTY / IS_NOT_EMPTY

    IMPORTANT:
        This node does NOT check that the variable exists.
        That belongs to the analyzer and to validation.
    """

    kind: ComparisonKind
    variable: str
    values: Tuple[str, ...]

    @property
    def value(self) -> str:
        """The single literal of an equals-style comparison."""
        return self.values[0]


@dataclass(frozen=True)
class CompoundCondition(Condition):
    """
    A parenthesised group joined by a single combinator.

    Example:
        (equals(answer('Q1'), 'BMW') OR equals(answer('Q1'), 'AUDI'))

    Becomes:
        CompoundCondition(
            combinator=Combinator.OR,
            comparisons=(
                Comparison(ComparisonKind.EQUALS, "Q1", ("BMW",)),
                Comparison(ComparisonKind.EQUALS, "Q1", ("AUDI",)),
            ),
        )

    A group holding one comparison (or none, "()") is legal. The parser
    records AND for it; the printer never shows a combinator there, so
    the text still round-trips.
    """

    combinator: Combinator
    comparisons: Tuple[Comparison, ...]


@dataclass(frozen=True)
class EmptyCondition(Condition):
    """A condition with zero comparisons. Always true."""
    pass
