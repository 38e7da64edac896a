"""
DSL tokenizer, parser and canonical printer.

Converts condition text such as

    (equals(answer('Q1'), 'BMW') OR anySelected('Q2', ['a', 'b']))

into the AST in surveynav.expressions, and prints an AST back to text.
For canonical input, to_dsl(parse_dsl(text)) == text.

Besides equals, anySelected and allSelected the grammar has
greaterThan / lessThan (numeric literal), contains, isEmpty and isNotEmpty.

Accepted on input but printed canonically:
    - any whitespace between tokens
    - noneSelected('Q1', [...])  ->  not(anySelected('Q1', [...]))
    - notEquals(answer('Q1'), 'x')  ->  not(equals(answer('Q1'), 'x'))
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Set, Tuple

from surveynav.errors import CompileError
from surveynav.expressions import (
    Combinator,
    Comparison,
    ComparisonKind,
    CompoundCondition,
    Condition,
    EmptyCondition,
)


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>'(?:[^'\\]|\\.)*')
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<punct>[()\[\],])
    """,
    re.VERBOSE,
)

_KEYWORDS = {"AND", "OR"}

# name(answer('Q1'), 'literal') forms other than equals
_VALUE_FUNCTIONS = {
    "greaterThan": ComparisonKind.GREATER_THAN,
    "lessThan": ComparisonKind.LESS_THAN,
    "contains": ComparisonKind.CONTAINS,
}


def tokenize(dsl: str) -> List[Token]:
    """Split DSL text into tokens. Raises CompileError on stray characters."""
    tokens: List[Token] = []
    pos = 0
    while pos < len(dsl):
        match = _TOKEN_RE.match(dsl, pos)
        if match is None:
            if dsl[pos] == "'":
                raise CompileError("Unterminated string literal", dsl, pos)
            raise CompileError(f"Unexpected character {dsl[pos]!r}", dsl, pos)
        kind = match.lastgroup
        text = match.group()
        if kind == "string":
            tokens.append(Token("string", _unescape(text[1:-1]), pos))
        elif kind == "ident":
            tokens.append(Token("keyword" if text in _KEYWORDS else "ident", text, pos))
        elif kind == "punct":
            tokens.append(Token(text, text, pos))
        pos = match.end()
    return tokens


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", r"\1", body)


def _quote(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, dsl: str):
        self.dsl = dsl
        self.tokens = tokenize(dsl)
        self.pos = 0

    # ----- token helpers -----

    def _peek(self, offset: int = 0):
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def _error(self, message: str) -> CompileError:
        token = self._peek()
        position = token.position if token else len(self.dsl)
        return CompileError(message, self.dsl, position)

    def _expect(self, kind: str, text: str = None) -> Token:
        token = self._peek()
        if token is None:
            raise self._error(f"Unexpected end of expression, expected {text or kind!r}")
        if token.kind != kind or (text is not None and token.text != text):
            raise self._error(f"Expected {text or kind!r}, got {token.text!r}")
        self.pos += 1
        return token

    def _at(self, kind: str, text: str = None, offset: int = 0) -> bool:
        token = self._peek(offset)
        return token is not None and token.kind == kind and (text is None or token.text == text)

    # ----- grammar -----

    def parse(self) -> Condition:
        if not self.tokens:
            return EmptyCondition()
        if self._at("("):
            condition = self._parse_group()
        else:
            condition = self._parse_comparison()
        if self._peek() is not None:
            raise self._error(f"Unexpected token {self._peek().text!r} after expression")
        return condition

    def _parse_group(self) -> CompoundCondition:
        self._expect("(")
        if self._at(")"):
            self.pos += 1
            return CompoundCondition(Combinator.AND, ())

        comparisons = [self._parse_comparison()]
        combinator = None
        while self._at("keyword"):
            word = Combinator(self._peek().text)
            if combinator is not None and word is not combinator:
                raise self._error("Cannot mix AND and OR in one group")
            combinator = word
            self.pos += 1
            comparisons.append(self._parse_comparison())
        self._expect(")")
        return CompoundCondition(combinator or Combinator.AND, tuple(comparisons))

    def _parse_comparison(self) -> Comparison:
        token = self._peek()
        if token is None:
            raise self._error("Unexpected end of expression, expected a comparison")
        if token.kind != "ident":
            raise self._error(f"Expected a comparison, got {token.text!r}")

        name = token.text
        if name == "equals":
            variable, value = self._parse_equals()
            return Comparison(ComparisonKind.EQUALS, variable, (value,))
        if name == "notEquals":
            self.pos += 1
            self._expect("(")
            variable, value = self._parse_answer_and_value()
            self._expect(")")
            return Comparison(ComparisonKind.NOT_EQUALS, variable, (value,))
        if name in ("anySelected", "allSelected", "noneSelected"):
            variable, values = self._parse_selection()
            kind = {
                "anySelected": ComparisonKind.ANY_SELECTED,
                "allSelected": ComparisonKind.ALL_SELECTED,
                "noneSelected": ComparisonKind.NONE_SELECTED,
            }[name]
            return Comparison(kind, variable, values)
        if name in _VALUE_FUNCTIONS:
            variable, value = self._parse_answer_call(name)
            kind = _VALUE_FUNCTIONS[name]
            if kind in (ComparisonKind.GREATER_THAN, ComparisonKind.LESS_THAN):
                self._check_numeric(value)
            return Comparison(kind, variable, (value,))
        if name in ("isEmpty", "isNotEmpty"):
            variable = self._parse_emptiness(name)
            kind = ComparisonKind.IS_EMPTY if name == "isEmpty" else ComparisonKind.IS_NOT_EMPTY
            return Comparison(kind, variable, ())
        if name == "not":
            return self._parse_not()
        raise self._error(f"Unknown function {name!r}")

    def _parse_not(self) -> Comparison:
        self._expect("ident", "not")
        self._expect("(")
        if self._at("ident", "equals"):
            variable, value = self._parse_equals()
            comparison = Comparison(ComparisonKind.NOT_EQUALS, variable, (value,))
        elif self._at("ident", "anySelected"):
            variable, values = self._parse_selection()
            comparison = Comparison(ComparisonKind.NONE_SELECTED, variable, values)
        else:
            raise self._error("not() only wraps equals(...) or anySelected(...)")
        self._expect(")")
        return comparison

    def _parse_equals(self) -> Tuple[str, str]:
        return self._parse_answer_call("equals")

    def _parse_answer_call(self, name: str) -> Tuple[str, str]:
        self._expect("ident", name)
        self._expect("(")
        result = self._parse_answer_and_value()
        self._expect(")")
        return result

    def _parse_emptiness(self, name: str) -> str:
        self._expect("ident", name)
        self._expect("(")
        self._expect("ident", "answer")
        self._expect("(")
        variable = self._parse_variable()
        self._expect(")")
        self._expect(")")
        return variable

    def _check_numeric(self, literal: str) -> None:
        # the literal was the previous string token
        position = self.tokens[self.pos - 2].position
        try:
            number = Decimal(literal)
        except InvalidOperation:
            number = None
        if number is None or not number.is_finite():
            raise CompileError(f"Expected a number, got {literal!r}", self.dsl, position)

    def _parse_answer_and_value(self) -> Tuple[str, str]:
        self._expect("ident", "answer")
        self._expect("(")
        variable = self._parse_variable()
        self._expect(")")
        self._expect(",")
        value = self._expect("string").text
        return variable, value

    def _parse_selection(self) -> Tuple[str, Tuple[str, ...]]:
        self.pos += 1
        self._expect("(")
        variable = self._parse_variable()
        self._expect(",")
        self._expect("[")
        if self._at("]"):
            raise self._error("Value list must not be empty")
        values = [self._expect("string").text]
        while self._at(","):
            self.pos += 1
            values.append(self._expect("string").text)
        self._expect("]")
        self._expect(")")
        return variable, tuple(values)

    def _parse_variable(self) -> str:
        token = self._expect("string")
        if not token.text.strip():
            raise CompileError("Variable name must not be empty", self.dsl, token.position)
        return token.text


def parse_dsl(dsl: str) -> Condition:
    """
    Parse DSL text into a condition AST.

    Args:
        dsl: condition text; empty or whitespace-only text means "always true"

    Returns:
        EmptyCondition, a single Comparison, or a CompoundCondition

    Raises:
        CompileError: if the text does not match the grammar
    """
    if dsl is None:
        return EmptyCondition()
    if not isinstance(dsl, str):
        raise CompileError(f"Expected DSL text, got {type(dsl).__name__}")
    return _Parser(dsl).parse()


_FUNCTION_NAMES = {
    ComparisonKind.EQUALS: "equals",
    ComparisonKind.NOT_EQUALS: "equals",
    ComparisonKind.GREATER_THAN: "greaterThan",
    ComparisonKind.LESS_THAN: "lessThan",
    ComparisonKind.CONTAINS: "contains",
    ComparisonKind.ANY_SELECTED: "anySelected",
    ComparisonKind.NONE_SELECTED: "anySelected",
    ComparisonKind.ALL_SELECTED: "allSelected",
}


def _comparison_to_dsl(comparison: Comparison) -> str:
    variable = _quote(comparison.variable)
    kind = comparison.kind
    if kind is ComparisonKind.IS_EMPTY:
        return f"isEmpty(answer({variable}))"
    if kind is ComparisonKind.IS_NOT_EMPTY:
        return f"isNotEmpty(answer({variable}))"
    function = _FUNCTION_NAMES[kind]
    if kind.positive in (ComparisonKind.ANY_SELECTED, ComparisonKind.ALL_SELECTED):
        values = ", ".join(_quote(v) for v in comparison.values)
        text = f"{function}({variable}, [{values}])"
    else:
        text = f"{function}(answer({variable}), {_quote(comparison.value)})"
    return f"not({text})" if kind.negated else text


def to_dsl(condition: Condition) -> str:
    """Print a condition AST as canonical DSL text."""
    if isinstance(condition, EmptyCondition):
        return ""
    if isinstance(condition, Comparison):
        return _comparison_to_dsl(condition)
    if isinstance(condition, CompoundCondition):
        joiner = f" {condition.combinator.value} "
        return "(" + joiner.join(_comparison_to_dsl(c) for c in condition.comparisons) + ")"
    raise TypeError(f"Unsupported Condition type: {type(condition)}")


def canonicalize(dsl: str) -> str:
    """Parse and re-print, normalising whitespace and alias forms."""
    return to_dsl(parse_dsl(dsl))


def comparisons_of(condition: Condition) -> Tuple[Comparison, ...]:
    """Flatten a condition into its comparisons."""
    if isinstance(condition, Comparison):
        return (condition,)
    if isinstance(condition, CompoundCondition):
        return condition.comparisons
    return ()


def referenced_variables(condition: Condition) -> Set[str]:
    """Variable names a condition reads."""
    return {c.variable for c in comparisons_of(condition)}
