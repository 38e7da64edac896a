"""
Tests for the DSL tokenizer, parser and canonical printer.

Tests verify that:
    - Every supported comparison shape parses to the right AST
    - Canonical text round-trips exactly through parse and print
    - Alias forms and loose whitespace print canonically
    - Malformed text raises CompileError with a position
"""

import pytest

from surveynav.errors import CompileError
from surveynav.expressions import (
    Combinator,
    Comparison,
    ComparisonKind,
    CompoundCondition,
    EmptyCondition,
)
from surveynav.parser import (
    canonicalize,
    parse_dsl,
    referenced_variables,
    to_dsl,
    tokenize,
)


class TestTokenizer:
    """Test token splitting."""

    def test_tokenizes_equals(self):
        kinds = [t.kind for t in tokenize("equals(answer('Q1'), 'x')")]
        assert kinds == ["ident", "(", "ident", "(", "string", ")", ",", "string", ")"]

    def test_string_escapes_are_unescaped(self):
        token = tokenize(r"'it\'s'")[0]
        assert token.kind == "string"
        assert token.text == "it's"

    def test_keywords(self):
        tokens = tokenize("AND OR and")
        assert [t.kind for t in tokens] == ["keyword", "keyword", "ident"]

    def test_unterminated_string(self):
        with pytest.raises(CompileError) as exc:
            tokenize("equals(answer('Q1), 'x')")
        assert exc.value.position is not None

    def test_stray_character(self):
        with pytest.raises(CompileError):
            tokenize("equals(answer('Q1'), 'x') && x")


class TestParseComparisons:
    """Test each comparison shape."""

    def test_equals(self):
        assert parse_dsl("equals(answer('Q1'), 'BMW')") == Comparison(
            ComparisonKind.EQUALS, "Q1", ("BMW",)
        )

    def test_not_equals(self):
        assert parse_dsl("not(equals(answer('Q1'), 'BMW'))") == Comparison(
            ComparisonKind.NOT_EQUALS, "Q1", ("BMW",)
        )

    def test_any_selected(self):
        assert parse_dsl("anySelected('Q2', ['a', 'b'])") == Comparison(
            ComparisonKind.ANY_SELECTED, "Q2", ("a", "b")
        )

    def test_all_selected(self):
        assert parse_dsl("allSelected('Q2', ['a'])") == Comparison(
            ComparisonKind.ALL_SELECTED, "Q2", ("a",)
        )

    def test_not_any_selected(self):
        assert parse_dsl("not(anySelected('Q2', ['a']))") == Comparison(
            ComparisonKind.NONE_SELECTED, "Q2", ("a",)
        )

    def test_none_selected_alias(self):
        assert parse_dsl("noneSelected('Q2', ['a'])").kind is ComparisonKind.NONE_SELECTED

    def test_not_equals_alias(self):
        assert parse_dsl("notEquals(answer('Q1'), 'x')").kind is ComparisonKind.NOT_EQUALS

    def test_greater_and_less_than(self):
        assert parse_dsl("greaterThan(answer('AGE'), '17')") == Comparison(
            ComparisonKind.GREATER_THAN, "AGE", ("17",)
        )
        assert parse_dsl("lessThan(answer('AGE'), '65.5')").kind is ComparisonKind.LESS_THAN

    def test_contains(self):
        assert parse_dsl("contains(answer('Q7'), 'refund')") == Comparison(
            ComparisonKind.CONTAINS, "Q7", ("refund",)
        )

    def test_emptiness(self):
        assert parse_dsl("isEmpty(answer('Q7'))") == Comparison(ComparisonKind.IS_EMPTY, "Q7", ())
        assert parse_dsl("isNotEmpty(answer('Q7'))") == Comparison(ComparisonKind.IS_NOT_EMPTY, "Q7", ())


class TestParseGroups:
    """Test parenthesised AND / OR groups."""

    def test_or_group(self):
        condition = parse_dsl("(equals(answer('Q1'), 'BMW') OR equals(answer('Q1'), 'AUDI'))")
        assert isinstance(condition, CompoundCondition)
        assert condition.combinator is Combinator.OR
        assert [c.value for c in condition.comparisons] == ["BMW", "AUDI"]

    def test_and_group(self):
        condition = parse_dsl("(equals(answer('Q1'), 'BMW') AND anySelected('Q2', ['NAV']))")
        assert condition.combinator is Combinator.AND
        assert len(condition.comparisons) == 2

    def test_empty_group(self):
        condition = parse_dsl("()")
        assert condition == CompoundCondition(Combinator.AND, ())

    def test_mixed_combinators_rejected(self):
        with pytest.raises(CompileError, match="mix"):
            parse_dsl(
                "(equals(answer('Q1'), 'a') AND equals(answer('Q1'), 'b') OR equals(answer('Q1'), 'c'))"
            )

    def test_nested_groups_rejected(self):
        with pytest.raises(CompileError):
            parse_dsl("((equals(answer('Q1'), 'a')))")


class TestParseEmptyAndErrors:
    """Test empty input and malformed text."""

    @pytest.mark.parametrize("dsl", [None, "", "   ", "\n\t"])
    def test_empty_is_empty_condition(self, dsl):
        assert isinstance(parse_dsl(dsl), EmptyCondition)

    @pytest.mark.parametrize(
        "dsl",
        [
            "equals(answer('Q1'))",
            "equals(answer('Q1'), x)",
            "anySelected('Q1', [])",
            "anySelected('', ['a'])",
            "unknown('Q1', ['a'])",
            "not(allSelected('Q1', ['a']))",
            "equals(answer('Q1'), 'a') equals(answer('Q2'), 'b')",
            "(equals(answer('Q1'), 'a')",
            "greaterThan(answer('Q1'), 'lots')",
            "lessThan(answer('Q1'), 'NaN')",
            "isEmpty('Q1')",
            "isNotEmpty(answer('Q1'), 'x')",
            "not(isEmpty(answer('Q1')))",
        ],
    )
    def test_malformed_raises(self, dsl):
        with pytest.raises(CompileError):
            parse_dsl(dsl)

    def test_error_reports_position(self):
        with pytest.raises(CompileError) as exc:
            parse_dsl("equals(answer('Q1'), 'a') junk")
        assert exc.value.position == len("equals(answer('Q1'), 'a') ")

    def test_non_numeric_literal_position(self):
        with pytest.raises(CompileError, match="Expected a number") as exc:
            parse_dsl("greaterThan(answer('Q1'), 'ten')")
        assert exc.value.position == len("greaterThan(answer('Q1'), ")


class TestCanonicalPrinter:
    """Test that printing is canonical and round-trips."""

    @pytest.mark.parametrize(
        "dsl",
        [
            "equals(answer('Q1'), 'BMW')",
            "not(equals(answer('Q1'), 'BMW'))",
            "anySelected('Q2', ['a', 'b'])",
            "allSelected('Q2', ['a', 'b'])",
            "not(anySelected('Q2', ['a']))",
            "(equals(answer('Q1'), 'BMW') OR equals(answer('Q1'), 'AUDI'))",
            "(equals(answer('Q1'), 'BMW') AND not(anySelected('Q2', ['NAV'])))",
            "(equals(answer('Q1'), 'BMW'))",
            "greaterThan(answer('AGE'), '17')",
            "lessThan(answer('AGE'), '65.5')",
            "contains(answer('Q7'), 'refund')",
            "isEmpty(answer('Q7'))",
            "isNotEmpty(answer('Q7'))",
            "(greaterThan(answer('AGE'), '17') AND isNotEmpty(answer('Q7')))",
            "()",
        ],
    )
    def test_canonical_text_round_trips(self, dsl):
        assert to_dsl(parse_dsl(dsl)) == dsl

    def test_whitespace_normalised(self):
        assert canonicalize("equals( answer( 'Q1' ) ,'x' )") == "equals(answer('Q1'), 'x')"

    def test_aliases_print_canonically(self):
        assert canonicalize("noneSelected('Q1', ['a','b'])") == "not(anySelected('Q1', ['a', 'b']))"
        assert canonicalize("notEquals(answer('Q1'),'x')") == "not(equals(answer('Q1'), 'x'))"

    def test_escaped_quote_round_trips(self):
        dsl = r"equals(answer('Q1'), 'it\'s')"
        assert parse_dsl(dsl).value == "it's"
        assert to_dsl(parse_dsl(dsl)) == dsl

    def test_print_is_idempotent(self):
        text = canonicalize("( anySelected('Q2',['b','a'])  OR equals(answer('Q1'),'x') )")
        assert canonicalize(text) == text

    def test_empty_prints_empty(self):
        assert to_dsl(EmptyCondition()) == ""


def test_referenced_variables():
    condition = parse_dsl("(equals(answer('Q1'), 'a') OR anySelected('Q2', ['b']))")
    assert referenced_variables(condition) == {"Q1", "Q2"}
    assert referenced_variables(EmptyCondition()) == set()
