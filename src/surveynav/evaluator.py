"""
Expression evaluation.

compile_expression() turns DSL text into a CompiledExpression once; the
compiled predicate can then be evaluated any number of times against an
AnswerContext. Compilation is where malformed text is rejected.
Evaluation never raises: faults are logged and the predicate is false.

Evaluation rules:
    - zero comparisons                    -> True
    - unanswered question                 -> positive comparison False
                                             (so not(...) forms are True)
    - malformed answer payload            -> whole expression False
    - greaterThan / lessThan              -> numeric; non-numeric answer False
    - contains                            -> substring of any selected value
    - isEmpty                             -> unanswered, no choices or blank
    - AND / OR group                      -> all() / any() over comparisons
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Mapping, Optional

from surveynav.answers import Answer, AnswerSet, AnswerValue, primary_value, selected_values
from surveynav.errors import CompileError, EvaluationFault, NotFoundFault
from surveynav.expressions import (
    Combinator,
    Comparison,
    ComparisonKind,
    CompoundCondition,
    Condition,
    EmptyCondition,
)
from surveynav.model import Survey
from surveynav.parser import parse_dsl, to_dsl

logger = logging.getLogger(__name__)


@dataclass
class AnswerContext:
    """
    Answers as seen by the DSL: looked up by variable name.

    Properties:
        answers: the session's answers keyed by question id
        variables: variableName -> question id for the whole survey

    A variable missing from `variables` is looked up in `answers`
    directly, which lets callers key answers by variable name in tests
    and previews.
    """

    answers: AnswerSet = field(default_factory=AnswerSet)
    variables: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def for_survey(cls, survey: Survey, answers: AnswerSet) -> "AnswerContext":
        return cls(answers=answers, variables={q.variable_name: q.id for q in survey.questions})

    def lookup(self, variable: str) -> Optional[AnswerValue]:
        question_id = self.variables.get(variable, variable)
        answer: Optional[Answer] = self.answers.get(question_id)
        if answer is None and question_id != variable:
            answer = self.answers.get(variable)
        return answer.value if answer is not None else None


def _as_number(text: Optional[str]) -> Optional[Decimal]:
    if text is None:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _positive_holds(comparison: Comparison, value: AnswerValue) -> bool:
    kind = comparison.kind.positive
    if kind is ComparisonKind.EQUALS:
        return primary_value(value) == comparison.value
    if kind in (ComparisonKind.GREATER_THAN, ComparisonKind.LESS_THAN):
        # a non-numeric answer is simply not greater or less
        number = _as_number(primary_value(value))
        if number is None:
            return False
        if kind is ComparisonKind.GREATER_THAN:
            return number > Decimal(comparison.value)
        return number < Decimal(comparison.value)
    selected = selected_values(value)
    if kind is ComparisonKind.CONTAINS:
        return any(comparison.value in v for v in selected)
    if kind is ComparisonKind.IS_NOT_EMPTY:
        return any(v.strip() for v in selected)
    if kind is ComparisonKind.ANY_SELECTED:
        return bool(set(selected).intersection(comparison.values))
    if kind is ComparisonKind.ALL_SELECTED:
        return set(comparison.values).issubset(selected)
    raise EvaluationFault(f"unsupported comparison kind: {comparison.kind}")


def evaluate_comparison(comparison: Comparison, context: AnswerContext) -> bool:
    """
    Evaluate one comparison.

    Raises:
        EvaluationFault: if the referenced answer is malformed
    """
    value = context.lookup(comparison.variable)
    holds = False if value is None else _positive_holds(comparison, value)
    return not holds if comparison.kind.negated else holds


def evaluate_condition(condition: Condition, context: AnswerContext) -> bool:
    """
    Evaluate a condition AST.

    Raises:
        EvaluationFault: if any referenced answer is malformed
    """
    if isinstance(condition, EmptyCondition):
        return True
    if isinstance(condition, Comparison):
        return evaluate_comparison(condition, context)
    if isinstance(condition, CompoundCondition):
        if not condition.comparisons:
            return True
        results = (evaluate_comparison(c, context) for c in condition.comparisons)
        if condition.combinator is Combinator.AND:
            return all(results)
        return any(results)
    raise EvaluationFault(f"unsupported condition node: {type(condition).__name__}")


@dataclass(frozen=True)
class CompiledExpression:
    """A parsed condition ready for repeated evaluation."""

    condition: Condition
    dsl: str

    @property
    def canonical(self) -> str:
        return to_dsl(self.condition)

    def __call__(self, context: AnswerContext) -> bool:
        try:
            return evaluate_condition(self.condition, context)
        except EvaluationFault as exc:
            logger.warning("Evaluation fault in %r: %s", self.dsl, exc)
            return False


def compile_expression(dsl: Optional[str]) -> CompiledExpression:
    """
    Compile DSL text into a reusable predicate.

    Raises:
        CompileError: if the text is malformed
    """
    return CompiledExpression(condition=parse_dsl(dsl), dsl=dsl or "")


class ExpressionEvaluator:
    """
    Evaluates a survey's stored expressions by id.

    Compiled predicates are cached per evaluator instance. A stored
    expression that fails to compile (should not happen after authoring
    validation) is remembered as failing and always evaluates to False.
    """

    def __init__(self, survey: Survey):
        self.survey = survey
        self._variables = {q.variable_name: q.id for q in survey.questions}
        self._compiled: Dict[str, Optional[CompiledExpression]] = {}

    def context(self, answers: AnswerSet) -> AnswerContext:
        return AnswerContext(answers=answers, variables=self._variables)

    def compiled(self, expression_id: str) -> Optional[CompiledExpression]:
        """
        Return the compiled predicate for a stored expression, or None if
        its DSL does not compile.

        Raises:
            NotFoundFault: if no expression has this id
        """
        if expression_id in self._compiled:
            return self._compiled[expression_id]
        expression = self.survey.get_expression(expression_id)
        if expression is None:
            raise NotFoundFault("expression", expression_id)
        try:
            compiled = compile_expression(expression.dsl)
        except CompileError as exc:
            logger.warning("Stored expression %s does not compile: %s", expression_id, exc)
            compiled = None
        self._compiled[expression_id] = compiled
        return compiled

    def evaluate(self, expression_id: str, answers: AnswerSet) -> bool:
        """
        Evaluate a stored expression against a session's answers.

        Raises:
            NotFoundFault: if no expression has this id
        """
        compiled = self.compiled(expression_id)
        if compiled is None:
            return False
        result = compiled(self.context(answers))
        logger.debug("Expression %s (%r) -> %s", expression_id, compiled.dsl, result)
        return result

    def evaluate_dsl(self, dsl: str, answers: AnswerSet) -> bool:
        """Evaluate ad-hoc DSL text. Malformed text evaluates to False and is logged."""
        try:
            compiled = compile_expression(dsl)
        except CompileError as exc:
            logger.warning("Ad-hoc expression does not compile: %s", exc)
            return False
        return compiled(self.context(answers))
