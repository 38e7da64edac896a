"""
Authoring-boundary validation.

These checks gate what the navigation engine will ever see. They run
when expressions and jumps are created or updated, never during
navigation.

Rules:
    - an expression's DSL must compile
    - a question jump has exactly one destination (question XOR page)
    - priority is a non-negative integer
    - source and destination belong to the jump's survey
    - a referenced condition expression exists
"""

from typing import List, Optional

from surveynav.errors import CompileError, JumpValidationError
from surveynav.evaluator import compile_expression
from surveynav.model import Expression, PageJump, QuestionJump, Survey


def validate_expression(expression: Expression) -> str:
    """
    Check an expression compiles and return its canonical DSL.

    Raises:
        CompileError: if the DSL does not compile
    """
    return compile_expression(expression.dsl).canonical


def _priority_problems(priority: object) -> List[str]:
    if isinstance(priority, bool) or not isinstance(priority, int):
        return [f"priority must be an integer, got {priority!r}"]
    if priority < 0:
        return [f"priority must be non-negative, got {priority}"]
    return []


def _condition_problems(condition_id: Optional[str], survey: Survey) -> List[str]:
    if condition_id is None:
        return []
    expression = survey.get_expression(condition_id)
    if expression is None:
        return [f"condition expression {condition_id} does not exist"]
    try:
        compile_expression(expression.dsl)
    except CompileError as exc:
        return [f"condition expression {condition_id} does not compile: {exc}"]
    return []


def question_jump_problems(jump: QuestionJump, survey: Survey) -> List[str]:
    """All problems with a question jump; empty when valid."""
    problems: List[str] = []
    prefix = f"question jump {jump.id}: "

    if jump.survey_id != survey.id:
        problems.append(f"belongs to survey {jump.survey_id}, not {survey.id}")

    source = survey.get_question(jump.from_question_id)
    if source is None:
        problems.append(f"source question {jump.from_question_id} does not exist")
    elif source.survey_id != survey.id:
        problems.append(f"source question {source.id} belongs to another survey")

    if bool(jump.to_question_id) == bool(jump.to_page_id):
        problems.append("exactly one of to_question_id / to_page_id must be set")
    elif jump.to_question_id:
        target = survey.get_question(jump.to_question_id)
        if target is None:
            problems.append(f"destination question {jump.to_question_id} does not exist")
        elif target.survey_id != survey.id:
            problems.append(f"destination question {target.id} belongs to another survey")
    else:
        page = survey.get_page(jump.to_page_id)
        if page is None:
            problems.append(f"destination page {jump.to_page_id} does not exist")
        elif page.survey_id != survey.id:
            problems.append(f"destination page {page.id} belongs to another survey")

    problems.extend(_priority_problems(jump.priority))
    problems.extend(_condition_problems(jump.condition_expression_id, survey))
    return [prefix + p for p in problems]


def page_jump_problems(jump: PageJump, survey: Survey) -> List[str]:
    """All problems with a page jump; empty when valid."""
    problems: List[str] = []
    prefix = f"page jump {jump.id}: "

    if jump.survey_id != survey.id:
        problems.append(f"belongs to survey {jump.survey_id}, not {survey.id}")

    source = survey.get_page(jump.from_page_id)
    if source is None:
        problems.append(f"source page {jump.from_page_id} does not exist")
    elif source.survey_id != survey.id:
        problems.append(f"source page {source.id} belongs to another survey")

    if not jump.to_page_id:
        problems.append("to_page_id must be set")
    else:
        page = survey.get_page(jump.to_page_id)
        if page is None:
            problems.append(f"destination page {jump.to_page_id} does not exist")
        elif page.survey_id != survey.id:
            problems.append(f"destination page {page.id} belongs to another survey")

    problems.extend(_priority_problems(jump.priority))
    problems.extend(_condition_problems(jump.condition_expression_id, survey))
    return [prefix + p for p in problems]


def validate_question_jump(jump: QuestionJump, survey: Survey) -> None:
    """Raises JumpValidationError listing every problem with the jump."""
    problems = question_jump_problems(jump, survey)
    if problems:
        raise JumpValidationError(problems)


def validate_page_jump(jump: PageJump, survey: Survey) -> None:
    """Raises JumpValidationError listing every problem with the jump."""
    problems = page_jump_problems(jump, survey)
    if problems:
        raise JumpValidationError(problems)


def survey_problems(survey: Survey) -> List[str]:
    """Every authoring problem in a survey's expressions and jumps."""
    problems: List[str] = []
    for expression in survey.expressions:
        try:
            compile_expression(expression.dsl)
        except CompileError as exc:
            problems.append(f"expression {expression.id}: {exc}")
    for jump in survey.question_jumps:
        problems.extend(question_jump_problems(jump, survey))
    for jump in survey.page_jumps:
        problems.extend(page_jump_problems(jump, survey))

    seen = {}
    for question in survey.questions:
        if question.variable_name in seen:
            problems.append(
                f"variable name {question.variable_name} used by both "
                f"{seen[question.variable_name]} and {question.id}"
            )
        seen.setdefault(question.variable_name, question.id)
    return problems


def validate_survey(survey: Survey) -> None:
    """Raises JumpValidationError listing every problem in the survey."""
    problems = survey_problems(survey)
    if problems:
        raise JumpValidationError(problems)
