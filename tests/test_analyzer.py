"""
Tests for the Logic Analyzer.

Tests verify that the analyzer correctly:
    - Inventories variable usage and spots undefined variables
    - Flags uncompilable and missing expressions
    - Finds priority ties and shadowed jumps
    - Finds unreachable pages and cycles in the jump graph
"""

from surveynav.analyzer import analyze_survey, build_jump_graph
from surveynav.model import Expression, Page, PageJump, Question, QuestionJump, Survey


def linear_survey():
    """P1: Q1, Q2 -> P2: Q3."""
    survey = Survey(id="s", name="Linear")
    survey.pages = [Page(id="P1", survey_id="s", index=0), Page(id="P2", survey_id="s", index=1)]
    survey.questions = [
        Question(id="Q1", survey_id="s", page_id="P1", index=0, variable_name="Q1"),
        Question(id="Q2", survey_id="s", page_id="P1", index=1, variable_name="Q2"),
        Question(id="Q3", survey_id="s", page_id="P2", index=2, variable_name="Q3"),
    ]
    return survey


def test_example_survey_is_clean(car_survey):
    """The example survey has no warnings."""
    report = analyze_survey(car_survey)

    assert report.total_pages == 4
    assert report.total_questions == 7
    assert report.total_question_jumps == 3
    assert report.total_page_jumps == 1
    assert report.variable_usage == {"Q1": 2, "Q2": 2}
    assert not report.has_cycles
    assert report.warnings == []


def test_linear_graph():
    graph, shadowed = build_jump_graph(linear_survey())

    assert graph["page:P1"] == ["question:Q1"]
    assert graph["question:Q1"] == ["question:Q2"]
    assert graph["question:Q2"] == ["page:P2"]
    assert graph["question:Q3"] == []
    assert shadowed == []


def test_undefined_variables():
    """Should detect variables referenced but not defined by any question."""
    survey = linear_survey()
    survey.expressions = [Expression("e", "equals(answer('Q9'), 'x')")]

    report = analyze_survey(survey)

    assert report.undefined_variables == {"Q9"}
    assert any("Q9" in w for w in report.warnings)


def test_unused_variables():
    survey = linear_survey()
    survey.expressions = [Expression("e", "equals(answer('Q1'), 'x')")]
    assert analyze_survey(survey).unused_variables == {"Q2", "Q3"}


def test_uncompilable_and_missing_expressions():
    survey = linear_survey()
    survey.expressions = [Expression("bad", "equals(")]
    survey.questions[0].visible_if_expression_id = "gone"

    report = analyze_survey(survey)

    assert set(report.uncompilable_expressions) == {"bad"}
    assert report.missing_expressions == {"gone"}
    assert len(report.warnings) == 2


def test_comparison_metrics():
    survey = linear_survey()
    survey.expressions = [
        Expression("one", "equals(answer('Q1'), 'x')"),
        Expression("three", "(equals(answer('Q1'), 'x') OR equals(answer('Q2'), 'y') OR equals(answer('Q3'), 'z'))"),
    ]
    report = analyze_survey(survey)
    assert report.max_comparisons == 3
    assert report.total_comparisons == 4


def test_priority_ties():
    survey = linear_survey()
    survey.expressions = [Expression("e", "equals(answer('Q1'), 'x')")]
    survey.question_jumps = [
        QuestionJump("a", "s", "Q1", to_question_id="Q3", condition_expression_id="e", priority=0),
        QuestionJump("b", "s", "Q1", to_page_id="P2", condition_expression_id="e", priority=0),
    ]
    report = analyze_survey(survey)
    assert report.priority_ties == [("question:Q1", 0, ["a", "b"])]


def test_shadowed_jumps_and_unreachable_question():
    """An unconditional jump hides every later jump and the sequential path."""
    survey = linear_survey()
    survey.expressions = [Expression("e", "equals(answer('Q1'), 'x')")]
    survey.question_jumps = [
        QuestionJump("always", "s", "Q1", to_page_id="P2", priority=0),
        QuestionJump("never", "s", "Q1", to_question_id="Q2", condition_expression_id="e", priority=1),
    ]

    report = analyze_survey(survey)

    assert report.shadowed_jumps == ["never"]
    assert report.unreachable_questions == {"Q2"}
    assert report.unreachable_pages == set()


def test_unreachable_page():
    survey = linear_survey()
    survey.pages.append(Page(id="P3", survey_id="s", index=2))
    survey.questions.append(Question(id="Q4", survey_id="s", page_id="P3", index=3, variable_name="Q4"))
    survey.page_jumps = [PageJump("skip", "s", "P2", "P2")]
    survey.question_jumps = [QuestionJump("end", "s", "Q2", to_page_id="P2")]
    # Leaving P2 always loops back onto P2, so P3 is never reached
    report = analyze_survey(survey)

    assert "P3" in report.unreachable_pages
    assert report.has_cycles


def test_cycle_detection():
    survey = linear_survey()
    survey.expressions = [Expression("e", "equals(answer('Q2'), 'again')")]
    survey.question_jumps = [QuestionJump("back", "s", "Q2", to_question_id="Q1", condition_expression_id="e")]

    report = analyze_survey(survey)

    assert report.has_cycles
    assert report.cycle_example[0] == report.cycle_example[-1]
    assert "question:Q1" in report.cycle_example
    assert any("Cycle detected" in w for w in report.warnings)
