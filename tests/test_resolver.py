"""
Tests for jump resolution.

Tests verify that:
    - The lowest-priority matching jump wins, ties keep storage order
    - Sequential fallback walks the page, then the next visible page, then TERMINAL
    - Termination conditions end the survey before any jump
    - Missing destinations raise NotFoundFault
"""

import pytest

from surveynav.answers import Answer, AnswerSet, Choices
from surveynav.errors import NotFoundFault
from surveynav.model import (
    Destination,
    DestinationType,
    Expression,
    OrderMode,
    Page,
    Position,
    Question,
    QuestionJump,
    Survey,
)
from surveynav.randomization import RandomizationEngine
from surveynav.resolver import JumpResolver, order_by_priority
from surveynav.stores import InMemoryRenderStateStore


def brand(value):
    return AnswerSet.of(Answer("Q1", Choices((value,))))


def at(question_id, page_id="P2"):
    return Position.at_question(page_id, question_id)


class TestCarScenario:
    """The Q3 branching example."""

    def test_bmw_goes_to_q5(self, car_survey):
        destination = JumpResolver(car_survey).resolve_next(at("Q3"), brand("BMW"))
        assert destination.destination_type is DestinationType.QUESTION
        assert destination.destination_id == "Q5"
        assert destination.via_jump_id == "J_BMW"

    def test_audi_falls_back_to_q4(self, car_survey):
        destination = JumpResolver(car_survey).resolve_next(at("Q3"), brand("AUDI"))
        assert destination.destination_id == "Q4"
        assert destination.via_jump_id == "J_OTHER"

    def test_unanswered_falls_back_to_q4(self, car_survey):
        assert JumpResolver(car_survey).resolve_next(at("Q3"), AnswerSet()).destination_id == "Q4"

    def test_page_jump_destination(self, car_survey):
        destination = JumpResolver(car_survey).resolve_next(at("Q4"), brand("AUDI"))
        assert destination == Destination(DestinationType.PAGE, "P3", page_id="P3", via_jump_id="J_SKIP_MODEL")


class TestPriority:
    """Lower priority wins regardless of storage order."""

    def _survey(self, jumps):
        survey = Survey(id="s")
        survey.pages = [Page(id="P1", survey_id="s", index=0)]
        survey.questions = [
            Question(id=f"Q{i}", survey_id="s", page_id="P1", index=i, variable_name=f"Q{i}")
            for i in range(1, 6)
        ]
        survey.expressions = [Expression("yes", "equals(answer('Q1'), 'y')")]
        survey.question_jumps = jumps
        return survey

    def test_lower_priority_wins_even_if_stored_later(self):
        survey = self._survey([
            QuestionJump("late", "s", "Q1", to_question_id="Q4", condition_expression_id="yes", priority=5),
            QuestionJump("early", "s", "Q1", to_question_id="Q5", condition_expression_id="yes", priority=1),
        ])
        answers = AnswerSet.of(Answer("Q1", Choices(("y",))))
        assert JumpResolver(survey).resolve_next(at("Q1", "P1"), answers).destination_id == "Q5"

    def test_ties_keep_storage_order(self):
        survey = self._survey([
            QuestionJump("first", "s", "Q1", to_question_id="Q4", priority=0),
            QuestionJump("second", "s", "Q1", to_question_id="Q5", priority=0),
        ])
        assert JumpResolver(survey).resolve_next(at("Q1", "P1"), AnswerSet()).via_jump_id == "first"

    def test_order_by_priority_is_stable(self):
        jumps = [
            QuestionJump("a", "s", "Q1", to_question_id="Q2", priority=1),
            QuestionJump("b", "s", "Q1", to_question_id="Q2", priority=0),
            QuestionJump("c", "s", "Q1", to_question_id="Q2", priority=1),
        ]
        assert [j.id for j in order_by_priority(jumps)] == ["b", "a", "c"]

    def test_missing_condition_expression_is_no_match(self):
        survey = self._survey([
            QuestionJump("dangling", "s", "Q1", to_question_id="Q5", condition_expression_id="gone", priority=0),
        ])
        assert JumpResolver(survey).resolve_next(at("Q1", "P1"), AnswerSet()).destination_id == "Q2"


class TestSequentialFallback:
    """No matching jump: next question, next visible page, then TERMINAL."""

    def test_next_question_on_page(self, car_survey):
        destination = JumpResolver(car_survey).resolve_next(at("Q1", "P1"), brand("BMW"))
        assert destination == Destination(DestinationType.QUESTION, "Q2", page_id="P1")

    def test_last_question_goes_to_next_page(self, car_survey):
        destination = JumpResolver(car_survey).resolve_next(at("Q2", "P1"), brand("BMW"))
        assert destination == Destination(DestinationType.PAGE, "P2", page_id="P2")

    def test_page_jump_consulted_when_leaving_page(self, car_survey):
        answers = brand("BMW")
        answers.put(Answer("Q2", Choices(("SUNROOF",))))
        destination = JumpResolver(car_survey).resolve_next(at("Q5"), answers)
        assert destination.destination_id == "P4"
        assert destination.via_jump_id == "PJ_NO_NAV"

    def test_hidden_page_skipped(self, car_survey):
        car_survey.page_jumps = []
        # P3 is visible only when Q2 includes NAV
        destination = JumpResolver(car_survey).resolve_next(at("Q5"), brand("BMW"))
        assert destination.destination_id == "P4"
        assert destination.via_jump_id is None

    def test_leaving_a_page_position(self, car_survey):
        destination = JumpResolver(car_survey).resolve_next(Position.at_page("P3"), brand("BMW"))
        assert destination.destination_id == "P4"

    def test_visible_page_not_skipped(self, car_survey):
        answers = brand("BMW")
        answers.put(Answer("Q2", Choices(("NAV",))))
        destination = JumpResolver(car_survey).resolve_next(at("Q5"), answers)
        assert destination.destination_id == "P3"

    def test_last_page_is_terminal(self, car_survey):
        destination = JumpResolver(car_survey).resolve_next(at("Q7", "P4"), brand("BMW"))
        assert destination.is_terminal
        assert not destination.terminated

    def test_randomized_page_order_is_followed(self, car_survey, settings):
        car_survey.get_page("P2").question_order_mode = OrderMode.RANDOM
        car_survey.question_jumps = []
        car_survey.page_jumps = []
        randomizer = RandomizationEngine(InMemoryRenderStateStore(), settings)
        resolver = JumpResolver(car_survey, randomizer=randomizer)

        order = resolver.question_order(car_survey.get_page("P2"), "s1")
        assert sorted(order) == ["Q3", "Q4", "Q5"]
        for current, expected in zip(order, order[1:]):
            assert resolver.resolve_next(at(current), AnswerSet(), "s1").destination_id == expected
        assert resolver.resolve_next(at(order[-1]), AnswerSet(), "s1").destination_type is DestinationType.PAGE


class TestTermination:
    """Termination conditions end the survey."""

    def test_terminates_with_reason(self, car_survey):
        destination = JumpResolver(car_survey).resolve_next(at("Q1", "P1"), brand("NONE"))
        assert destination.is_terminal
        assert destination.terminated
        assert destination.reason == "Respondent does not own a car"

    def test_default_reason(self, car_survey):
        car_survey.expressions = [
            Expression(e.id, e.dsl) if e.id == "E_NO_CAR" else e for e in car_survey.expressions
        ]
        destination = JumpResolver(car_survey).resolve_next(at("Q1", "P1"), brand("NONE"))
        assert destination.reason == "Survey terminated based on answer"

    def test_termination_checked_before_jumps(self, car_survey):
        car_survey.get_question("Q3").terminate_if_expression_id = "E_BMW"
        destination = JumpResolver(car_survey).resolve_next(at("Q3"), brand("BMW"))
        assert destination.terminated


class TestNotFound:
    """Dangling references raise NotFoundFault."""

    def test_unknown_question(self, car_survey):
        with pytest.raises(NotFoundFault):
            JumpResolver(car_survey).resolve_next(at("Q99"), AnswerSet())

    def test_unknown_page(self, car_survey):
        with pytest.raises(NotFoundFault):
            JumpResolver(car_survey).resolve_next(Position.at_page("P99"), AnswerSet())

    def test_missing_jump_destination(self, car_survey):
        car_survey.question_jumps[0].to_question_id = "Q99"
        with pytest.raises(NotFoundFault, match="Q99"):
            JumpResolver(car_survey).resolve_next(at("Q3"), brand("BMW"))

    def test_cross_page_jump_reports_new_page(self, car_survey):
        car_survey.question_jumps[0].to_question_id = "Q7"
        destination = JumpResolver(car_survey).resolve_next(at("Q3"), brand("BMW"))
        assert destination.destination_id == "Q7"
        assert destination.page_id == "P4"
