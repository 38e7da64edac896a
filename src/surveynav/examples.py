"""
Example survey builder for demos and tests.

Builds a small car-ownership survey exercising every navigation feature:

    P1  Q1 brand (terminates on NONE), Q2 features (RANDOM options)
    P2  Q3 buy again?  ->  Q5 if Q1 = BMW (priority 0)
                       ->  Q4 otherwise   (priority 1, unconditional)
        Q4 which brand instead  ->  P3 (unconditional)
        Q5 which BMW model (WEIGHTED options)
    P3  Q6 navigation rating; page visible only if Q2 includes NAV
    P4  Q7 comments
    Page jump P2 -> P4 when Q2 does not include NAV.
"""
from surveynav.model import (
    Expression,
    Option,
    OrderMode,
    Page,
    PageJump,
    Question,
    QuestionJump,
    Survey,
)

SURVEY_ID = "car-survey"


def _options(*values, weights=None):
    weights = weights or {}
    return [
        Option(id=value, value=value, label=value.title(), index=i, weight=weights.get(value))
        for i, value in enumerate(values)
    ]


def build_example_car_survey() -> Survey:
    survey = Survey(id=SURVEY_ID, name="Example Car Survey")

    survey.expressions = [
        Expression(id="E_BMW", dsl="equals(answer('Q1'), 'BMW')", description="Owns a BMW"),
        Expression(id="E_NO_CAR", dsl="equals(answer('Q1'), 'NONE')", description="Respondent does not own a car"),
        Expression(id="E_HAS_NAV", dsl="anySelected('Q2', ['NAV'])", description="Car has navigation"),
        Expression(id="E_NO_NAV", dsl="not(anySelected('Q2', ['NAV']))", description="Car has no navigation"),
    ]

    survey.pages = [
        Page(id="P1", survey_id=SURVEY_ID, index=0),
        Page(id="P2", survey_id=SURVEY_ID, index=1),
        Page(id="P3", survey_id=SURVEY_ID, index=2, visible_if_expression_id="E_HAS_NAV"),
        Page(id="P4", survey_id=SURVEY_ID, index=3),
    ]

    survey.questions = [
        Question(
            id="Q1", survey_id=SURVEY_ID, page_id="P1", index=0, variable_name="Q1",
            options=_options("BMW", "AUDI", "OTHER", "NONE"),
            terminate_if_expression_id="E_NO_CAR",
        ),
        Question(
            id="Q2", survey_id=SURVEY_ID, page_id="P1", index=1, variable_name="Q2",
            type="MULTIPLE_CHOICE",
            options=_options("NAV", "HEATED_SEATS", "SUNROOF"),
            option_order_mode=OrderMode.RANDOM,
        ),
        Question(
            id="Q3", survey_id=SURVEY_ID, page_id="P2", index=2, variable_name="Q3",
            options=_options("YES", "NO"),
        ),
        Question(
            id="Q4", survey_id=SURVEY_ID, page_id="P2", index=3, variable_name="Q4",
            options=_options("BMW", "AUDI", "OTHER"),
        ),
        Question(
            id="Q5", survey_id=SURVEY_ID, page_id="P2", index=4, variable_name="Q5",
            options=_options("SERIES_1", "SERIES_3", "SERIES_5", weights={"SERIES_1": 1, "SERIES_3": 5, "SERIES_5": 3}),
            option_order_mode=OrderMode.WEIGHTED,
        ),
        Question(
            id="Q6", survey_id=SURVEY_ID, page_id="P3", index=5, variable_name="Q6",
            options=_options("GOOD", "OK", "BAD"),
        ),
        Question(
            id="Q7", survey_id=SURVEY_ID, page_id="P4", index=6, variable_name="Q7",
            type="TEXT",
        ),
    ]

    survey.question_jumps = [
        QuestionJump(
            id="J_BMW", survey_id=SURVEY_ID, from_question_id="Q3",
            to_question_id="Q5", condition_expression_id="E_BMW", priority=0,
        ),
        QuestionJump(
            id="J_OTHER", survey_id=SURVEY_ID, from_question_id="Q3",
            to_question_id="Q4", priority=1,
        ),
        QuestionJump(
            id="J_SKIP_MODEL", survey_id=SURVEY_ID, from_question_id="Q4",
            to_page_id="P3", priority=0,
        ),
    ]

    survey.page_jumps = [
        PageJump(
            id="PJ_NO_NAV", survey_id=SURVEY_ID, from_page_id="P2",
            to_page_id="P4", condition_expression_id="E_NO_NAV", priority=0,
        ),
    ]

    survey.metadata = {"source": "example"}
    return survey


__all__ = ["SURVEY_ID", "build_example_car_survey"]
