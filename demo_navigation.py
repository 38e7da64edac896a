#!/usr/bin/env python3
"""
Navigation Demo: walk two respondents through the example car survey.

Shows the full runtime loop:
1. Build the survey and one engine for it
2. Start a session at the first visible question
3. Answer, resolve the next visible destination, repeat until TERMINAL
4. Show per-session option orders (cached on first view)
"""

from surveynav import NavigationEngine, Position, configure_logging
from surveynav.answers import AnswerSet, answer_from_payload
from surveynav.examples import build_example_car_survey
from surveynav.model import DestinationType


def walk(engine, session_id, payloads):
    answers = AnswerSet()
    destination = engine.first_position(answers, session_id)
    path = []

    while not destination.is_terminal:
        if destination.destination_type is DestinationType.PAGE:
            visible = engine.visible_questions(destination.destination_id, answers, session_id)
            if not visible:
                destination = engine.next_visible(destination.to_position(), answers, session_id)
                continue
            position = Position.at_question(destination.destination_id, visible[0])
        else:
            position = destination.to_position()

        question_id = position.question_id
        path.append(question_id)
        if question_id in payloads:
            answers.put(answer_from_payload(question_id, payloads[question_id]))
        destination = engine.next_visible(position, answers, session_id)

    return path, destination


def main():
    configure_logging()

    survey = build_example_car_survey()
    engine = NavigationEngine(survey)

    print("=" * 80)
    print("NAVIGATION DEMO")
    print("=" * 80)

    respondents = {
        "session-bmw": {
            "Q1": {"choices": ["BMW"]},
            "Q2": {"choices": ["NAV", "SUNROOF"]},
            "Q3": {"choices": ["YES"]},
            "Q5": {"choices": ["SERIES_3"]},
            "Q6": {"choices": ["GOOD"]},
            "Q7": {"textValue": "Great car"},
        },
        "session-audi": {
            "Q1": {"choices": ["AUDI"]},
            "Q2": {"choices": ["HEATED_SEATS"]},
            "Q3": {"choices": ["NO"]},
            "Q4": {"choices": ["BMW"]},
            "Q7": {"textValue": "Too expensive"},
        },
        "session-no-car": {
            "Q1": {"choices": ["NONE"]},
        },
    }

    for session_id, payloads in respondents.items():
        path, end = walk(engine, session_id, payloads)
        print(f"\n{session_id}:")
        print(f"   Path:        {' -> '.join(path)}")
        print(f"   Terminated:  {end.terminated} {f'({end.reason})' if end.reason else ''}")
        print(f"   Q2 options:  {engine.get_option_order(session_id, 'Q2')}")
        print(f"   Q5 options:  {engine.get_option_order(session_id, 'Q5')}")

    print("\n" + "=" * 80)
    print("Jump previews for the BMW respondent:")
    answers = AnswerSet()
    answers.put(answer_from_payload("Q1", {"choices": ["BMW"]}))
    for jump in survey.question_jumps:
        result = engine.test_jump(jump.id, answers)
        print(f"   {result.jump_id}: matched={result.matched} -> {result.destination.destination_id}")
    print("=" * 80)


if __name__ == "__main__":
    main()
