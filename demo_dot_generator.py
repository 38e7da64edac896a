#!/usr/bin/env python3
"""
Demo: Draw the car survey's navigation graph with Graphviz.

Walks through what the DETAILED diagram says about question Q3:
its jumps are drawn in the order the resolver tries them, labelled
"[priority] condition", with the dashed edge to the next question on
the page as the fallback nobody reaches while an unconditional jump
exists. Then the same diagram after a jump is added behind that
unconditional one, and MANAGEMENT mode with pages as clusters.
"""

from surveynav.analyzer import build_jump_graph
from surveynav.backends import DotMode, generate_dot, save_dot_file
from surveynav.examples import SURVEY_ID, build_example_car_survey
from surveynav.model import QuestionJump
from surveynav.resolver import order_by_priority


def edges_from(dot: str, node: str):
    return [line.strip() for line in dot.splitlines() if line.strip().startswith(f'"{node}" ->')]


def main():
    survey = build_example_car_survey()

    print("=" * 80)
    print("JUMP GRAPH DIAGRAMS")
    print("=" * 80)

    print("\nQ3 jumps in resolver order:")
    for jump in order_by_priority([j for j in survey.question_jumps if j.from_question_id == "Q3"]):
        condition = survey.get_expression(jump.condition_expression_id).dsl if jump.condition_expression_id else "always"
        print(f"  {jump.id:<8} priority {jump.priority}  -> {jump.to_question_id or jump.to_page_id}  when {condition}")

    detailed = generate_dot(survey, mode=DotMode.DETAILED)
    print("\nDETAILED edges leaving Q3:")
    for edge in edges_from(detailed, "question:Q3"):
        print(f"  {edge}")

    print("\nDETAILED edges leaving Q1 (red edge = termination):")
    for edge in edges_from(detailed, "question:Q1"):
        print(f"  {edge}")

    # A jump behind the unconditional J_OTHER can never fire
    survey.question_jumps.append(
        QuestionJump(
            id="J_LATE", survey_id=SURVEY_ID, from_question_id="Q3",
            to_page_id="P4", condition_expression_id="E_NO_NAV", priority=5,
        )
    )
    _, shadowed = build_jump_graph(survey)
    print(f"\nAfter adding J_LATE (priority 5), jumps that can never fire: {', '.join(shadowed)}")
    for edge in edges_from(generate_dot(survey, mode=DotMode.DETAILED), "question:Q3"):
        print(f"  {edge}")
    survey.question_jumps.pop()

    print("\n" + "-" * 80)
    print("MANAGEMENT MODE (pages as clusters):")
    print("-" * 80)
    print(generate_dot(survey, mode=DotMode.MANAGEMENT))

    for mode in (DotMode.SIMPLE, DotMode.DETAILED, DotMode.MANAGEMENT):
        filename = f"car_survey_{mode.value}.dot"
        save_dot_file(survey, filename, mode=mode)
        print(f"Saved {mode.value} diagram to: {filename}")

    print("\nRender with: dot -Tpng car_survey_detailed.dot -o car_survey_detailed.png")


if __name__ == "__main__":
    main()
