"""
Demo: Run the logic analyzer on the example car survey and output the report.
"""

from surveynav.analyzer import analyze_survey
from surveynav.examples import build_example_car_survey
from surveynav.serialization import survey_to_yaml
from surveynav.validation import survey_problems


def print_report(report):
    """Pretty-print a LogicReport."""
    print()
    print("=" * 70)
    print(f"LOGIC ANALYSIS REPORT: {report.survey_name}")
    print("=" * 70)
    print()

    print("📊 BASIC METRICS")
    print(f"  Total Pages:           {report.total_pages}")
    print(f"  Total Questions:       {report.total_questions}")
    print(f"  Total Expressions:     {report.total_expressions}")
    print(f"  Question Jumps:        {report.total_question_jumps}")
    print(f"  Page Jumps:            {report.total_page_jumps}")
    print()

    print("📈 VARIABLE ANALYSIS")
    print(f"  Variables Referenced:  {len(report.variable_usage)}")
    print(f"  Undefined Variables:   {len(report.undefined_variables)}")
    if report.undefined_variables:
        print(f"    {report.undefined_variables}")
    print(f"  Unused Variables:      {len(report.unused_variables)}")
    print()

    if report.variable_usage:
        print("  Variable Usage:")
        for var, count in sorted(report.variable_usage.items()):
            print(f"    {var}: {count} reference(s)")
        print()

    print("🔗 JUMP GRAPH")
    print(f"  Entry Point:           {report.entry_point}")
    print(f"  Unreachable Pages:     {report.unreachable_pages if report.unreachable_pages else 'None'}")
    print(f"  Unreachable Questions: {report.unreachable_questions if report.unreachable_questions else 'None'}")
    print(f"  Has Cycles:            {'YES' if report.has_cycles else 'NO'}")
    if report.has_cycles and report.cycle_example:
        print(f"    Example: {' -> '.join(report.cycle_example)}")
    print(f"  Priority Ties:         {len(report.priority_ties)}")
    print(f"  Shadowed Jumps:        {report.shadowed_jumps if report.shadowed_jumps else 'None'}")
    print()

    print("📐 EXPRESSIONS")
    print(f"  Max Comparisons:       {report.max_comparisons}")
    print(f"  Total Comparisons:     {report.total_comparisons}")
    print(f"  Uncompilable:          {len(report.uncompilable_expressions)}")
    print(f"  Missing:               {len(report.missing_expressions)}")
    print()

    if report.warnings:
        print("⚠️  WARNINGS")
        for i, warning in enumerate(report.warnings, 1):
            print(f"  {i}. {warning}")
    else:
        print("✨ NO WARNINGS - Survey logic looks clean!")
    print()


if __name__ == "__main__":
    survey = build_example_car_survey()

    report = analyze_survey(survey)
    print_report(report)

    problems = survey_problems(survey)
    print(f"Authoring problems: {len(problems)}")
    for problem in problems:
        print(f"  - {problem}")

    yaml_str = survey_to_yaml(survey)
    with open("example_survey_output.yaml", "w") as f:
        f.write(yaml_str)
    print("✅ Survey exported to example_survey_output.yaml")
