"""
Logic Analyzer: authoring-time diagnostics for a survey's navigation logic.

This module provides lightweight analysis of Survey objects:
    - Variable usage inventory (which questions the DSL reads)
    - Jump graph reachability and cycles
    - Priority ties and jumps shadowed by an unconditional one
    - Expressions that do not compile or do not exist
    - Warning flags for navigation risk

IMPORTANT: This does NOT modify the survey and plays no part in
navigation. A cycle found here is a risk, not an error: whether it can
loop forever depends on answers, which is what the render walk's hop
limit guards against at runtime.

Graph nodes are "page:<id>" and "question:<id>". Edges follow what the
resolver can do: page to its first question, question to the next one on
its page, jumps to their targets, and the last question (or an empty
page) to the page's jump targets and the next page by index.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from surveynav.errors import CompileError
from surveynav.evaluator import compile_expression
from surveynav.model import Survey
from surveynav.parser import comparisons_of, referenced_variables
from surveynav.resolver import order_by_priority


def page_node(page_id: str) -> str:
    return f"page:{page_id}"


def question_node(question_id: str) -> str:
    return f"question:{question_id}"


def _find_cycles_dfs(graph: Dict[str, List[str]], start: str, visited: Set[str],
                     rec_stack: Set[str], path: List[str]) -> Optional[List[str]]:
    """DFS to find a cycle starting from a node."""
    visited.add(start)
    rec_stack.add(start)
    path.append(start)

    for neighbor in graph.get(start, []):
        if neighbor not in visited:
            cycle = _find_cycles_dfs(graph, neighbor, visited, rec_stack, path[:])
            if cycle:
                return cycle
        elif neighbor in rec_stack:
            cycle_start_idx = path.index(neighbor)
            return path[cycle_start_idx:] + [neighbor]

    rec_stack.remove(start)
    return None


@dataclass
class LogicReport:
    """Analysis report for a survey's navigation logic."""

    survey_name: str
    total_pages: int = 0
    total_questions: int = 0
    total_expressions: int = 0
    total_question_jumps: int = 0
    total_page_jumps: int = 0

    # Variable usage
    variable_usage: Dict[str, int] = field(default_factory=dict)
    undefined_variables: Set[str] = field(default_factory=set)
    unused_variables: Set[str] = field(default_factory=set)

    # Expressions
    uncompilable_expressions: Dict[str, str] = field(default_factory=dict)
    missing_expressions: Set[str] = field(default_factory=set)
    max_comparisons: int = 0
    total_comparisons: int = 0

    # Jumps
    priority_ties: List[Tuple[str, int, List[str]]] = field(default_factory=list)
    shadowed_jumps: List[str] = field(default_factory=list)

    # Graph properties
    graph: Dict[str, List[str]] = field(default_factory=dict)
    entry_point: Optional[str] = None
    unreachable_pages: Set[str] = field(default_factory=set)
    unreachable_questions: Set[str] = field(default_factory=set)
    has_cycles: bool = False
    cycle_example: Optional[List[str]] = None

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def _referenced_expression_ids(survey: Survey) -> Set[str]:
    ids: Set[str] = set()
    for page in survey.pages:
        if page.visible_if_expression_id:
            ids.add(page.visible_if_expression_id)
    for question in survey.questions:
        for expression_id in (question.visible_if_expression_id, question.terminate_if_expression_id):
            if expression_id:
                ids.add(expression_id)
    for jump in list(survey.question_jumps) + list(survey.page_jumps):
        if jump.condition_expression_id:
            ids.add(jump.condition_expression_id)
    return ids


def _jump_target_node(jump) -> str:
    to_question_id = getattr(jump, "to_question_id", None)
    if to_question_id:
        return question_node(to_question_id)
    return page_node(jump.to_page_id)


def _live_jumps(jumps) -> Tuple[list, list, bool]:
    """Split priority-ordered jumps at the first unconditional one."""
    ordered = order_by_priority(jumps)
    for position, jump in enumerate(ordered):
        if jump.condition_expression_id is None:
            return ordered[:position + 1], ordered[position + 1:], True
    return ordered, [], False


def build_jump_graph(survey: Survey) -> Tuple[Dict[str, List[str]], List[str]]:
    """
    Build the navigation graph.

    Returns:
        (adjacency lists, ids of jumps that can never fire)
    """
    graph: Dict[str, List[str]] = defaultdict(list)
    shadowed: List[str] = []
    pages = survey.pages_in_order()

    def leave_page(source: str, page_position: int) -> None:
        page = pages[page_position]
        live, dead, always = _live_jumps([j for j in survey.page_jumps if j.from_page_id == page.id])
        shadowed.extend(j.id for j in dead)
        for jump in live:
            graph[source].append(_jump_target_node(jump))
        if not always and page_position + 1 < len(pages):
            graph[source].append(page_node(pages[page_position + 1].id))

    for page_position, page in enumerate(pages):
        node = page_node(page.id)
        graph.setdefault(node, [])
        questions = survey.questions_on_page(page.id)
        if not questions:
            leave_page(node, page_position)
            continue
        graph[node].append(question_node(questions[0].id))
        for question_position, question in enumerate(questions):
            source = question_node(question.id)
            graph.setdefault(source, [])
            live, dead, always = _live_jumps(
                [j for j in survey.question_jumps if j.from_question_id == question.id]
            )
            shadowed.extend(j.id for j in dead)
            for jump in live:
                graph[source].append(_jump_target_node(jump))
            if always:
                continue
            if question_position + 1 < len(questions):
                graph[source].append(question_node(questions[question_position + 1].id))
            else:
                leave_page(source, page_position)

    return dict(graph), shadowed


def analyze_survey(survey: Survey) -> LogicReport:
    """
    Perform navigation-logic analysis of a Survey.

    Checks for:
    - Variables referenced by DSL but not defined by any question
    - Stored expressions that fail to compile, or are referenced but missing
    - Jumps from one source sharing a priority (order then depends on storage order)
    - Jumps that can never fire because an unconditional one precedes them
    - Pages and questions no path reaches, and cycles in the jump graph

    Returns a LogicReport with metrics and warnings.
    """
    report = LogicReport(survey_name=survey.name or survey.id)

    report.total_pages = len(survey.pages)
    report.total_questions = len(survey.questions)
    report.total_expressions = len(survey.expressions)
    report.total_question_jumps = len(survey.question_jumps)
    report.total_page_jumps = len(survey.page_jumps)

    # =========================================================================
    # 1. EXPRESSIONS AND VARIABLES
    # =========================================================================

    declared: Set[str] = {q.variable_name for q in survey.questions}
    question_ids: Set[str] = {q.id for q in survey.questions}
    usage: Dict[str, int] = defaultdict(int)

    for expression in survey.expressions:
        try:
            condition = compile_expression(expression.dsl).condition
        except CompileError as exc:
            report.uncompilable_expressions[expression.id] = str(exc)
            continue
        comparisons = len(comparisons_of(condition))
        report.total_comparisons += comparisons
        report.max_comparisons = max(report.max_comparisons, comparisons)
        for variable in referenced_variables(condition):
            usage[variable] += 1

    report.variable_usage = dict(usage)
    # Answers may also be looked up by raw question id
    report.undefined_variables = set(usage) - declared - question_ids
    report.unused_variables = declared - set(usage)

    known_expressions = {e.id for e in survey.expressions}
    report.missing_expressions = _referenced_expression_ids(survey) - known_expressions

    # =========================================================================
    # 2. JUMP PRIORITIES
    # =========================================================================

    by_source: Dict[Tuple[str, int], List[str]] = defaultdict(list)
    for jump in survey.question_jumps:
        by_source[(question_node(jump.from_question_id), jump.priority)].append(jump.id)
    for jump in survey.page_jumps:
        by_source[(page_node(jump.from_page_id), jump.priority)].append(jump.id)
    for (source, priority), jump_ids in by_source.items():
        if len(jump_ids) > 1:
            report.priority_ties.append((source, priority, jump_ids))

    # =========================================================================
    # 3. GRAPH STRUCTURE
    # =========================================================================

    graph, shadowed = build_jump_graph(survey)
    report.graph = graph
    report.shadowed_jumps = shadowed

    pages = survey.pages_in_order()
    reachable: Set[str] = set()
    if pages:
        report.entry_point = page_node(pages[0].id)
        stack = [report.entry_point]
        while stack:
            node = stack.pop()
            if node in reachable:
                continue
            reachable.add(node)
            for neighbor in graph.get(node, []):
                if neighbor not in reachable:
                    stack.append(neighbor)

    for page in survey.pages:
        if page_node(page.id) not in reachable:
            report.unreachable_pages.add(page.id)
    for question in survey.questions:
        if question_node(question.id) not in reachable:
            report.unreachable_questions.add(question.id)

    visited: Set[str] = set()
    for node in graph:
        if node not in visited:
            cycle = _find_cycles_dfs(graph, node, visited, set(), [])
            if cycle:
                report.has_cycles = True
                report.cycle_example = cycle
                break

    # =========================================================================
    # 4. WARNING FLAGS
    # =========================================================================

    if report.undefined_variables:
        report.add_warning(
            f"Undefined variable references: {', '.join(sorted(report.undefined_variables))}"
        )

    for expression_id, error in sorted(report.uncompilable_expressions.items()):
        report.add_warning(f"Expression {expression_id} does not compile: {error}")

    if report.missing_expressions:
        report.add_warning(
            f"Missing expressions: {', '.join(sorted(report.missing_expressions))}"
        )

    for source, priority, jump_ids in report.priority_ties:
        report.add_warning(
            f"Priority tie at {source} (priority {priority}): {', '.join(jump_ids)}"
        )

    if report.shadowed_jumps:
        report.add_warning(
            f"Jumps that can never fire: {', '.join(report.shadowed_jumps)}"
        )

    if report.unreachable_pages:
        report.add_warning(
            f"Unreachable pages: {', '.join(sorted(report.unreachable_pages))}"
        )

    if report.unreachable_questions:
        report.add_warning(
            f"Unreachable questions: {', '.join(sorted(report.unreachable_questions))}"
        )

    if report.has_cycles:
        report.add_warning(
            f"Cycle detected: {' -> '.join(report.cycle_example)}"
        )

    return report


__all__ = ["LogicReport", "analyze_survey", "build_jump_graph", "page_node", "question_node"]
