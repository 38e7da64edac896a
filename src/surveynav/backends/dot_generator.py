"""
Graphviz DOT diagram generator for survey jump graphs.

Converts a Survey's pages, questions and jumps into Graphviz DOT format
for visualization.

Supports multiple modes:
    - SIMPLE: Page and question flow (no condition labels)
    - DETAILED: Jump conditions and priorities, visibility and termination rules
    - MANAGEMENT: Pages drawn as clusters around their questions

Sequential fallback edges are dashed; jump edges are solid.
"""

from enum import Enum
from typing import Dict, List, Optional

from surveynav.model import Expression, Page, Survey
from surveynav.resolver import order_by_priority


class DotMode(Enum):
    """Visualization modes for DOT output."""
    SIMPLE = "simple"          # Just page/question flow
    DETAILED = "detailed"      # Include conditions and priorities
    MANAGEMENT = "management"  # Pages as clusters


MAX_LABEL_LENGTH = 40


def _escape_dot_string(s: str) -> str:
    """Escape special characters for DOT labels."""
    if not s:
        return '""'
    s = s.replace('\\', '\\\\')
    s = s.replace('"', '\\"')
    s = s.replace('\n', '\\n')
    return f'"{s}"'


def _node_id(kind: str, identifier: str) -> str:
    """Quoted DOT node id, namespaced so pages and questions never collide."""
    return f'"{kind}:{identifier}"'


def _shorten(label: str) -> str:
    if len(label) > MAX_LABEL_LENGTH:
        return label[:MAX_LABEL_LENGTH - 3] + "..."
    return label


def _condition_label(survey: Survey, expression_id: Optional[str]) -> str:
    if expression_id is None:
        return ""
    expression: Optional[Expression] = survey.get_expression(expression_id)
    if expression is None:
        return f"<missing {expression_id}>"
    return expression.dsl


def _jump_label(survey: Survey, jump, mode: DotMode) -> str:
    if mode != DotMode.DETAILED:
        return ""
    condition = _condition_label(survey, jump.condition_expression_id) or "always"
    return _shorten(f"[{jump.priority}] {condition}")


def _edge(source: str, target: str, label: str = "", dashed: bool = False, color: str = "") -> str:
    attrs = []
    if label:
        attrs.append(f"label={_escape_dot_string(label)}")
    if dashed:
        attrs.append("style=dashed")
    if color:
        attrs.append(f"color={color}")
    attr_str = f" [{', '.join(attrs)}]" if attrs else ""
    return f"  {source} -> {target}{attr_str};"


def generate_dot(survey: Survey, mode: DotMode = DotMode.SIMPLE) -> str:
    """
    Generate Graphviz DOT format for a survey's navigation graph.

    Args:
        survey: Survey object to visualize
        mode: Visualization mode (SIMPLE, DETAILED, MANAGEMENT)

    Returns:
        String containing DOT graph definition
    """
    lines = []

    lines.append("digraph survey {")
    lines.append("  rankdir=LR;")
    lines.append("  node [shape=box, style=filled, fillcolor=lightblue];")

    if mode == DotMode.MANAGEMENT:
        lines.append("  edge [style=solid];")

    # =========================================================================
    # NODES
    # =========================================================================

    lines.append('  START [shape=ellipse, fillcolor=lightgreen, label="START"];')
    lines.append('  END [shape=ellipse, fillcolor=lightpink, label="END"];')

    pages: List[Page] = survey.pages_in_order()
    questions_by_page: Dict[str, List[str]] = {}

    for page in pages:
        label = f"Page {page.id}"
        if mode == DotMode.DETAILED and page.visible_if_expression_id:
            label += f"\nVisible: {_shorten(_condition_label(survey, page.visible_if_expression_id))}"
        lines.append(
            f"  {_node_id('page', page.id)} [shape=folder, fillcolor=khaki, "
            f"label={_escape_dot_string(label)}];"
        )

        questions_by_page[page.id] = []
        for question in survey.questions_on_page(page.id):
            questions_by_page[page.id].append(question.id)
            label = question.variable_name or question.id
            if mode == DotMode.DETAILED:
                info = [question.type]
                if question.visible_if_expression_id:
                    info.append(f"Visible: {_shorten(_condition_label(survey, question.visible_if_expression_id))}")
                if question.terminate_if_expression_id:
                    info.append(f"Ends: {_shorten(_condition_label(survey, question.terminate_if_expression_id))}")
                label = f"{label}\n({chr(10).join(info)})"
            lines.append(f"  {_node_id('question', question.id)} [label={_escape_dot_string(label)}];")

    # =========================================================================
    # EDGES
    # =========================================================================

    if pages:
        lines.append(_edge("START", _node_id("page", pages[0].id)))
    else:
        lines.append(_edge("START", "END"))

    for position, page in enumerate(pages):
        page_id = _node_id("page", page.id)
        question_ids = questions_by_page[page.id]

        if question_ids:
            lines.append(_edge(page_id, _node_id("question", question_ids[0]), dashed=True))

        for offset, question_id in enumerate(question_ids):
            source = _node_id("question", question_id)
            question = survey.get_question(question_id)

            if question.terminate_if_expression_id:
                label = "terminate" if mode == DotMode.DETAILED else ""
                lines.append(_edge(source, "END", label=label, color="red"))

            for jump in order_by_priority([j for j in survey.question_jumps if j.from_question_id == question_id]):
                if jump.to_question_id:
                    target = _node_id("question", jump.to_question_id)
                else:
                    target = _node_id("page", jump.to_page_id)
                lines.append(_edge(source, target, label=_jump_label(survey, jump, mode)))

            if offset + 1 < len(question_ids):
                lines.append(_edge(source, _node_id("question", question_ids[offset + 1]), dashed=True))

        # Leaving the page: from its last question, or from the page itself when empty
        leave_from = _node_id("question", question_ids[-1]) if question_ids else page_id
        for jump in order_by_priority([j for j in survey.page_jumps if j.from_page_id == page.id]):
            lines.append(_edge(leave_from, _node_id("page", jump.to_page_id), label=_jump_label(survey, jump, mode)))

        if position + 1 < len(pages):
            lines.append(_edge(leave_from, _node_id("page", pages[position + 1].id), dashed=True))
        else:
            lines.append(_edge(leave_from, "END", dashed=True))

    # =========================================================================
    # PAGES AS CLUSTERS (MANAGEMENT MODE)
    # =========================================================================

    if mode == DotMode.MANAGEMENT:
        for page in pages:
            lines.append(f'  subgraph "cluster_{page.id}" {{')
            lines.append(f'    label={_escape_dot_string(f"Page {page.id}")};')
            lines.append('    style=filled;')
            lines.append('    color=lightgrey;')
            lines.append(f"    {_node_id('page', page.id)};")
            for question_id in questions_by_page[page.id]:
                lines.append(f"    {_node_id('question', question_id)};")
            lines.append("  }")

    lines.append("}")

    return "\n".join(lines)


def save_dot_file(survey: Survey, filename: str, mode: DotMode = DotMode.SIMPLE) -> None:
    """
    Generate DOT and save to file.

    Args:
        survey: Survey to visualize
        filename: Output file path (.dot extension recommended)
        mode: Visualization mode
    """
    dot = generate_dot(survey, mode=mode)
    with open(filename, 'w') as f:
        f.write(dot)


__all__ = ["DotMode", "generate_dot", "save_dot_file"]
