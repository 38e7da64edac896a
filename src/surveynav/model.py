"""
Core Survey Graph Objects

Defines the records the navigation engine reads from the authoring /
persistence layer:
    - Expressions (stored DSL conditions)
    - Pages and Questions (ordered by index)
    - Options, Items, Scales (orderable leaves under a question)
    - QuestionJumps and PageJumps (priority-ordered branching rules)
    - Survey (root container with lookups)

And the small values the engine hands back:
    - Position (where the respondent is)
    - Destination (where they go next)
    - CachedOrder (a remembered randomization decision)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about storage or HTTP
        - Are read-only from the engine's point of view
        - Are fully serializable (see surveynav.serialization)
        - Represent structure, not behavior
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from surveynav.answers import AnswerSet


class OrderMode(Enum):
    """How an orderable set is arranged for a respondent."""

    SEQUENTIAL = "SEQUENTIAL"
    RANDOM = "RANDOM"
    GROUP_RANDOM = "GROUP_RANDOM"
    WEIGHTED = "WEIGHTED"


class DestinationType(Enum):
    QUESTION = "QUESTION"
    PAGE = "PAGE"
    TERMINAL = "TERMINAL"


@dataclass(frozen=True)
class Expression:
    """
    A stored condition.

    Properties:
        id: expression identifier
        dsl: condition text (grammar in surveynav.parser)
        description: author note, also used as termination reason

    Expressions are never mutated once referenced. Editing one means
    creating a replacement and re-pointing the references.
    """

    id: str
    dsl: str
    description: Optional[str] = None


@dataclass
class Option:
    """
    An orderable leaf under a question: a choice, a matrix row (item) or
    a matrix column (scale).

    Properties:
        id: leaf identifier
        value: value recorded in the answer when selected
        label: display text
        index: stored position among its siblings
        weight: WEIGHTED ordering key; None means 1
        group_key: GROUP_RANDOM block key; None means ungrouped
    """

    id: str
    value: str
    label: str = ""
    index: int = 0
    weight: Optional[float] = None
    group_key: Optional[str] = None


@dataclass
class Question:
    """
    A question node.

    Properties:
        id: question identifier
        survey_id: owning survey
        page_id: page the question sits on
        index: ordinal within the survey; sequential order on a page
        type: question type (e.g. "SINGLE_CHOICE", "MATRIX_SINGLE", "TEXT")
        variable_name: stable author-visible handle used in DSL ("Q3")
        options / items / scales: orderable leaves
        option_order_mode / item_order_mode / scale_order_mode: leaf ordering
        group_key: GROUP_RANDOM block key on a page; None falls back to type
        weight: WEIGHTED ordering key on a page; None means 1
        visible_if_expression_id: question is skipped when this is false
        terminate_if_expression_id: survey ends when this is true after answering
    """

    id: str
    survey_id: str
    page_id: str
    index: int
    variable_name: str
    type: str = "SINGLE_CHOICE"
    options: List[Option] = field(default_factory=list)
    items: List[Option] = field(default_factory=list)
    scales: List[Option] = field(default_factory=list)
    option_order_mode: OrderMode = OrderMode.SEQUENTIAL
    item_order_mode: OrderMode = OrderMode.SEQUENTIAL
    scale_order_mode: OrderMode = OrderMode.SEQUENTIAL
    group_key: Optional[str] = None
    weight: Optional[float] = None
    visible_if_expression_id: Optional[str] = None
    terminate_if_expression_id: Optional[str] = None


@dataclass
class Page:
    """
    A page of questions.

    Properties:
        id: page identifier
        survey_id: owning survey
        index: ordinal within the survey
        question_order_mode: how questions on the page are ordered
        group_order_mode: how question groups on the page are ordered
        visible_if_expression_id: page is skipped by sequential progression when false
    """

    id: str
    survey_id: str
    index: int
    question_order_mode: OrderMode = OrderMode.SEQUENTIAL
    group_order_mode: OrderMode = OrderMode.SEQUENTIAL
    visible_if_expression_id: Optional[str] = None


@dataclass
class QuestionJump:
    """
    A branching rule leaving a question.

    Exactly one of to_question_id / to_page_id is set (checked at
    authoring time by surveynav.validation). Lower priority is tried
    first; equal priorities keep storage order.
    """

    id: str
    survey_id: str
    from_question_id: str
    to_question_id: Optional[str] = None
    to_page_id: Optional[str] = None
    condition_expression_id: Optional[str] = None
    priority: int = 0


@dataclass
class PageJump:
    """A branching rule leaving a page. Same shape as QuestionJump."""

    id: str
    survey_id: str
    from_page_id: str
    to_page_id: str
    condition_expression_id: Optional[str] = None
    priority: int = 0


@dataclass(frozen=True)
class Position:
    """
    Where the respondent currently is.

    question_id is None when the respondent is positioned on a page as
    a whole (AT_PAGE); otherwise they are AT_QUESTION.
    """

    page_id: str
    question_id: Optional[str] = None

    @classmethod
    def at_page(cls, page_id: str) -> "Position":
        return cls(page_id=page_id)

    @classmethod
    def at_question(cls, page_id: str, question_id: str) -> "Position":
        return cls(page_id=page_id, question_id=question_id)

    @property
    def is_page(self) -> bool:
        return self.question_id is None


@dataclass(frozen=True)
class Destination:
    """
    Result of one resolve step.

    Properties:
        destination_type: QUESTION, PAGE or TERMINAL
        destination_id: question or page id; None for TERMINAL
        page_id: page the respondent lands on (bookkeeping for callers)
        via_jump_id: the jump that fired, None for sequential fallback
        terminated: True when a termination condition ended the survey
        reason: termination reason, if any
    """

    destination_type: DestinationType
    destination_id: Optional[str] = None
    page_id: Optional[str] = None
    via_jump_id: Optional[str] = None
    terminated: bool = False
    reason: Optional[str] = None

    @classmethod
    def terminal(cls, terminated: bool = False, reason: Optional[str] = None) -> "Destination":
        return cls(DestinationType.TERMINAL, terminated=terminated, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.destination_type is DestinationType.TERMINAL

    def to_position(self) -> Optional[Position]:
        if self.destination_type is DestinationType.QUESTION:
            return Position(page_id=self.page_id, question_id=self.destination_id)
        if self.destination_type is DestinationType.PAGE:
            return Position(page_id=self.destination_id)
        return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CachedOrder:
    """A randomization decision remembered for one session and cache key."""

    order: Tuple[str, ...]
    mode: OrderMode
    computed_at: datetime = field(default_factory=_utcnow)


@dataclass
class Session:
    """
    A respondent session snapshot.

    render_state is the only mutable cache the engine owns. Entries are
    written once per cache key and reused for the life of the session.
    """

    id: str
    survey_id: str
    answers: AnswerSet = field(default_factory=AnswerSet)
    render_state: Dict[str, CachedOrder] = field(default_factory=dict)


@dataclass
class Survey:
    """
    Root container for one survey's navigation graph.

    INVARIANTS (checked by surveynav.validation, not here):
        - every jump's source and destination belong to this survey
        - every referenced expression exists
        - variable names are unique
    """

    id: str
    name: str = ""
    pages: List[Page] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)
    expressions: List[Expression] = field(default_factory=list)
    question_jumps: List[QuestionJump] = field(default_factory=list)
    page_jumps: List[PageJump] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)

    def get_page(self, page_id: str) -> Optional[Page]:
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    def get_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def get_question_by_variable(self, variable_name: str) -> Optional[Question]:
        for question in self.questions:
            if question.variable_name == variable_name:
                return question
        return None

    def get_expression(self, expression_id: str) -> Optional[Expression]:
        for expression in self.expressions:
            if expression.id == expression_id:
                return expression
        return None

    def get_question_jump(self, jump_id: str) -> Optional[QuestionJump]:
        for jump in self.question_jumps:
            if jump.id == jump_id:
                return jump
        return None

    def get_page_jump(self, jump_id: str) -> Optional[PageJump]:
        for jump in self.page_jumps:
            if jump.id == jump_id:
                return jump
        return None

    def pages_in_order(self) -> List[Page]:
        """Pages sorted by index, storage order on ties."""
        return sorted(self.pages, key=lambda p: p.index)

    def questions_on_page(self, page_id: str) -> List[Question]:
        """Questions on a page sorted by index, storage order on ties."""
        return sorted(
            (q for q in self.questions if q.page_id == page_id),
            key=lambda q: q.index,
        )
