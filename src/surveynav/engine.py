"""
Navigation engine facade.

One NavigationEngine is built per survey snapshot and passed by
reference to whoever renders the session. It wires together:
    - ExpressionEvaluator  (conditions)
    - RandomizationEngine  (per-session orders, persisted in a store)
    - JumpResolver         (one hop at a time)

ARCHITECTURAL RULE:
    The engine never mutates the survey. The only state it writes is
    render state, and only through the injected store.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from surveynav.answers import AnswerSet
from surveynav.config import EngineSettings
from surveynav.errors import HopLimitExceeded, NotFoundFault
from surveynav.evaluator import ExpressionEvaluator
from surveynav.model import (
    Destination,
    DestinationType,
    Option,
    OrderMode,
    Position,
    Question,
    Survey,
)
from surveynav.randomization import (
    Orderable,
    OrderableItem,
    RandomizationEngine,
    item_cache_key,
    option_cache_key,
    scale_cache_key,
)
from surveynav.resolver import JumpResolver
from surveynav.stores import InMemoryRenderStateStore, RenderStateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JumpTestResult:
    """
    Outcome of previewing a single jump against sample answers.

    Properties:
        jump_id: the jump tested
        matched: True if the jump would fire (unconditional jumps always do)
        condition_expression_id: the jump's condition, if any
        destination: where the jump leads, None if its target is missing
        error: why the destination could not be resolved
    """

    jump_id: str
    matched: bool
    condition_expression_id: Optional[str] = None
    destination: Optional[Destination] = None
    error: Optional[str] = None


class NavigationEngine:
    """
    Entry point for session navigation.

    Args:
        survey: the survey snapshot to navigate
        store: render-state store; defaults to an in-memory one
        settings: engine settings; defaults to EngineSettings()
    """

    def __init__(
        self,
        survey: Survey,
        store: Optional[RenderStateStore] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.survey = survey
        self.settings = settings or EngineSettings()
        self.store = store if store is not None else InMemoryRenderStateStore()
        self.evaluator = ExpressionEvaluator(survey)
        self.randomizer = RandomizationEngine(self.store, self.settings)
        self.resolver = JumpResolver(survey, self.evaluator, self.randomizer)

    # ----- conditions -----

    def evaluate(self, expression_id: str, answers: AnswerSet) -> bool:
        """
        Evaluate a stored expression.

        Raises:
            NotFoundFault: if the expression does not exist
        """
        return self.evaluator.evaluate(expression_id, answers)

    def test_jump(self, jump_id: str, answers: AnswerSet) -> JumpTestResult:
        """
        Would this jump fire for these answers?

        Raises:
            NotFoundFault: if no question or page jump has this id
        """
        jump = self.survey.get_question_jump(jump_id) or self.survey.get_page_jump(jump_id)
        if jump is None:
            raise NotFoundFault("jump", jump_id)

        matched = self.resolver.condition_holds(jump.condition_expression_id, answers)
        destination = None
        error = None
        try:
            destination = self.resolver.jump_destination(jump)
        except NotFoundFault as exc:
            error = str(exc)
        return JumpTestResult(
            jump_id=jump.id,
            matched=matched,
            condition_expression_id=jump.condition_expression_id,
            destination=destination,
            error=error,
        )

    # ----- ordering -----

    def get_order(
        self,
        session_id: str,
        cache_key: str,
        items: Sequence[Orderable],
        mode: OrderMode,
    ) -> List[str]:
        return self.randomizer.get_order(session_id, cache_key, items, mode)

    def _question(self, question_id: str) -> Question:
        question = self.survey.get_question(question_id)
        if question is None:
            raise NotFoundFault("question", question_id)
        return question

    def _leaf_order(self, session_id: str, cache_key: str, leaves: List[Option], mode: OrderMode) -> List[str]:
        return self.get_order(session_id, cache_key, [OrderableItem.from_option(o) for o in leaves], mode)

    def get_question_order(self, session_id: Optional[str], page_id: str) -> List[str]:
        """
        Question ids on a page in this session's order.

        Raises:
            NotFoundFault: if the page does not exist
        """
        page = self.survey.get_page(page_id)
        if page is None:
            raise NotFoundFault("page", page_id)
        return self.resolver.question_order(page, session_id)

    def get_option_order(self, session_id: str, question_id: str) -> List[str]:
        question = self._question(question_id)
        return self._leaf_order(session_id, option_cache_key(question.id), question.options, question.option_order_mode)

    def get_item_order(self, session_id: str, question_id: str) -> List[str]:
        question = self._question(question_id)
        return self._leaf_order(session_id, item_cache_key(question.id), question.items, question.item_order_mode)

    def get_scale_order(self, session_id: str, question_id: str) -> List[str]:
        question = self._question(question_id)
        return self._leaf_order(session_id, scale_cache_key(question.id), question.scales, question.scale_order_mode)

    # ----- navigation -----

    def resolve_next(
        self,
        position: Position,
        answers: AnswerSet,
        session_id: Optional[str] = None,
    ) -> Destination:
        """Exactly one hop; see JumpResolver.resolve_next."""
        return self.resolver.resolve_next(position, answers, session_id)

    def visible_questions(self, page_id: str, answers: AnswerSet, session_id: Optional[str] = None) -> List[str]:
        """Question ids on a page, in session order, whose visibility holds."""
        visible = []
        for question_id in self.get_question_order(session_id, page_id):
            question = self._question(question_id)
            if self.resolver.is_visible(question.visible_if_expression_id, answers):
                visible.append(question_id)
        return visible

    def _is_hidden(self, destination: Destination, answers: AnswerSet) -> bool:
        if destination.destination_type is DestinationType.QUESTION:
            question = self._question(destination.destination_id)
            return not self.resolver.is_visible(question.visible_if_expression_id, answers)
        if destination.destination_type is DestinationType.PAGE:
            page = self.survey.get_page(destination.destination_id)
            if page is None:
                raise NotFoundFault("page", destination.destination_id)
            return not self.resolver.is_visible(page.visible_if_expression_id, answers)
        return False

    def next_visible(
        self,
        position: Position,
        answers: AnswerSet,
        session_id: Optional[str] = None,
    ) -> Destination:
        """
        Resolve hops until a visible question, visible page or TERMINAL.

        Raises:
            HopLimitExceeded: after settings.max_hops hops without landing
            NotFoundFault: if a position or destination does not exist
        """
        path = [self._describe(position)]
        current = position
        for _ in range(self.settings.max_hops):
            destination = self.resolve_next(current, answers, session_id)
            if not self._is_hidden(destination, answers):
                return destination
            current = destination.to_position()
            path.append(self._describe(current))
            logger.debug("Skipping hidden %s", path[-1])
        logger.warning("Hop limit %d exceeded: %s", self.settings.max_hops, " -> ".join(path))
        raise HopLimitExceeded(self.settings.max_hops, path)

    def first_position(self, answers: AnswerSet, session_id: Optional[str] = None) -> Destination:
        """
        Where a new (or resumed from scratch) session starts: the first
        visible question on the first visible page.

        Raises:
            HopLimitExceeded: if hidden content cannot be walked past
        """
        for page in self.survey.pages_in_order():
            if not self.resolver.is_visible(page.visible_if_expression_id, answers):
                continue
            visible = self.visible_questions(page.id, answers, session_id)
            if visible:
                return Destination(DestinationType.QUESTION, destination_id=visible[0], page_id=page.id)
            return self.next_visible(Position.at_page(page.id), answers, session_id)
        return Destination.terminal()

    @staticmethod
    def _describe(position: Position) -> str:
        if position.is_page:
            return f"page:{position.page_id}"
        return f"question:{position.question_id}"
