"""
Jump resolution: one navigation hop from the respondent's position.

Order of decisions for a respondent AT_QUESTION:
    1. the question's termination condition (ends the survey)
    2. question jumps, ascending priority, first match wins
    3. next question on the page (page order, possibly randomized)
    4. if the question was the last on its page: the page's jumps
    5. next visible page by index, else TERMINAL

For a respondent AT_PAGE only steps 4 and 5 apply.

Each call performs exactly one hop. The resolver does not follow chains
and does not detect cycles; see NavigationEngine.next_visible for the
bounded walk.
"""

import logging
from typing import Dict, List, Optional, Sequence, Union

from surveynav.answers import AnswerSet
from surveynav.errors import NotFoundFault
from surveynav.evaluator import ExpressionEvaluator
from surveynav.model import (
    Destination,
    DestinationType,
    OrderMode,
    Page,
    PageJump,
    Position,
    Question,
    QuestionJump,
    Survey,
)
from surveynav.randomization import OrderableItem, RandomizationEngine, group_cache_key, question_cache_key

logger = logging.getLogger(__name__)

DEFAULT_TERMINATION_REASON = "Survey terminated based on answer"

Jump = Union[QuestionJump, PageJump]


def order_by_priority(jumps: Sequence[Jump]) -> List[Jump]:
    """Ascending priority; equal priorities keep their storage (creation) order."""
    return sorted(jumps, key=lambda j: j.priority)


class JumpResolver:
    """
    Decides where a respondent goes next.

    The survey graph, evaluator and (optional) randomization engine are
    injected. Without a randomization engine, or without a session id,
    pages are walked in index order whatever their mode.
    """

    def __init__(
        self,
        survey: Survey,
        evaluator: Optional[ExpressionEvaluator] = None,
        randomizer: Optional[RandomizationEngine] = None,
    ):
        self.survey = survey
        self.evaluator = evaluator or ExpressionEvaluator(survey)
        self.randomizer = randomizer

    # ----- lookups -----

    def _page(self, page_id: str) -> Page:
        page = self.survey.get_page(page_id)
        if page is None:
            raise NotFoundFault("page", page_id)
        return page

    def _question(self, question_id: str) -> Question:
        question = self.survey.get_question(question_id)
        if question is None:
            raise NotFoundFault("question", question_id)
        return question

    def question_jumps_from(self, question_id: str) -> List[QuestionJump]:
        return order_by_priority([j for j in self.survey.question_jumps if j.from_question_id == question_id])

    def page_jumps_from(self, page_id: str) -> List[PageJump]:
        return order_by_priority([j for j in self.survey.page_jumps if j.from_page_id == page_id])

    # ----- conditions -----

    def condition_holds(self, expression_id: Optional[str], answers: AnswerSet) -> bool:
        """True for no expression; False (logged) for a dangling expression id."""
        if expression_id is None:
            return True
        try:
            return self.evaluator.evaluate(expression_id, answers)
        except NotFoundFault as exc:
            logger.warning("Treating missing condition as false: %s", exc)
            return False

    def is_visible(self, expression_id: Optional[str], answers: AnswerSet) -> bool:
        return self.condition_holds(expression_id, answers)

    # ----- ordering -----

    def question_order(self, page: Page, session_id: Optional[str] = None) -> List[str]:
        """
        Question ids on a page in the order this session sees them.

        Questions are first ordered by the page's question_order_mode.
        When group_order_mode is not SEQUENTIAL, questions sharing a
        group_key are then kept together as blocks and the blocks are
        ordered under their own cache key; ungrouped questions follow
        the last block.

        Ids in a cached order that are no longer on the page are skipped.
        """
        questions = self.survey.questions_on_page(page.id)
        if self.randomizer is None or session_id is None:
            return [q.id for q in questions]

        if page.question_order_mode is OrderMode.SEQUENTIAL:
            order = [q.id for q in questions]
        else:
            on_page = {q.id for q in questions}
            order = self.randomizer.get_order(
                session_id,
                question_cache_key(page.id),
                [OrderableItem.from_question(q) for q in questions],
                page.question_order_mode,
            )
            order = [qid for qid in order if qid in on_page]

        if page.group_order_mode is OrderMode.SEQUENTIAL:
            return order
        return self._order_groups(page, order, session_id)

    def _order_groups(self, page: Page, order: List[str], session_id: str) -> List[str]:
        groups: Dict[str, List[str]] = {}
        first_index: Dict[str, int] = {}
        standalone: List[str] = []
        for question_id in order:
            question = self._question(question_id)
            if question.group_key:
                groups.setdefault(question.group_key, []).append(question_id)
                first_index.setdefault(question.group_key, question.index)
            else:
                standalone.append(question_id)

        # blocks have no groups of their own, so GROUP_RANDOM shuffles them like RANDOM
        mode = OrderMode.RANDOM if page.group_order_mode is OrderMode.GROUP_RANDOM else page.group_order_mode
        block_order = self.randomizer.get_order(
            session_id,
            group_cache_key(page.id),
            [OrderableItem(id=key, index=first_index[key]) for key in groups],
            mode,
        )

        result: List[str] = []
        for key in block_order:
            result.extend(groups.pop(key, []))
        # groups added to the page after the block order was cached
        for key in sorted(groups, key=lambda k: first_index[k]):
            result.extend(groups[key])
        result.extend(standalone)
        return result

    # ----- destinations -----

    def jump_destination(self, jump: Jump) -> Destination:
        """
        Destination a jump points at.

        Raises:
            NotFoundFault: if the destination does not exist
        """
        to_question_id = getattr(jump, "to_question_id", None)
        if to_question_id:
            question = self._question(to_question_id)
            return Destination(
                DestinationType.QUESTION,
                destination_id=question.id,
                page_id=question.page_id,
                via_jump_id=jump.id,
            )
        if jump.to_page_id:
            page = self._page(jump.to_page_id)
            return Destination(DestinationType.PAGE, destination_id=page.id, page_id=page.id, via_jump_id=jump.id)
        raise NotFoundFault("jump destination", jump.id)

    def first_matching(self, jumps: Sequence[Jump], answers: AnswerSet) -> Optional[Jump]:
        for jump in jumps:
            matched = self.condition_holds(jump.condition_expression_id, answers)
            logger.debug(
                "Jump %s (priority %d, condition %s) -> %s",
                jump.id, jump.priority, jump.condition_expression_id, matched,
            )
            if matched:
                return jump
        return None

    def next_visible_page(self, page: Page, answers: AnswerSet) -> Optional[Page]:
        """First page after `page` by index whose visibility condition holds."""
        for candidate in self.survey.pages_in_order():
            if candidate.index <= page.index or candidate.id == page.id:
                continue
            if self.is_visible(candidate.visible_if_expression_id, answers):
                return candidate
            logger.debug("Skipping hidden page %s", candidate.id)
        return None

    def _leave_page(self, page: Page, answers: AnswerSet) -> Destination:
        jump = self.first_matching(self.page_jumps_from(page.id), answers)
        if jump is not None:
            logger.info("Page jump %s fired from page %s", jump.id, page.id)
            return self.jump_destination(jump)
        next_page = self.next_visible_page(page, answers)
        if next_page is None:
            return Destination.terminal()
        return Destination(DestinationType.PAGE, destination_id=next_page.id, page_id=next_page.id)

    def termination(self, question: Question, answers: AnswerSet) -> Optional[Destination]:
        """TERMINAL destination if the question's termination condition holds."""
        if question.terminate_if_expression_id is None:
            return None
        if not self.condition_holds(question.terminate_if_expression_id, answers):
            return None
        expression = self.survey.get_expression(question.terminate_if_expression_id)
        reason = (expression.description if expression else None) or DEFAULT_TERMINATION_REASON
        logger.info("Termination condition met at question %s: %s", question.id, reason)
        return Destination.terminal(terminated=True, reason=reason)

    def resolve_next(
        self,
        position: Position,
        answers: AnswerSet,
        session_id: Optional[str] = None,
    ) -> Destination:
        """
        Resolve one hop from position.

        Args:
            position: AT_QUESTION or AT_PAGE
            answers: the session's answers so far
            session_id: needed to honour randomized page order

        Returns:
            Destination (QUESTION, PAGE or TERMINAL)

        Raises:
            NotFoundFault: if the position or a chosen destination does not exist
        """
        if position.is_page:
            return self._leave_page(self._page(position.page_id), answers)

        question = self._question(position.question_id)
        page = self._page(question.page_id)

        terminated = self.termination(question, answers)
        if terminated is not None:
            return terminated

        jump = self.first_matching(self.question_jumps_from(question.id), answers)
        if jump is not None:
            logger.info("Question jump %s fired from question %s", jump.id, question.id)
            return self.jump_destination(jump)

        order = self.question_order(page, session_id)
        if question.id not in order:
            # added to the page after this session cached its order
            order = [q.id for q in self.survey.questions_on_page(page.id)]
        following = order[order.index(question.id) + 1:]
        if following:
            return Destination(DestinationType.QUESTION, destination_id=following[0], page_id=page.id)
        return self._leave_page(page, answers)
