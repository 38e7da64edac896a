"""
Randomization engine: per-session ordering of questions and options.

Ordering policies (OrderMode):
    SEQUENTIAL    stored index order
    RANDOM        Fisher-Yates shuffle over the whole set
    GROUP_RANDOM  whole groups shuffled as blocks, members keep their
                  relative order, ungrouped items appended unshuffled
    WEIGHTED      stable sort by descending weight (missing weight = 1);
                  deterministic, NOT weighted random sampling

Caching contract:
    The first order computed for (session_id, cache_key) is stored with
    compute-if-absent semantics and returned forever after, whatever the
    current mode or item set. If storing fails the freshly computed
    order is still returned.
"""

import hashlib
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

from surveynav.config import EngineSettings
from surveynav.errors import CacheWriteFault
from surveynav.model import CachedOrder, Option, OrderMode, Question
from surveynav.stores import RenderStateStore

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0


@dataclass(frozen=True)
class OrderableItem:
    """
    Anything the engine can order.

    Properties:
        id: item identifier (what ends up in the order)
        index: stored position, the SEQUENTIAL order
        weight: WEIGHTED key; None means DEFAULT_WEIGHT
        group_key: GROUP_RANDOM block; None means ungrouped
    """

    id: str
    index: int = 0
    weight: Optional[float] = None
    group_key: Optional[str] = None

    @classmethod
    def from_option(cls, option: Option) -> "OrderableItem":
        return cls(id=option.id, index=option.index, weight=option.weight, group_key=option.group_key)

    @classmethod
    def from_question(cls, question: Question) -> "OrderableItem":
        # Questions have no authored group yet on most surveys; type stands in.
        return cls(
            id=question.id,
            index=question.index,
            weight=question.weight,
            group_key=question.group_key or question.type,
        )


Orderable = Union[OrderableItem, str]


def _as_items(items: Sequence[Orderable]) -> List[OrderableItem]:
    result = []
    for position, item in enumerate(items):
        if isinstance(item, OrderableItem):
            result.append(item)
        else:
            result.append(OrderableItem(id=str(item), index=position))
    return result


def session_rng(session_id: str, cache_key: str, salt: str = "") -> random.Random:
    """Deterministic generator for one session and cache key."""
    digest = hashlib.sha256(f"{salt}|{session_id}|{cache_key}".encode("utf-8")).digest()
    return random.Random(int.from_bytes(digest[:8], "big"))


def fisher_yates(values: Sequence, rng: random.Random) -> List:
    """Return a shuffled copy of values."""
    shuffled = list(values)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def group_random_order(items: Sequence[OrderableItem], rng: random.Random) -> List[str]:
    """Shuffle groups as atomic blocks; ungrouped items go last in input order."""
    groups: Dict[str, List[str]] = {}
    ungrouped: List[str] = []
    for item in items:
        if item.group_key:
            groups.setdefault(item.group_key, []).append(item.id)
        else:
            ungrouped.append(item.id)

    result: List[str] = []
    for key in fisher_yates(list(groups), rng):
        result.extend(groups[key])
    result.extend(ungrouped)
    return result


def weighted_order(items: Sequence[OrderableItem]) -> List[str]:
    """Stable sort by descending weight."""
    def weight(item: OrderableItem) -> float:
        return DEFAULT_WEIGHT if item.weight is None else item.weight

    return [item.id for item in sorted(items, key=lambda item: -weight(item))]


def weighted_sample(items: Sequence[OrderableItem], rng: random.Random) -> OrderableItem:
    """
    Pick one item with probability proportional to its weight.

    Not used by WEIGHTED mode, which is a deterministic sort.

    Raises:
        ValueError: if items is empty
    """
    if not items:
        raise ValueError("Cannot select from an empty sequence")
    weights = [DEFAULT_WEIGHT if i.weight is None else i.weight for i in items]
    total = sum(weights)
    if total <= 0:
        return items[rng.randrange(len(items))]
    point = rng.random() * total
    for item, item_weight in zip(items, weights):
        point -= item_weight
        if point <= 0:
            return item
    return items[-1]


def compute_order(items: Sequence[Orderable], mode: OrderMode, rng: random.Random) -> List[str]:
    """Compute an order for items under mode. Input is first put into index order."""
    ordered = sorted(_as_items(items), key=lambda item: item.index)
    if mode is OrderMode.SEQUENTIAL:
        return [item.id for item in ordered]
    if mode is OrderMode.RANDOM:
        return [item.id for item in fisher_yates(ordered, rng)]
    if mode is OrderMode.GROUP_RANDOM:
        return group_random_order(ordered, rng)
    if mode is OrderMode.WEIGHTED:
        return weighted_order(ordered)
    raise ValueError(f"Unsupported order mode: {mode}")


class RandomizationEngine:
    """
    Computes orders and remembers them in a session's render state.

    The store is owned by the caller and injected here; the engine
    holds no state of its own between calls.
    """

    def __init__(self, store: RenderStateStore, settings: Optional[EngineSettings] = None):
        self.store = store
        self.settings = settings or EngineSettings()

    def _rng(self, session_id: str, cache_key: str) -> random.Random:
        if self.settings.deterministic_shuffle:
            return session_rng(session_id, cache_key, self.settings.shuffle_seed_salt)
        return random.SystemRandom()

    def get_order(
        self,
        session_id: str,
        cache_key: str,
        items: Sequence[Orderable],
        mode: OrderMode,
    ) -> List[str]:
        """
        Return the order this session sees for cache_key.

        Args:
            session_id: respondent session
            cache_key: which orderable set (e.g. "question_<pageId>")
            items: the set to order; ignored once an order is cached
            mode: ordering policy; ignored once an order is cached

        Returns:
            list of item ids
        """
        cached = self.store.get(session_id, cache_key)
        if cached is not None:
            logger.debug("Render state hit for %s/%s", session_id, cache_key)
            return list(cached.order)

        order = compute_order(items, mode, self._rng(session_id, cache_key))
        candidate = CachedOrder(order=tuple(order), mode=mode)
        try:
            stored = self.store.put_if_absent(session_id, cache_key, candidate)
        except CacheWriteFault as exc:
            logger.warning("Could not cache order for %s/%s: %s", session_id, cache_key, exc)
            return order

        if stored is not candidate:
            logger.info("Lost first-view race for %s/%s; using stored order", session_id, cache_key)
        else:
            logger.info("Cached %s order for %s/%s (%d items)", mode.value, session_id, cache_key, len(order))
        return list(stored.order)


def question_cache_key(page_id: str) -> str:
    return f"question_{page_id}"


def option_cache_key(question_id: str) -> str:
    return f"option_{question_id}"


def item_cache_key(question_id: str) -> str:
    return f"item_{question_id}"


def scale_cache_key(question_id: str) -> str:
    return f"scale_{question_id}"


def group_cache_key(page_id: str) -> str:
    return f"group_{page_id}"
