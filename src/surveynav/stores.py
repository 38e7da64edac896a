"""
Render-state stores.

A store remembers, per session, the order computed for each cache key.
The one operation that matters for correctness is put_if_absent(): two
concurrent first views of the same page must end up showing the same
order, so the write is compute-if-absent and returns whichever order won.

Provides:
- InMemoryRenderStateStore: per-process dict, lock per (session, cache key)
- RedisRenderStateStore: one hash per session, HSETNX for the atomic write
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import redis

from surveynav.config import EngineSettings
from surveynav.errors import CacheWriteFault
from surveynav.model import CachedOrder, Session
from surveynav.serialization import cached_order_from_json, cached_order_to_json

logger = logging.getLogger(__name__)


class RenderStateStore(ABC):
    """Interface the randomization engine persists orders through."""

    @abstractmethod
    def get(self, session_id: str, cache_key: str) -> Optional[CachedOrder]:
        """Return the cached order, or None if nothing is cached yet."""

    @abstractmethod
    def put_if_absent(self, session_id: str, cache_key: str, order: CachedOrder) -> CachedOrder:
        """
        Store order unless one already exists; return the stored order.

        Raises:
            CacheWriteFault: if the write could not be performed
        """


class InMemoryRenderStateStore(RenderStateStore):
    """
    Render state held in process memory.

    Sessions can be attached so the store reads and writes their
    render_state dict directly.
    """

    def __init__(self):
        self._states: Dict[str, Dict[str, CachedOrder]] = {}
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._guard = threading.Lock()

    def attach(self, session: Session) -> None:
        with self._guard:
            self._states[session.id] = session.render_state

    def _lock_for(self, session_id: str, cache_key: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((session_id, cache_key), threading.Lock())

    def get(self, session_id: str, cache_key: str) -> Optional[CachedOrder]:
        return self._states.get(session_id, {}).get(cache_key)

    def put_if_absent(self, session_id: str, cache_key: str, order: CachedOrder) -> CachedOrder:
        with self._lock_for(session_id, cache_key):
            with self._guard:
                state = self._states.setdefault(session_id, {})
            existing = state.get(cache_key)
            if existing is not None:
                return existing
            state[cache_key] = order
            return order

    def snapshot(self, session_id: str) -> Dict[str, CachedOrder]:
        """Copy of everything cached for one session."""
        return dict(self._states.get(session_id, {}))

    def clear(self, session_id: str) -> None:
        """Drop a session's render state and its locks."""
        with self._guard:
            self._states.pop(session_id, None)
            for key in [k for k in self._locks if k[0] == session_id]:
                del self._locks[key]


class RedisRenderStateStore(RenderStateStore):
    """
    Render state in Redis.

    Layout:
        <prefix>:render_state:<session_id>  ->  hash { cache_key: json(CachedOrder) }

    Features:
    - HSETNX makes the first write win across processes
    - TTL refreshed on every write so abandoned sessions expire
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or EngineSettings()
        self.prefix = self.settings.redis_prefix
        self.ttl_seconds = self.settings.render_state_ttl_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "RedisRenderStateStore":
        client = redis.Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        return cls(client=client, settings=settings)

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("RedisRenderStateStore has no client; use from_settings()")
        return self._client

    def _make_key(self, session_id: str) -> str:
        return f"{self.prefix}:render_state:{session_id}"

    def get(self, session_id: str, cache_key: str) -> Optional[CachedOrder]:
        try:
            raw = self.client.hget(self._make_key(session_id), cache_key)
        except redis.RedisError as exc:
            logger.warning("Render state read failed for %s/%s: %s", session_id, cache_key, exc)
            return None
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return cached_order_from_json(raw)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Unreadable render state for %s/%s, recomputing: %s", session_id, cache_key, exc)
            return None

    def put_if_absent(self, session_id: str, cache_key: str, order: CachedOrder) -> CachedOrder:
        key = self._make_key(session_id)
        try:
            created = self.client.hsetnx(key, cache_key, cached_order_to_json(order))
            self.client.expire(key, self.ttl_seconds)
        except redis.RedisError as exc:
            raise CacheWriteFault(f"redis write failed for {key}/{cache_key}: {exc}") from exc

        if created:
            return order
        existing = self.get(session_id, cache_key)
        return existing if existing is not None else order

    def clear(self, session_id: str) -> None:
        """Drop a session's render state (e.g. when a session is reset)."""
        self.client.delete(self._make_key(session_id))
