"""
Chat Context Store

Per-user, per-key conversation context held in process memory.

- Entries idle for longer than CONTEXT_TTL_SECONDS are evicted
- At most MAX_CONTEXTS_PER_USER entries per user; the oldest is evicted first
- Every read and write for a user runs under that user's mutex
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from aeo.cache.mutex import with_mutex

logger = logging.getLogger(__name__)

CONTEXT_TTL_SECONDS = 30 * 60
MAX_CONTEXTS_PER_USER = 100
CONTEXT_TYPES = ("workflow", "analysis", "business", "preference")


@dataclass
class ChatContext:
    context_key: str
    context_type: str
    context_data: Dict[str, Any] = field(default_factory=dict)
    expires_at: Optional[float] = None
    last_access: float = 0.0


class ChatContextStore:
    """
    In-memory context store.

    Usage:
        store = ChatContextStore()
        await store.set_context("user_1", "onboarding", "workflow", {"step": 2})
        data = await store.get_context("user_1")
    """

    def __init__(
        self,
        ttl: float = CONTEXT_TTL_SECONDS,
        max_per_user: int = MAX_CONTEXTS_PER_USER,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl = ttl
        self.max_per_user = max_per_user
        self._clock = clock
        self._store: Dict[str, "OrderedDict[str, ChatContext]"] = {}

    def _mutex_key(self, user_id: str) -> str:
        return f"chat-context:{user_id}"

    async def get_context(self, user_id: str, context_keys: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Return {context_key: context_data} for a user, touching each entry read.

        Args:
            user_id: Owner
            context_keys: Restrict to these keys (all keys when None)
        """
        async def read() -> Dict[str, Any]:
            contexts = self._store.get(user_id)
            if not contexts:
                return {}

            now = self._clock()
            self._evict_stale(user_id, now)
            keys = context_keys if context_keys is not None else list(contexts)
            result = {}
            for key in keys:
                ctx = contexts.get(key)
                if ctx is not None:
                    ctx.last_access = now
                    result[key] = ctx.context_data
            return result

        return await with_mutex(self._mutex_key(user_id), read)

    async def set_context(
        self,
        user_id: str,
        context_key: str,
        context_type: str,
        context_data: Dict[str, Any],
        expires_at: Optional[float] = None,
    ) -> None:
        if context_type not in CONTEXT_TYPES:
            raise ValueError(f"Invalid context type: {context_type}")

        async def write() -> None:
            contexts = self._store.setdefault(user_id, OrderedDict())
            if context_key not in contexts and len(contexts) >= self.max_per_user:
                oldest, _ = contexts.popitem(last=False)
                logger.debug(f"Evicted context {oldest} for user {user_id}")

            contexts[context_key] = ChatContext(
                context_key=context_key,
                context_type=context_type,
                context_data=context_data,
                expires_at=expires_at,
                last_access=self._clock(),
            )

        await with_mutex(self._mutex_key(user_id), write)

    async def clear_context(self, user_id: str, context_key: str) -> None:
        async def delete() -> None:
            contexts = self._store.get(user_id)
            if contexts is not None:
                contexts.pop(context_key, None)
                if not contexts:
                    del self._store[user_id]

        await with_mutex(self._mutex_key(user_id), delete)

    async def clear_expired_contexts(self, user_id: str) -> int:
        """Drop entries whose explicit expiry has passed. Returns the number removed."""
        async def purge() -> int:
            contexts = self._store.get(user_id)
            if not contexts:
                return 0
            now = self._clock()
            expired = [k for k, ctx in contexts.items() if ctx.expires_at is not None and ctx.expires_at < now]
            for key in expired:
                del contexts[key]
            return len(expired)

        return await with_mutex(self._mutex_key(user_id), purge)

    def sweep(self) -> int:
        """Evict idle entries for every user. Returns the number removed."""
        now = self._clock()
        return sum(self._evict_stale(user_id, now) for user_id in list(self._store))

    def _evict_stale(self, user_id: str, now: float) -> int:
        contexts = self._store.get(user_id)
        if contexts is None:
            return 0
        stale = [k for k, ctx in contexts.items() if ctx.last_access < now - self.ttl]
        for key in stale:
            del contexts[key]
        if not contexts:
            del self._store[user_id]
        return len(stale)

    def count(self, user_id: str) -> int:
        return len(self._store.get(user_id, ()))


chat_contexts = ChatContextStore()
