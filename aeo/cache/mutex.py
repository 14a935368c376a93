"""
Per-key async mutex.

Serializes coroutines that share a key (typically a user ID) within one
process. Not coordinated across instances.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, TypeVar

T = TypeVar("T")

_locks: Dict[str, asyncio.Lock] = {}
_waiters: Dict[str, int] = {}


async def with_mutex(key: str, fn: Callable[[], Awaitable[T]]) -> T:
    """
    Run `fn` while holding the lock for `key`.

    Locks are created on demand and dropped once nobody holds or waits on them.
    """
    lock = _locks.setdefault(key, asyncio.Lock())
    _waiters[key] = _waiters.get(key, 0) + 1
    try:
        async with lock:
            return await fn()
    finally:
        _waiters[key] -= 1
        if _waiters[key] == 0:
            del _waiters[key]
            _locks.pop(key, None)


def active_locks() -> Dict[str, Any]:
    """Lock keys currently held or awaited, with waiter counts."""
    return dict(_waiters)
