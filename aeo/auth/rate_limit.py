"""
Sliding-Window Rate Limiting

Per-user request limits held in process memory. Buckets:
- content_generation: 10 / minute
- image_generation:   20 / minute
- api:                60 / minute

Exceeding a bucket raises RateLimitError (429 with Retry-After headers).
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Tuple

from fastapi import Depends

from aeo.auth.dependencies import get_current_user
from aeo.database.models import User
from aeo.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    max_requests: int
    window_seconds: float = 60.0


RATE_LIMITS: Dict[str, RateLimitRule] = {
    "content_generation": RateLimitRule(10),
    "image_generation": RateLimitRule(20),
    "api": RateLimitRule(60),
}


class SlidingWindowLimiter:
    """
    Request timestamps per (bucket, key), trimmed to the window on each hit.

    Idle keys are pruned every `prune_every` hits.
    """

    def __init__(
        self,
        rules: Dict[str, RateLimitRule] = None,
        clock: Callable[[], float] = time.time,
        prune_every: int = 1000,
    ):
        self.rules = rules or RATE_LIMITS
        self._clock = clock
        self._hits: Dict[Tuple[str, str], Deque[float]] = {}
        self.prune_every = prune_every
        self._calls = 0

    def hit(self, bucket: str, key: str) -> int:
        """
        Record a request.

        Returns:
            Remaining requests in the window

        Raises:
            RateLimitError: If the bucket is full
        """
        rule = self.rules[bucket]
        now = self._clock()

        self._calls += 1
        if self._calls >= self.prune_every:
            self._calls = 0
            self.prune()

        hits = self._hits.setdefault((bucket, key), deque())

        while hits and now - hits[0] >= rule.window_seconds:
            hits.popleft()

        if len(hits) >= rule.max_requests:
            reset = hits[0] + rule.window_seconds
            logger.warning(f"Rate limit hit: bucket={bucket} key={key}")
            raise RateLimitError(
                "Too many requests, please try again later",
                reset=reset,
                remaining=0,
                limit=rule.max_requests,
            )

        hits.append(now)
        return rule.max_requests - len(hits)

    def prune(self) -> int:
        """Drop keys whose whole window has passed. Returns keys removed."""
        now = self._clock()
        stale = [
            k for k, hits in self._hits.items()
            if not hits or now - hits[-1] >= self.rules[k[0]].window_seconds
        ]
        for k in stale:
            del self._hits[k]
        return len(stale)

    def reset(self) -> None:
        self._hits.clear()
        self._calls = 0

    def __len__(self) -> int:
        return len(self._hits)


limiter = SlidingWindowLimiter()


def rate_limit(bucket: str):
    """
    Dependency factory enforcing a bucket for the current user.

    Usage:
        @router.post("/generate", dependencies=[Depends(rate_limit("content_generation"))])
    """
    if bucket not in RATE_LIMITS:
        raise ValueError(f"Unknown rate limit bucket: {bucket}")

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        limiter.hit(bucket, current_user.id)
        return current_user

    return dependency
