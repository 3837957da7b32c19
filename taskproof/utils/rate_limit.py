"""In-process sliding-window limiter for proof submissions."""

import math
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock

MAX_TRACKED_KEYS = 50_000
PRUNE_EVERY_SECONDS = 60


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    used: int
    retry_after: int = 0


def _expire(hits: deque, cutoff: float) -> None:
    while hits and hits[0] <= cutoff:
        hits.popleft()


class SlidingWindowRateLimiter:
    def __init__(
        self,
        *,
        max_keys: int = MAX_TRACKED_KEYS,
        prune_every_seconds: int = PRUNE_EVERY_SECONDS,
    ) -> None:
        self._hits: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._max_keys = max_keys
        self._prune_every = max(1, int(prune_every_seconds))
        self._next_prune_at = 0.0

    def hit(self, key: str, limit: int, window_seconds: int) -> RateDecision:
        """Count one attempt for *key* unless it is already over *limit*."""
        if limit <= 0 or window_seconds <= 0:
            return RateDecision(allowed=True, used=0)
        now = time.monotonic()
        cutoff = now - window_seconds
        with self._lock:
            if now >= self._next_prune_at or len(self._hits) > self._max_keys:
                self._drop_idle(cutoff)
                self._next_prune_at = now + self._prune_every

            hits = self._hits.setdefault(key, deque())
            _expire(hits, cutoff)
            if len(hits) >= limit:
                retry_after = max(1, math.ceil(hits[0] + window_seconds - now))
                return RateDecision(allowed=False, used=len(hits), retry_after=retry_after)
            hits.append(now)
            return RateDecision(allowed=True, used=len(hits))

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def _drop_idle(self, cutoff: float) -> None:
        # Caller holds the lock.
        for key in list(self._hits):
            hits = self._hits[key]
            _expire(hits, cutoff)
            if not hits:
                del self._hits[key]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._next_prune_at = 0.0


rate_limiter = SlidingWindowRateLimiter()
