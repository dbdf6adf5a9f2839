"""Sliding-window request limiter.

Instances are created by the application and stored on ``app.state``; the
routes reach them through a dependency, so nothing here is module-global.
"""

import logging
import time
from collections import deque
from threading import Lock

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, name: str, limit: int, window_seconds: int, trusted_keys=(), clock=time.monotonic):
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self._trusted_keys = set(trusted_keys)
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = Lock()

    def hit(self, key: str) -> bool:
        """Record a request for ``key``; return False once the limit is spent."""
        if key in self._trusted_keys:
            return True

        now = self._clock()
        cutoff = now - self.window_seconds

        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if len(hits) >= self.limit:
                logger.warning('Rate limit %s exceeded for %s (%s/%ss).', self.name, key, self.limit, self.window_seconds)
                return False

            hits.append(now)
            self._prune(cutoff)
            return True

    def _prune(self, cutoff: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
