"""In-process sliding-window rate limiting.

Used to keep a single caller from flooding sellers with contact
requests and to stay under the routing provider's per-minute quota.
State lives in memory, so limits are per process.
"""
from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Hashable


class RateLimiter:
    """Allow at most ``max_requests`` per ``window_seconds`` for each key."""

    def __init__(self, max_requests: int = 10, window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: dict[Hashable, deque] = {}
        self._lock = threading.Lock()

    def _prune(self, key: Hashable, now: float) -> deque:
        hits = self._requests.get(key)
        if hits is None:
            return deque()
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()
        if not hits:
            del self._requests[key]
        return hits

    def is_allowed(self, key: Hashable) -> bool:
        """Record a request for ``key`` and return whether it is allowed."""
        with self._lock:
            now = self._clock()
            hits = self._prune(key, now)
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            self._requests[key] = hits
            return True

    def retry_after(self, key: Hashable) -> int:
        """Seconds until ``key`` may make another request (0 if it may now)."""
        with self._lock:
            now = self._clock()
            hits = self._prune(key, now)
            if len(hits) < self.max_requests:
                return 0
            return max(1, math.ceil(self.window_seconds - (now - hits[0])))

    def reset(self, key: Hashable) -> None:
        with self._lock:
            self._requests.pop(key, None)
