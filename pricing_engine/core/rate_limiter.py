"""In-memory sliding-window rate limiting for abuse-prone endpoints."""

import math
import time
from collections import defaultdict, deque
from threading import Lock


class RateLimiter:
    """Sliding-window limiter keyed by an arbitrary string (usually a tenant id).

    Each key keeps the monotonic timestamps of its accepted calls inside the
    current window; a call is rejected once ``max_requests`` are in flight.
    """

    def __init__(self, max_requests: int, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def _prune(self, key: str, now: float) -> deque[float]:
        hits = self._hits[key]
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def is_allowed(self, key: str) -> bool:
        """Record a call for ``key`` and return whether it is within the limit."""
        now = time.monotonic()
        with self._lock:
            hits = self._prune(key, now)
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    def retry_after(self, key: str) -> int:
        """Seconds until ``key`` may call again (0 when it already may)."""
        now = time.monotonic()
        with self._lock:
            hits = self._prune(key, now)
            if len(hits) < self.max_requests:
                return 0
            return max(1, math.ceil(hits[0] + self.window_seconds - now))

    def reset(self) -> None:
        """Forget every tracked key."""
        with self._lock:
            self._hits.clear()
