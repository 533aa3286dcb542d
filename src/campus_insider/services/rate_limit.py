"""Per-caller request limiting for read-heavy endpoints."""

import time
from collections import defaultdict, deque


class InMemoryRateLimiter:
    """Sliding-window limiter keyed by caller (a user id for the feed).

    State lives in process memory, so each worker enforces its own window.
    """

    def __init__(self, max_requests: int, window_seconds: int) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def is_allowed(self, key: str) -> bool:
        """Record a hit for key and return False once the window is full."""
        now = time.monotonic()
        hits = self._hits[key]
        while hits and hits[0] <= now - self.window_seconds:
            hits.popleft()

        if len(hits) >= self.max_requests:
            return False

        hits.append(now)
        return True

    def remaining(self, key: str) -> int:
        """Requests key may still make in the current window."""
        now = time.monotonic()
        recent = sum(1 for t in self._hits.get(key, ()) if t > now - self.window_seconds)
        return max(0, self.max_requests - recent)

    def clear(self) -> None:
        self._hits.clear()
