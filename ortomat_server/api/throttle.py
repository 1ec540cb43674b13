"""
Per-caller rate limiting for the admin endpoints.

Each (action, caller) pair gets a sliding window holding the timestamps of
its accepted requests. A request is rejected once the window already holds
`limit` entries; the caller is told how long until the oldest expires.

State is in-process only, which is enough for the single-instance admin
service.
"""

from __future__ import annotations

import math
import time
from collections import deque
from collections.abc import Callable

from ..errors import RateLimitedError


class RateLimiter:
    """Sliding-window limiter keyed by action and caller."""

    def __init__(
        self,
        window_seconds: int = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[tuple[str, str], deque[float]] = {}

    def check(self, action: str, caller: str, limit: int) -> None:
        """Record a request, or raise if the caller is over the limit.

        Raises:
            RateLimitedError: If `limit` requests already fall in the window
        """
        if limit <= 0:
            return

        now = self._clock()
        hits = self._hits.setdefault((action, caller), deque())
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

        if len(hits) >= limit:
            retry_after = math.ceil(self.window_seconds - (now - hits[0]))
            raise RateLimitedError(action, max(retry_after, 1))

        hits.append(now)

    def reset(self) -> None:
        self._hits.clear()
