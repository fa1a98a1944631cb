"""In-process sliding-window throttle for registration and login attempts."""
from __future__ import annotations

import math
from collections import deque
from datetime import datetime, timedelta
from threading import Lock

from sessionauth.application.identity.errors import RateLimitedError
from sessionauth.domain.clock import Clock, SystemClock


class SlidingWindowRateLimiter:
    """Allow at most ``limit`` hits per key within ``window``.

    State is per process; a multi-replica deployment gets a per-replica limit.
    Keys whose hits have all left the window are dropped, at the latest one
    window after they went quiet.
    """

    def __init__(self, *, limit: int, window: timedelta, clock: Clock | None = None) -> None:
        self._limit = max(1, int(limit))
        self._window = window
        self._clock = clock or SystemClock()
        self._hits: dict[str, deque[datetime]] = {}
        self._last_sweep: datetime | None = None
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._hits)

    def hit(self, key: str) -> None:
        """Record an attempt, raising RateLimitedError when the key is over its limit."""
        now = self._clock.now()
        cutoff = now - self._window
        with self._lock:
            self._maybe_sweep(now, cutoff)
            hits = self._hits.setdefault(key, deque())
            _drop_before(hits, cutoff)
            if len(hits) >= self._limit:
                retry_after = (hits[0] + self._window - now).total_seconds()
                raise RateLimitedError(retry_after=max(1, math.ceil(retry_after)))
            hits.append(now)

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)

    def _maybe_sweep(self, now: datetime, cutoff: datetime) -> None:
        if self._last_sweep is not None and now - self._last_sweep < self._window:
            return
        self._last_sweep = now
        for key in list(self._hits):
            hits = self._hits[key]
            _drop_before(hits, cutoff)
            if not hits:
                del self._hits[key]


def _drop_before(hits: deque[datetime], cutoff: datetime) -> None:
    while hits and hits[0] <= cutoff:
        hits.popleft()
