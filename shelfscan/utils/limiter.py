"""
Limiters:
  - ConcurrencyLimiter: semaphore wrapper bounding how many calls run at once
    (parallel catalog lookups inside one ingestion batch).
  - SlidingWindowRateLimiter: per-key request budget over a rolling window
    (per-IP API and upload throttles).
"""

from __future__ import annotations

import threading
import time
from collections import deque
from contextlib import contextmanager
from typing import Callable, Deque, Dict

from shelfscan.errors import RateLimited


class ConcurrencyLimiter:
    """Bounded concurrency on top of threading.Semaphore."""

    def __init__(self, max_parallel: int = 1):
        self.max_parallel = max(1, max_parallel)
        self._sem = threading.Semaphore(self.max_parallel)

    @contextmanager
    def acquire(self):
        self._sem.acquire()
        try:
            yield
        finally:
            self._sem.release()

    def run(self, fn, *args, **kwargs):
        """Run fn(*args, **kwargs) inside the limit."""
        with self.acquire():
            return fn(*args, **kwargs)


class SlidingWindowRateLimiter:
    """At most ``limit`` hits per key within any ``window_seconds`` span."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        message: str = "Too many requests, please try again later",
        clock: Callable[[], float] = time.monotonic,
        max_keys: int = 10_000,
    ):
        self.limit = limit
        self.max_keys = max_keys
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str, now: float) -> Deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def check(self, key: str) -> int:
        """Record one hit for *key*; raise RateLimited if the budget is spent. Returns hits left."""
        now = self._clock()
        with self._lock:
            hits = self._prune(key, now)
            if len(hits) >= self.limit:
                retry_after = int(hits[0] + self.window_seconds - now) + 1
                raise RateLimited(self.message, detail={"message": self.message, "retry_after": retry_after})
            hits.append(now)
            remaining = self.limit - len(hits)
            if len(self._hits) > self.max_keys:
                self._clear_idle(now)
        return remaining

    def _clear_idle(self, now: float) -> int:
        """Drop keys with no hit inside the window. Caller holds the lock."""
        idle = [k for k in list(self._hits) if not self._prune(k, now)]
        for k in idle:
            del self._hits[k]
        return len(idle)

    def clear_idle(self) -> int:
        with self._lock:
            return self._clear_idle(self._clock())

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
