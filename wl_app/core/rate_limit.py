# wl_app/core/rate_limit.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Hashable, Protocol


@dataclass
class RateLimitHit:
    count: int
    reset_at_ms: int

    def retry_after(self, now_ms: int) -> int:
        """Whole seconds until the window resets, at least 1."""
        return max(1, -(-(self.reset_at_ms - now_ms) // 1000))


class RateLimitStore(Protocol):
    """Keyed fixed-window counter; swap for a shared store when running several instances."""

    def hit(self, key: Hashable, window_ms: int) -> RateLimitHit: ...


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _Window:
    count: int
    reset_time: int


class InMemoryRateLimitStore:
    """Process-local counters. Read-then-write per hit; races are tolerated."""

    def __init__(self, clock=now_ms, prune_above: int = 10_000):
        self._clock = clock
        self._prune_above = prune_above
        self._windows: Dict[Hashable, _Window] = {}

    def hit(self, key: Hashable, window_ms: int) -> RateLimitHit:
        now = self._clock()
        if len(self._windows) > self._prune_above:
            self.prune()
        w = self._windows.get(key)
        if w is None or now >= w.reset_time:
            w = _Window(count=0, reset_time=now + window_ms)
            self._windows[key] = w
        w.count += 1
        return RateLimitHit(count=w.count, reset_at_ms=w.reset_time)

    def prune(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        stale = [k for k, w in self._windows.items() if now >= w.reset_time]
        for k in stale:
            del self._windows[k]
        return len(stale)

    def reset(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
