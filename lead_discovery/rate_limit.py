"""Utilities for spacing out calls to rate-limited external services."""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

# Returns True when the wait was interrupted and the caller should give up.
WaitFunction = Callable[[float], bool]


def _plain_sleep(seconds: float) -> bool:
    time.sleep(seconds)
    return False


class RateLimiter:
    """Enforce a minimum interval between calls shared by every worker thread."""

    def __init__(
        self,
        min_interval: Optional[float],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval = float(min_interval) if min_interval else 0.0
        self._clock = clock
        self._lock = threading.Lock()
        self._next_available = 0.0

    @classmethod
    def per_minute(cls, calls_per_minute: Optional[float]) -> "RateLimiter":
        return cls(60.0 / float(calls_per_minute) if calls_per_minute else None)

    @property
    def interval(self) -> float:
        return self._interval

    def acquire(self, wait: Optional[WaitFunction] = None) -> bool:
        """Block until a slot is free. Returns ``False`` if ``wait`` was interrupted."""

        if self._interval <= 0:
            return True
        wait = wait or _plain_sleep
        with self._lock:
            now = self._clock()
            delay = max(0.0, self._next_available - now)
            self._next_available = max(now, self._next_available) + self._interval
        if delay > 0 and wait(delay):
            return False
        return True


__all__ = ["RateLimiter", "WaitFunction"]
