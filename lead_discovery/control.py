"""Run-wide coordination shared by every worker of a discovery run."""
from __future__ import annotations

import logging
import threading
from typing import Optional

LOGGER = logging.getLogger(__name__)

CANCELLED = "cancelled"


class RunControl:
    """Stop signal and lead counter injected into each worker at spawn time.

    The stop signal is write-once: the first reason given to :meth:`stop` is
    kept and the flag is never cleared for the lifetime of the handle.
    """

    def __init__(self, target: Optional[int] = None) -> None:
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._stop_reason: Optional[str] = None
        self._added = 0
        self.target = target

    # ------------------------------------------------------------------
    # Stop signal
    def stop(self, reason: str) -> None:
        with self._lock:
            if self._stop_event.is_set():
                return
            self._stop_reason = reason
            self._stop_event.set()
        LOGGER.error("Run stopped: %s", reason)

    def cancel(self) -> None:
        """Cooperatively cancel the run on behalf of the caller."""

        self.stop(CANCELLED)

    def should_stop(self) -> bool:
        return self._stop_event.is_set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def stop_reason(self) -> Optional[str]:
        return self._stop_reason

    @property
    def cancelled(self) -> bool:
        return self._stop_reason == CANCELLED

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return ``True`` early if the run was stopped."""

        if seconds <= 0:
            return self._stop_event.is_set()
        return self._stop_event.wait(seconds)

    # ------------------------------------------------------------------
    # Target tracking
    def record_added(self) -> int:
        with self._lock:
            self._added += 1
            return self._added

    @property
    def total_added(self) -> int:
        with self._lock:
            return self._added

    def target_reached(self) -> bool:
        return self.target is not None and self.total_added >= self.target

    def should_halt(self) -> bool:
        """True when a worker must not start another unit of work."""

        return self.should_stop() or self.target_reached()


__all__ = ["CANCELLED", "RunControl"]
