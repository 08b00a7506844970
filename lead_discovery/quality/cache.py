"""In-memory cache in front of a quality analyzer."""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Tuple

from ..models import QualityResult
from .base import QualityAnalyzer, normalize_url

LOGGER = logging.getLogger(__name__)


def cache_key(url: str) -> str:
    return normalize_url(url).lower().rstrip("/")


class CachingAnalyzer:
    """Reuse successful results for the same site across workers for ``ttl`` seconds.

    Failed results are never cached so a later call can retry the service.
    """

    def __init__(
        self,
        analyzer: QualityAnalyzer,
        *,
        ttl: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._analyzer = analyzer
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, QualityResult]] = {}

    @property
    def name(self) -> str:
        return getattr(self._analyzer, "name", self._analyzer.__class__.__name__)

    def analyze(self, url: str) -> QualityResult:
        key = cache_key(url)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry and now - entry[0] < self._ttl:
                LOGGER.info("Quality cache hit for %s", key)
                return entry[1]

        result = self._analyzer.analyze(url)
        if not result.failed:
            with self._lock:
                self._entries[key] = (self._clock(), result)
        return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["CachingAnalyzer", "cache_key"]
