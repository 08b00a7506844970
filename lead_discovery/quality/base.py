"""Shared contract for website quality analyzers."""
from __future__ import annotations

import math
from typing import Protocol

from ..models import QualityResult

# Score given to sites that exist but cannot be analysed at all.
UNANALYSABLE_SCORE = 25


class QualityAnalyzer(Protocol):
    """Return a 0-100 quality score for a website URL."""

    name: str

    def analyze(self, url: str) -> QualityResult:  # pragma: no cover - runtime protocol
        """Analyse ``url`` and report its score and issues."""


def normalize_url(url: str) -> str:
    """Ensure ``url`` carries a scheme, defaulting to ``https://``."""

    url = (url or "").strip()
    if url.startswith(("http://", "https://")):
        return url
    return "https://" + url.lstrip("/")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


__all__ = ["QualityAnalyzer", "UNANALYSABLE_SCORE", "clamp_score", "normalize_url", "round_half_up"]
