"""Website quality analyzers behind a single ``analyze(url)`` contract."""
from __future__ import annotations

from typing import Optional

from ..config import PipelineSettings
from ..control import RunControl
from ..rate_limit import RateLimiter
from .base import QualityAnalyzer, normalize_url
from .cache import CachingAnalyzer
from .heuristic import LocalHeuristicAnalyzer
from .pagespeed import PageSpeedAnalyzer, QualityServiceError, backoff_delay


def build_analyzer(settings: PipelineSettings, control: Optional[RunControl] = None) -> QualityAnalyzer:
    """Instantiate the analyzer named by ``settings.quality_strategy``, behind a cache."""

    analyzer: QualityAnalyzer
    if settings.quality_strategy == "heuristic":
        analyzer = LocalHeuristicAnalyzer(user_agent=settings.user_agent)
    else:
        analyzer = PageSpeedAnalyzer(
            control=control,
            api_key=settings.pagespeed_api_key,
            endpoint=settings.pagespeed_endpoint,
            max_attempts=settings.max_attempts,
            initial_backoff=settings.initial_backoff,
            request_timeout=settings.request_timeout,
            weights=settings.quality_weights,
            rate_limiter=RateLimiter(settings.api_call_delay),
        )
    if settings.cache_ttl and settings.cache_ttl > 0:
        return CachingAnalyzer(analyzer, ttl=settings.cache_ttl)
    return analyzer


__all__ = [
    "CachingAnalyzer",
    "LocalHeuristicAnalyzer",
    "PageSpeedAnalyzer",
    "QualityAnalyzer",
    "QualityServiceError",
    "backoff_delay",
    "build_analyzer",
    "normalize_url",
]
