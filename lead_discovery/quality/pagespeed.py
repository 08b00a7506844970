"""Website quality scoring through the Google PageSpeed Insights API.

The API is rate limited and occasionally flaky, so every call goes through a
bounded retry loop with exponential backoff. When every attempt fails the run
is stopped through :class:`~lead_discovery.control.RunControl`: prospect
judgements made without the quality signal cannot be trusted.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from ..control import RunControl
from ..models import QualityResult
from ..rate_limit import RateLimiter, WaitFunction
from .base import UNANALYSABLE_SCORE, clamp_score, normalize_url, round_half_up

LOGGER = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
CATEGORIES: Tuple[str, ...] = ("performance", "accessibility", "best-practices", "seo")

# Lighthouse audit id -> issue reported when the audit scores 0.
AUDIT_ISSUES: Tuple[Tuple[str, str], ...] = (
    ("is-on-https", "No HTTPS"),
    ("viewport", "No viewport meta tag"),
    ("document-title", "Missing page title"),
    ("meta-description", "Missing meta description"),
    ("image-alt", "Images missing alt text"),
    ("color-contrast", "Poor color contrast"),
    ("tap-targets", "Tap targets too small"),
    ("font-size", "Font too small for mobile"),
)


class QualityServiceError(RuntimeError):
    """A single failed attempt against the quality-scoring service."""


def backoff_delay(attempt: int, initial_backoff: float) -> float:
    """Seconds to wait before ``attempt`` (1-based); the first attempt has none."""

    if attempt < 2:
        return 0.0
    return initial_backoff * (2 ** (attempt - 2))


class PageSpeedAnalyzer:
    """Score websites with PageSpeed, retrying on rate limits and server errors."""

    name = "pagespeed"

    def __init__(
        self,
        *,
        control: Optional[RunControl] = None,
        api_key: Optional[str] = None,
        endpoint: str = DEFAULT_ENDPOINT,
        max_attempts: int = 5,
        initial_backoff: float = 60.0,
        request_timeout: float = 60.0,
        weights: Sequence[float] = (0.25, 0.25, 0.25, 0.25),
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
        wait: Optional[WaitFunction] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if len(weights) != len(CATEGORIES):
            raise ValueError(f"Expected {len(CATEGORIES)} category weights, got {len(weights)}")
        self.control = control or RunControl()
        self.api_key = api_key
        self.endpoint = endpoint
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.request_timeout = request_timeout
        self.weights = tuple(float(weight) for weight in weights)
        self._rate_limiter = rate_limiter or RateLimiter(None)
        self._session = session or requests.Session()
        self._wait = wait or self.control.wait
        self._clock = clock

    def analyze(self, url: str) -> QualityResult:
        target = normalize_url(url)
        last_error = "no attempt made"

        for attempt in range(1, self.max_attempts + 1):
            if self.control.should_stop():
                return self._aborted(target)

            if attempt == 1:
                if not self._rate_limiter.acquire(self._wait):
                    return self._aborted(target)
            else:
                delay = backoff_delay(attempt, self.initial_backoff)
                LOGGER.warning("Waiting %.0fs before PageSpeed retry for %s", delay, target)
                if self._wait(delay):
                    return self._aborted(target)

            LOGGER.info("PageSpeed call (attempt %s/%s): %s", attempt, self.max_attempts, target)
            try:
                result = self._request(target)
            except QualityServiceError as exc:
                last_error = str(exc)
                LOGGER.warning("PageSpeed attempt %s failed for %s: %s", attempt, target, last_error)
                continue

            LOGGER.info(
                "PageSpeed: overall=%s perf=%s a11y=%s bp=%s seo=%s (%s)",
                result.score,
                result.performance,
                result.accessibility,
                result.best_practices,
                result.seo,
                target,
            )
            return result

        message = f"API failed after {self.max_attempts} attempts: {last_error}"
        LOGGER.error("Fatal PageSpeed failure for %s: %s", target, message)
        self.control.stop(f"Quality service unavailable ({message})")
        return QualityResult(score=50, error=message, source=self.name)

    # ------------------------------------------------------------------
    def _request(self, target: str) -> QualityResult:
        params: List[Tuple[str, str]] = [("url", target), ("strategy", "mobile")]
        params.extend(("category", category) for category in CATEGORIES)
        if self.api_key:
            params.append(("key", self.api_key))

        # requests' timeout bounds each socket read; the deadline bounds the whole attempt.
        deadline = self._clock() + self.request_timeout
        try:
            response = self._session.get(self.endpoint, params=params, timeout=self.request_timeout, stream=True)
            try:
                return self._handle(target, response, deadline)
            finally:
                response.close()
        except requests.Timeout as exc:
            raise QualityServiceError("Request timeout") from exc
        except requests.RequestException as exc:
            raise QualityServiceError(str(exc) or exc.__class__.__name__) from exc

    def _read_body(self, response: requests.Response, deadline: float) -> bytes:
        chunks: List[bytes] = []
        for chunk in response.iter_content(chunk_size=64 * 1024):
            if self._clock() > deadline:
                raise QualityServiceError("Request timeout")
            chunks.append(chunk)
        return b"".join(chunks)

    def _handle(self, target: str, response: requests.Response, deadline: float) -> QualityResult:
        if response.status_code == 429:
            raise QualityServiceError("Rate limited (429)")
        if response.status_code == 400:
            # PageSpeed could not load the site at all; that is a weak web presence.
            LOGGER.warning("PageSpeed returned 400 for %s - assuming poor quality website", target)
            return QualityResult(
                score=UNANALYSABLE_SCORE,
                issues=["Website could not be analyzed (may be broken or inaccessible)"],
                source=self.name,
            )
        if not 200 <= response.status_code < 300:
            raise QualityServiceError(f"API returned {response.status_code}")

        body = self._read_body(response, deadline)
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise QualityServiceError("Malformed response body") from exc
        return self.parse(payload)

    def parse(self, payload: Any) -> QualityResult:
        """Turn a PageSpeed response body into a :class:`QualityResult`."""

        lighthouse = payload.get("lighthouseResult") if isinstance(payload, Mapping) else None
        categories = lighthouse.get("categories") if isinstance(lighthouse, Mapping) else None
        if not isinstance(categories, Mapping):
            raise QualityServiceError("Malformed response body: missing lighthouse categories")

        scores = [self._category_score(categories, category) for category in CATEGORIES]
        overall = sum(weight * score for weight, score in zip(self.weights, scores)) / sum(self.weights)
        performance, accessibility, best_practices, seo = scores

        issues = self._issues(lighthouse.get("audits"))
        if performance < 50:
            issues.append("Poor performance")
        if seo < 50:
            issues.append("Poor SEO")

        return QualityResult(
            score=clamp_score(overall),
            issues=issues,
            performance=performance,
            accessibility=accessibility,
            best_practices=best_practices,
            seo=seo,
            source=self.name,
        )

    @staticmethod
    def _category_score(categories: Mapping[str, Any], category: str) -> int:
        entry = categories.get(category)
        raw = entry.get("score") if isinstance(entry, Mapping) else None
        try:
            return round_half_up(float(raw or 0) * 100)
        except (TypeError, ValueError) as exc:
            raise QualityServiceError(f"Malformed score for category '{category}'") from exc

    @staticmethod
    def _issues(audits: Optional[Dict[str, Any]]) -> List[str]:
        if not isinstance(audits, Mapping):
            return []
        issues: List[str] = []
        for audit_id, issue in AUDIT_ISSUES:
            audit = audits.get(audit_id)
            if isinstance(audit, Mapping) and audit.get("score") == 0:
                issues.append(issue)
        return issues

    def _aborted(self, target: str) -> QualityResult:
        LOGGER.info("Skipping PageSpeed analysis of %s: run is stopping", target)
        return QualityResult(score=50, error="Run stopped before analysis completed", source=self.name)


__all__ = [
    "AUDIT_ISSUES",
    "CATEGORIES",
    "DEFAULT_ENDPOINT",
    "PageSpeedAnalyzer",
    "QualityServiceError",
    "backoff_delay",
]
