"""Local website quality heuristics that need no external scoring service."""
from __future__ import annotations

import datetime as _dt
import logging
import re
from typing import List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from ..config import DEFAULT_USER_AGENT
from ..models import QualityResult
from .base import UNANALYSABLE_SCORE, clamp_score, normalize_url

LOGGER = logging.getLogger(__name__)

# Points deducted from a perfect 100 for each missing signal.
PENALTIES = {
    "ssl": 15,
    "viewport": 20,
    "title": 10,
    "description": 10,
    "images": 5,
    "contact": 10,
    "layout": 15,
    "http_error": 15,
    "stale_copyright": 5,
}

_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_RE = re.compile(r"(?:\+?\d[\d\s().-]{8,}\d)")
_COPYRIGHT_RE = re.compile(r"(?:©|&copy;|copyright)\s*(?:\d{4}\s*[-–]\s*)?(\d{4})", re.IGNORECASE)
_MODERN_CSS_RE = re.compile(r"display\s*:\s*(?:flex|grid)", re.IGNORECASE)
_LEGACY_TAGS = ("font", "center", "marquee", "frameset", "frame", "blink")
_SEMANTIC_TAGS = ("header", "nav", "main", "footer", "section", "article")


class LocalHeuristicAnalyzer:
    """Fetch a page directly and score the signals a modern small-business site shows."""

    name = "heuristic"

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 20.0,
        user_agent: str = DEFAULT_USER_AGENT,
        current_year: Optional[int] = None,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent, "Accept": "text/html,application/xhtml+xml"}
        self._current_year = current_year

    def analyze(self, url: str) -> QualityResult:
        target = normalize_url(url)
        try:
            response = self._session.get(target, headers=self._headers, timeout=self._timeout, allow_redirects=True)
        except requests.RequestException as exc:
            LOGGER.warning("Could not load %s for heuristic scoring: %s", target, exc)
            return QualityResult(
                score=UNANALYSABLE_SCORE,
                issues=["Website could not be loaded"],
                error=str(exc) or exc.__class__.__name__,
                source=self.name,
            )
        return self.score_html(response.text, final_url=response.url or target, status_code=response.status_code)

    def score_html(self, html: str, *, final_url: str, status_code: int = 200) -> QualityResult:
        """Score already-loaded ``html`` served from ``final_url``."""

        soup = BeautifulSoup(html or "", "html.parser")
        issues: List[str] = []
        score = 100

        def deduct(key: str, issue: str) -> None:
            nonlocal score
            score -= PENALTIES[key]
            issues.append(issue)

        if status_code >= 400:
            deduct("http_error", f"Website returned HTTP {status_code}")
        if not final_url.lower().startswith("https://"):
            deduct("ssl", "No HTTPS")
        if not _has_viewport(soup):
            deduct("viewport", "No viewport meta tag")
        if not _has_reasonable_title(soup):
            deduct("title", "Missing or poor page title")
        if not _has_description(soup):
            deduct("description", "Missing meta description")
        if not soup.find("img"):
            deduct("images", "No images")
        if not _has_contact_info(soup):
            deduct("contact", "No visible contact information")

        legacy, modern = _layout_signals(soup, html or "")
        if legacy or not modern:
            deduct("layout", "Outdated page layout")

        year = _copyright_year(html or "")
        current_year = self._current_year or _dt.date.today().year
        if year is not None and year < current_year - 3:
            deduct("stale_copyright", f"Copyright notice last updated {year}")

        return QualityResult(score=clamp_score(score), issues=issues, source=self.name)


def _has_viewport(soup: BeautifulSoup) -> bool:
    tag = soup.find("meta", attrs={"name": re.compile(r"^viewport$", re.IGNORECASE)})
    return bool(tag and "width" in (tag.get("content") or "").lower())


def _has_reasonable_title(soup: BeautifulSoup) -> bool:
    title = soup.title.get_text(strip=True) if soup.title else ""
    return 10 <= len(title) <= 70


def _has_description(soup: BeautifulSoup) -> bool:
    tag = soup.find("meta", attrs={"name": re.compile(r"^description$", re.IGNORECASE)})
    return bool(tag and (tag.get("content") or "").strip())


def _has_contact_info(soup: BeautifulSoup) -> bool:
    if soup.select_one("a[href^='tel:'], a[href^='mailto:']"):
        return True
    text = soup.get_text(" ", strip=True)
    return bool(_EMAIL_RE.search(text) or _PHONE_RE.search(text))


def _layout_signals(soup: BeautifulSoup, html: str) -> Tuple[bool, bool]:
    legacy = any(soup.find(tag) for tag in _LEGACY_TAGS)
    if not legacy:
        # Tables wrapping the whole body are the classic pre-CSS layout.
        body = soup.body
        first = body.find(True, recursive=False) if body else None
        legacy = bool(first is not None and first.name == "table" and first.find("table"))
    modern = any(soup.find(tag) for tag in _SEMANTIC_TAGS) or bool(_MODERN_CSS_RE.search(html))
    return legacy, modern


def _copyright_year(html: str) -> Optional[int]:
    years = [int(match) for match in _COPYRIGHT_RE.findall(html)]
    return max(years) if years else None


__all__ = ["LocalHeuristicAnalyzer", "PENALTIES"]
