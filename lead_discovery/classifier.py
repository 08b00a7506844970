"""Decide whether a business is a good prospect from its web presence."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .control import RunControl
from .models import ProspectDecision, ProspectReason
from .quality.base import QualityAnalyzer

LOGGER = logging.getLogger(__name__)

DEFAULT_QUALITY_THRESHOLD = 60
DEFAULT_MIN_RATING = 3.0

SOCIAL_PATTERNS: Tuple[str, ...] = (
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "linkedin.com",
    "tiktok.com",
    "youtube.com",
    "pinterest.com",
    "yellowpages",
    "gumtree",
    "locanto",
    "hotfrog",
    "cylex",
    "brabys",
    "findit",
    "snupit",
    "yell.com",
    "yelp.com",
)

# wordpress.com only: self-hosted wordpress.org sites go through the analyzer.
DIY_PATTERNS: Tuple[str, ...] = (
    "wix.com",
    "wixsite.com",
    "weebly.com",
    "wordpress.com",
    "squarespace.com",
    "webnode.com",
    "jimdo.com",
    "site123.com",
    "webs.com",
    "yola.com",
    "strikingly.com",
    "carrd.co",
    "webflow.io",
    "netlify.app",
    "vercel.app",
    "herokuapp.com",
    "blogspot.com",
    "blogger.com",
    "tumblr.com",
    "sites.google.com",
    "google.com/site",
    "co.za.com",
    "mweb.co.za/sites",
    "godaddysites.com",
    "my.canva.site",
    "business.site",
)


@dataclass(frozen=True)
class WebsiteRule:
    """Classify a website as a good prospect when any pattern occurs in its URL."""

    reason: ProspectReason
    patterns: Tuple[str, ...]

    def matches(self, website: str) -> bool:
        lowered = website.lower()
        return any(pattern in lowered for pattern in self.patterns)

    def extended(self, patterns: Iterable[str]) -> "WebsiteRule":
        extra = tuple(p.strip().lower() for p in patterns if p and p.strip() and p.strip().lower() not in self.patterns)
        return WebsiteRule(self.reason, self.patterns + extra)


DEFAULT_RULES: Tuple[WebsiteRule, ...] = (
    WebsiteRule(ProspectReason.SOCIAL_OR_DIRECTORY, SOCIAL_PATTERNS),
    WebsiteRule(ProspectReason.DIY_PLATFORM, DIY_PATTERNS),
)


def build_rules(
    social_patterns: Iterable[str] = (),
    diy_patterns: Iterable[str] = (),
) -> Tuple[WebsiteRule, ...]:
    """Return the default rules extended with configured patterns, order preserved."""

    extras = {
        ProspectReason.SOCIAL_OR_DIRECTORY: list(social_patterns),
        ProspectReason.DIY_PLATFORM: list(diy_patterns),
    }
    return tuple(rule.extended(extras.get(rule.reason, [])) for rule in DEFAULT_RULES)


def match_rule(website: str, rules: Sequence[WebsiteRule] = DEFAULT_RULES) -> Optional[WebsiteRule]:
    for rule in rules:
        if rule.matches(website):
            return rule
    return None


def is_social_or_directory(website: Optional[str], rules: Sequence[WebsiteRule] = DEFAULT_RULES) -> bool:
    if not website:
        return False
    rule = match_rule(website, rules)
    return rule is not None and rule.reason is ProspectReason.SOCIAL_OR_DIRECTORY


def passes_rating_floor(rating: Optional[float], min_rating: float = DEFAULT_MIN_RATING) -> bool:
    """Businesses without a rating, or rated below the floor, are excluded."""

    return rating is not None and rating >= min_rating


class ProspectClassifier:
    """First-match-wins prospect rules, falling back to the quality analyzer."""

    def __init__(
        self,
        analyzer: QualityAnalyzer,
        *,
        rules: Sequence[WebsiteRule] = DEFAULT_RULES,
        threshold: int = DEFAULT_QUALITY_THRESHOLD,
        control: Optional[RunControl] = None,
    ) -> None:
        self.analyzer = analyzer
        self.rules: List[WebsiteRule] = list(rules)
        self.threshold = threshold
        self.control = control

    def _stopped(self) -> bool:
        return self.control is not None and self.control.should_stop()

    def classify(self, website: Optional[str]) -> ProspectDecision:
        if self._stopped():
            return ProspectDecision(False, ProspectReason.STOPPED)

        if not website or not website.strip():
            return ProspectDecision(True, ProspectReason.NO_WEBSITE)

        rule = match_rule(website, self.rules)
        if rule is not None:
            return ProspectDecision(True, rule.reason)

        quality = self.analyzer.analyze(website)
        if self._stopped():
            return ProspectDecision(False, ProspectReason.STOPPED, quality.score, quality)

        if quality.score < self.threshold:
            return ProspectDecision(True, ProspectReason.POOR_QUALITY, quality.score, quality)
        return ProspectDecision(False, ProspectReason.HAS_QUALITY_WEBSITE, quality.score, quality)


__all__ = [
    "DEFAULT_MIN_RATING",
    "DEFAULT_QUALITY_THRESHOLD",
    "DEFAULT_RULES",
    "DIY_PATTERNS",
    "ProspectClassifier",
    "SOCIAL_PATTERNS",
    "WebsiteRule",
    "build_rules",
    "is_social_or_directory",
    "match_rule",
    "passes_rating_floor",
]
