from __future__ import annotations

from typing import List

import pytest

from lead_discovery.classifier import (
    ProspectClassifier,
    build_rules,
    is_social_or_directory,
    match_rule,
    passes_rating_floor,
)
from lead_discovery.control import RunControl
from lead_discovery.models import ProspectReason, QualityResult


class FixedAnalyzer:
    name = "fixed"

    def __init__(self, score: int, error: str | None = None) -> None:
        self.score = score
        self.error = error
        self.urls: List[str] = []

    def analyze(self, url: str) -> QualityResult:
        self.urls.append(url)
        return QualityResult(score=self.score, error=self.error)


class StoppingAnalyzer:
    """Simulates a fatal service failure during the call."""

    name = "stopping"

    def __init__(self, control: RunControl) -> None:
        self.control = control

    def analyze(self, url: str) -> QualityResult:
        self.control.stop("API failed after 5 attempts")
        return QualityResult(score=50, error="API failed after 5 attempts")


@pytest.mark.parametrize("website", [None, "", "   "])
def test_missing_website_is_always_a_good_prospect(website) -> None:
    analyzer = FixedAnalyzer(99)
    classifier = ProspectClassifier(analyzer)

    decision = classifier.classify(website)

    assert decision.is_good
    assert decision.reason is ProspectReason.NO_WEBSITE
    assert analyzer.urls == []


@pytest.mark.parametrize(
    ("website", "reason"),
    [
        ("https://www.facebook.com/acmeplumbing", ProspectReason.SOCIAL_OR_DIRECTORY),
        ("https://www.yellowpages.co.za/acme", ProspectReason.SOCIAL_OR_DIRECTORY),
        ("https://acme.wixsite.com/home", ProspectReason.DIY_PLATFORM),
        ("https://sites.google.com/view/acme", ProspectReason.DIY_PLATFORM),
        ("https://acme.business.site", ProspectReason.DIY_PLATFORM),
    ],
)
def test_rule_matches_skip_the_analyzer(website: str, reason: ProspectReason) -> None:
    analyzer = FixedAnalyzer(99)
    classifier = ProspectClassifier(analyzer)

    decision = classifier.classify(website)

    assert decision.is_good
    assert decision.reason is reason
    assert analyzer.urls == []


def test_self_hosted_wordpress_goes_through_the_analyzer() -> None:
    analyzer = FixedAnalyzer(80)
    classifier = ProspectClassifier(analyzer)

    decision = classifier.classify("https://acme.co.za/wordpress.org-theme")

    assert decision.reason is ProspectReason.HAS_QUALITY_WEBSITE
    assert analyzer.urls == ["https://acme.co.za/wordpress.org-theme"]


@pytest.mark.parametrize(
    ("score", "is_good", "reason"),
    [
        (59, True, ProspectReason.POOR_QUALITY),
        (60, False, ProspectReason.HAS_QUALITY_WEBSITE),
        (0, True, ProspectReason.POOR_QUALITY),
        (100, False, ProspectReason.HAS_QUALITY_WEBSITE),
    ],
)
def test_threshold_boundary(score: int, is_good: bool, reason: ProspectReason) -> None:
    classifier = ProspectClassifier(FixedAnalyzer(score))

    decision = classifier.classify("https://acme.co.za")

    assert decision.is_good is is_good
    assert decision.reason is reason
    assert decision.quality_score == score
    assert decision.quality is not None


def test_threshold_is_configurable() -> None:
    classifier = ProspectClassifier(FixedAnalyzer(70), threshold=75)

    assert classifier.classify("https://acme.co.za").is_good


def test_stop_signal_set_by_the_analyzer_yields_stopped() -> None:
    control = RunControl()
    classifier = ProspectClassifier(StoppingAnalyzer(control), control=control)

    decision = classifier.classify("https://acme.co.za")

    assert not decision.is_good
    assert decision.stopped


def test_stopped_run_classifies_nothing() -> None:
    control = RunControl()
    control.stop("fatal")
    analyzer = FixedAnalyzer(10)
    classifier = ProspectClassifier(analyzer, control=control)

    assert classifier.classify(None).stopped
    assert analyzer.urls == []


def test_configured_patterns_extend_the_rules() -> None:
    rules = build_rules(social_patterns=["TripAdvisor"], diy_patterns=["wix.com"])
    classifier = ProspectClassifier(FixedAnalyzer(99), rules=rules)

    assert classifier.classify("https://www.tripadvisor.co.za/acme").reason is ProspectReason.SOCIAL_OR_DIRECTORY
    assert len(rules[1].patterns) == len(set(rules[1].patterns))


def test_rules_are_first_match_wins() -> None:
    # Matches both a social and a DIY pattern; the social rule is listed first.
    rule = match_rule("https://facebook.com/acme.wixsite.com")

    assert rule is not None
    assert rule.reason is ProspectReason.SOCIAL_OR_DIRECTORY


def test_is_social_or_directory() -> None:
    assert is_social_or_directory("https://instagram.com/acme")
    assert not is_social_or_directory("https://acme.wixsite.com")
    assert not is_social_or_directory(None)


@pytest.mark.parametrize(
    ("rating", "expected"),
    [(None, False), (2.9, False), (3.0, True), (4.8, True)],
)
def test_rating_floor(rating, expected: bool) -> None:
    assert passes_rating_floor(rating, 3.0) is expected
