from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional

import pytest
import requests

from lead_discovery.control import RunControl
from lead_discovery.quality.pagespeed import PageSpeedAnalyzer, QualityServiceError, backoff_delay
from lead_discovery.rate_limit import RateLimiter


def make_payload(performance=0.9, accessibility=0.8, best_practices=0.7, seo=0.6, audits=None) -> dict:
    return {
        "lighthouseResult": {
            "categories": {
                "performance": {"score": performance},
                "accessibility": {"score": accessibility},
                "best-practices": {"score": best_practices},
                "seo": {"score": seo},
            },
            "audits": audits or {},
        }
    }


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, chunks: Optional[Iterable[bytes]] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self._chunks = chunks
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        if self._chunks is not None:
            yield from self._chunks
        elif self._payload is not None:
            yield json.dumps(self._payload).encode("utf-8")

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Replays canned responses (or raises canned exceptions) in order."""

    def __init__(self, *outcomes: Any) -> None:
        self._outcomes = list(outcomes)
        self.calls: List[dict] = []

    def get(self, url: str, params=None, timeout=None, stream=False):
        self.calls.append({"url": url, "params": params, "timeout": timeout, "stream": stream})
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingWait:
    def __init__(self, interrupt_on: Optional[int] = None, control: Optional[RunControl] = None) -> None:
        self.waits: List[float] = []
        self._interrupt_on = interrupt_on
        self._control = control

    def __call__(self, seconds: float) -> bool:
        self.waits.append(seconds)
        if self._interrupt_on is not None and len(self.waits) >= self._interrupt_on:
            if self._control is not None:
                self._control.stop("stopped by another worker")
            return True
        return False


def build(session: FakeSession, control: Optional[RunControl] = None, wait=None, **kwargs) -> PageSpeedAnalyzer:
    return PageSpeedAnalyzer(
        control=control or RunControl(),
        session=session,  # type: ignore[arg-type]
        wait=wait or RecordingWait(),
        **kwargs,
    )


def test_backoff_delay_doubles_from_the_second_attempt() -> None:
    assert [backoff_delay(attempt, 60) for attempt in range(1, 6)] == [0, 60, 120, 240, 480]


def test_successful_response_is_scored() -> None:
    session = FakeSession(FakeResponse(200, make_payload()))
    analyzer = build(session, api_key="k")

    result = analyzer.analyze("example.co.za")

    assert not result.failed
    assert (result.performance, result.accessibility, result.best_practices, result.seo) == (90, 80, 70, 60)
    assert result.score == 75
    params = session.calls[0]["params"]
    assert ("url", "https://example.co.za") in params
    assert ("strategy", "mobile") in params
    assert ("key", "k") in params
    assert [value for key, value in params if key == "category"] == [
        "performance",
        "accessibility",
        "best-practices",
        "seo",
    ]
    assert session.calls[0]["timeout"] == 60


def test_weights_change_the_overall_score() -> None:
    session = FakeSession(FakeResponse(200, make_payload(1.0, 0.0, 0.0, 0.0)))
    analyzer = build(session, weights=(1, 0, 0, 0))

    assert analyzer.analyze("https://example.com").score == 100


def test_transient_failures_are_retried_with_backoff() -> None:
    wait = RecordingWait()
    session = FakeSession(
        FakeResponse(429),
        requests.Timeout("slow"),
        FakeResponse(503),
        FakeResponse(200, make_payload()),
    )
    control = RunControl()
    analyzer = build(session, control=control, wait=wait, initial_backoff=10)

    result = analyzer.analyze("https://example.com")

    assert not result.failed
    assert len(session.calls) == 4
    assert wait.waits == [10, 20, 40]
    assert not control.stopped


def test_exhausted_retries_stop_the_run() -> None:
    wait = RecordingWait()
    session = FakeSession(FakeResponse(429))
    control = RunControl()
    analyzer = build(session, control=control, wait=wait, initial_backoff=60)

    result = analyzer.analyze("https://example.com")

    assert result.failed
    assert len(session.calls) == 5
    assert wait.waits == [60, 120, 240, 480]
    assert sum(wait.waits) <= 60 * (2 ** 4 - 1)
    assert control.stopped
    assert "5 attempts" in control.stop_reason


def test_malformed_body_counts_as_failed_attempt() -> None:
    session = FakeSession(FakeResponse(200, None), FakeResponse(200, {"unexpected": True}), FakeResponse(200, make_payload()))
    analyzer = build(session)

    result = analyzer.analyze("https://example.com")

    assert not result.failed
    assert len(session.calls) == 3


def test_slow_body_is_cut_off_at_the_attempt_deadline() -> None:
    ticks = iter([0.0, 10.0, 35.0, 61.0, 70.0])
    trickle = FakeResponse(200, chunks=[b'{"lighthouse', b'Result": {', b'"categories": {}}}'])
    session = FakeSession(trickle)
    control = RunControl()
    analyzer = build(session, control=control, max_attempts=1, request_timeout=60, clock=lambda: next(ticks))

    result = analyzer.analyze("https://slow.example")

    assert result.failed
    assert "Request timeout" in result.error
    assert trickle.closed
    assert session.calls[0]["stream"] is True
    assert control.stopped


def test_unanalysable_site_scores_25_without_retrying() -> None:
    session = FakeSession(FakeResponse(400))
    control = RunControl()
    analyzer = build(session, control=control)

    result = analyzer.analyze("https://broken.example")

    assert result.score == 25
    assert not result.failed
    assert result.issues
    assert len(session.calls) == 1
    assert not control.stopped


def test_already_stopped_run_makes_no_request() -> None:
    session = FakeSession(FakeResponse(200, make_payload()))
    control = RunControl()
    control.stop("fatal elsewhere")
    analyzer = build(session, control=control)

    result = analyzer.analyze("https://example.com")

    assert result.failed
    assert session.calls == []


def test_stop_during_backoff_abandons_remaining_attempts() -> None:
    control = RunControl()
    wait = RecordingWait(interrupt_on=1, control=control)
    session = FakeSession(FakeResponse(500))
    analyzer = build(session, control=control, wait=wait)

    result = analyzer.analyze("https://example.com")

    assert result.failed
    assert len(session.calls) == 1
    assert control.stop_reason == "stopped by another worker"


def test_first_attempt_waits_for_the_rate_limiter() -> None:
    wait = RecordingWait()
    session = FakeSession(FakeResponse(200, make_payload()))
    limiter = RateLimiter(2.0)
    analyzer = build(session, wait=wait, rate_limiter=limiter)

    analyzer.analyze("https://one.example")
    analyzer.analyze("https://two.example")

    assert len(wait.waits) == 1
    assert 0 < wait.waits[0] <= 2.0


def test_parse_reports_failed_audits_and_weak_categories() -> None:
    analyzer = build(FakeSession(FakeResponse(200)))
    payload = make_payload(
        performance=0.3,
        seo=0.45,
        audits={"is-on-https": {"score": 0}, "viewport": {"score": 1}, "document-title": {"score": 0}},
    )

    result = analyzer.parse(payload)

    assert result.issues == ["No HTTPS", "Missing page title", "Poor performance", "Poor SEO"]


def test_parse_rounds_half_up() -> None:
    analyzer = build(FakeSession(FakeResponse(200)))

    result = analyzer.parse(make_payload(0.125, 0.125, 0.125, 0.125))

    assert result.performance == 13
    assert result.score == 13


def test_parse_rejects_missing_categories() -> None:
    analyzer = build(FakeSession(FakeResponse(200)))

    with pytest.raises(QualityServiceError):
        analyzer.parse({"lighthouseResult": {}})
