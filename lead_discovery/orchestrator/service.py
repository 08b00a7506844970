"""Discovery orchestrator that runs a pool of scraping workers."""
from __future__ import annotations

import logging
import random
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Protocol, Sequence

from ..classifier import ProspectClassifier, build_rules
from ..config import PipelineSettings
from ..control import RunControl
from ..distributor import distribute
from ..models import RunSummary, SearchTerm, WorkerResult, WorkerRunState
from ..persistence.base import LeadGateway
from ..quality import build_analyzer
from ..quality.base import QualityAnalyzer
from ..scrapers.base import Selectors, SessionConfig
from ..scrapers.emails import WebsiteEmailScraper
from ..scrapers.extractor import ListingExtractor
from ..scrapers.maps import MapsSearch
from ..scrapers.session import SessionManager
from ..worker import DiscoveryWorker

LOGGER = logging.getLogger(__name__)


class WorkerProtocol(Protocol):
    """Anything with a blocking ``run`` that reports its own counts."""

    def run(self) -> WorkerResult:  # pragma: no cover - runtime protocol
        """Process the assigned terms and return the worker's result."""


WorkerFactory = Callable[[int, List[SearchTerm], RunControl, ProspectClassifier], WorkerProtocol]
SessionFactory = Callable[[int], SessionManager]


class DiscoveryOrchestrator:
    """Splits the search matrix across workers and summarises the run.

    Workers are created inside their own thread because the browser objects
    they own must not cross threads.
    """

    def __init__(
        self,
        settings: PipelineSettings,
        gateway: LeadGateway,
        *,
        analyzer: Optional[QualityAnalyzer] = None,
        session_factory: Optional[SessionFactory] = None,
        worker_factory: Optional[WorkerFactory] = None,
        control: Optional[RunControl] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self._analyzer = analyzer
        self._session_factory = session_factory or self._default_session
        self._worker_factory = worker_factory or self._default_worker
        self._control = control
        self._rng = rng
        self._clock = clock
        self._rules = build_rules(settings.social_patterns, settings.diy_patterns)
        self._selectors = Selectors.from_mapping(settings.selectors)
        self.control: Optional[RunControl] = control

    def run(
        self,
        locations: Optional[Sequence[str]] = None,
        categories: Optional[Sequence[str]] = None,
    ) -> RunSummary:
        """Run every worker to completion and return the run's summary."""

        settings = self.settings
        control = self._prepare_control()
        classifier = ProspectClassifier(
            self._analyzer or build_analyzer(settings, control),
            rules=self._rules,
            threshold=settings.quality_threshold,
            control=control,
        )

        started = self._clock()
        starting_count = self.gateway.count()
        assignments = distribute(
            locations if locations is not None else settings.locations,
            categories if categories is not None else settings.categories,
            settings.workers,
            self._rng,
        )
        LOGGER.info(
            "Starting %s worker(s) over %s search terms (database holds %s leads)",
            settings.workers,
            sum(len(terms) for terms in assignments),
            starting_count,
        )

        with ThreadPoolExecutor(max_workers=settings.workers, thread_name_prefix="discovery") as executor:
            futures = [
                executor.submit(self._execute_worker, worker_id, terms, control, classifier)
                for worker_id, terms in enumerate(assignments, start=1)
            ]
            results = [future.result() for future in futures]

        summary = RunSummary(
            total_added=sum(result.added for result in results),
            per_worker_added=[result.added for result in results],
            duration_seconds=int(round(self._clock() - started)),
            final_database_count=self.gateway.count(),
            stopped=control.should_stop(),
            stop_reason=control.stop_reason,
            target_reached=control.target_reached(),
        )
        if summary.stopped:
            LOGGER.error("Run stopped early (%s) after adding %s leads", summary.stop_reason, summary.total_added)
        LOGGER.info(
            "Run finished in %ss: added %s %s, database now holds %s leads",
            summary.duration_seconds,
            summary.total_added,
            summary.per_worker_added,
            summary.final_database_count,
        )
        return summary

    # ------------------------------------------------------------------
    def _prepare_control(self) -> RunControl:
        target = self.settings.target_leads
        if self._control is None:
            control = RunControl(target)
        else:
            control = self._control
            if control.target is None:
                control.target = target
        self.control = control
        return control

    def _execute_worker(
        self,
        worker_id: int,
        terms: List[SearchTerm],
        control: RunControl,
        classifier: ProspectClassifier,
    ) -> WorkerResult:
        worker: Optional[WorkerProtocol] = None
        try:
            worker = self._worker_factory(worker_id, terms, control, classifier)
            return worker.run()
        except Exception:
            LOGGER.exception("[worker %s] Crashed", worker_id)
            # Keep whatever the worker had already counted.
            state = getattr(worker, "state", None)
            if isinstance(state, WorkerRunState):
                result = WorkerResult.from_state(state, exhausted=False, stopped=control.should_stop())
                result.errors += 1
                return result
            return WorkerResult(worker_id=worker_id, errors=1)

    def _default_session(self, worker_id: int) -> SessionManager:
        return SessionManager(SessionConfig.from_settings(self.settings), worker_id=worker_id)

    def _default_worker(
        self,
        worker_id: int,
        terms: List[SearchTerm],
        control: RunControl,
        classifier: ProspectClassifier,
    ) -> DiscoveryWorker:
        settings = self.settings
        session = self._session_factory(worker_id)
        email_scraper = None
        if settings.enrich_emails:
            email_scraper = WebsiteEmailScraper(
                session,
                navigation_timeout_ms=settings.navigation_timeout * 1000,
                wait=control.wait,
            )
        return DiscoveryWorker(
            worker_id,
            terms,
            settings=settings,
            control=control,
            gateway=self.gateway,
            classifier=classifier,
            session=session,
            search=MapsSearch.from_settings(settings, selectors=self._selectors, wait=control.wait),
            extractor=ListingExtractor(self._selectors),
            email_scraper=email_scraper,
            rules=self._rules,
        )


__all__ = ["DiscoveryOrchestrator", "SessionFactory", "WorkerFactory", "WorkerProtocol"]
