"""A single discovery worker: search, open, extract, classify and save listings."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from .classifier import DEFAULT_RULES, ProspectClassifier, WebsiteRule, is_social_or_directory, passes_rating_floor
from .config import PipelineSettings
from .control import RunControl
from .models import ScrapedBusiness, SearchTerm, WorkerResult, WorkerRunState, WorkerState
from .persistence.base import InsertOutcome, LeadGateway
from .scoring import build_lead
from .scrapers.emails import WebsiteEmailScraper
from .scrapers.extractor import ListingExtractor
from .scrapers.maps import ListingError, MapsSearch
from .scrapers.session import SessionManager

LOGGER = logging.getLogger(__name__)


class DiscoveryWorker:
    """Processes its assigned search terms in order until done, halted or exhausted.

    A worker owns its browser session and closes it when :meth:`run` returns.
    Everything it shares with other workers (the run control, the gateway and
    the classifier's analyzer) is safe for concurrent use.
    """

    def __init__(
        self,
        worker_id: int,
        terms: Iterable[SearchTerm],
        *,
        settings: PipelineSettings,
        control: RunControl,
        gateway: LeadGateway,
        classifier: ProspectClassifier,
        session: SessionManager,
        search: Optional[MapsSearch] = None,
        extractor: Optional[ListingExtractor] = None,
        email_scraper: Optional[WebsiteEmailScraper] = None,
        rules: Sequence[WebsiteRule] = DEFAULT_RULES,
    ) -> None:
        self.worker_id = worker_id
        self.terms: List[SearchTerm] = list(terms)
        self.settings = settings
        self.control = control
        self.gateway = gateway
        self.classifier = classifier
        self.session = session
        self.search = search or MapsSearch.from_settings(settings, wait=control.wait)
        self.extractor = extractor or ListingExtractor()
        self.email_scraper = email_scraper
        self.rules = list(rules)
        self.state = WorkerRunState(worker_id=worker_id)
        self._exhausted = False

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def run(self) -> WorkerResult:
        LOGGER.info("[worker %s] Starting with %s search terms", self.worker_id, len(self.terms))
        try:
            for position, term in enumerate(self.terms):
                if self.control.should_halt() or self._exhausted:
                    break
                if position and self.control.wait(self.settings.search_delay):
                    break
                self._process_term(term)
        finally:
            self._set_state(WorkerState.DONE)
            self.session.close()

        result = WorkerResult.from_state(
            self.state,
            exhausted=self._exhausted,
            stopped=self.control.should_stop(),
        )
        LOGGER.info(
            "[worker %s] Finished: added=%s processed=%s skipped=%s duplicates=%s errors=%s",
            self.worker_id,
            result.added,
            result.processed,
            result.skipped,
            result.duplicates,
            result.errors,
        )
        return result

    # ------------------------------------------------------------------
    def _set_state(self, state: WorkerState) -> None:
        self.state.state = state

    def _record_error(self, what: str, exc: BaseException) -> None:
        self.state.errors += 1
        self.state.consecutive_errors += 1
        LOGGER.warning(
            "[worker %s] %s failed (%s consecutive): %s",
            self.worker_id,
            what,
            self.state.consecutive_errors,
            exc,
        )
        if self.state.consecutive_errors >= self.settings.max_consecutive_errors:
            self._exhausted = True
            LOGGER.error(
                "[worker %s] Stopping after %s consecutive errors",
                self.worker_id,
                self.state.consecutive_errors,
            )

    def _recover(self, page: Page) -> bool:
        """Pause after an error; ``True`` if ``page`` still holds the results feed."""

        if self.control.wait(self.settings.error_delay):
            return False
        try:
            fresh = self.session.ensure_page()
        except PlaywrightError as exc:
            LOGGER.warning("[worker %s] Browser session could not be restored: %s", self.worker_id, exc)
            self.session.invalidate()
            return False
        return fresh is page

    def _process_term(self, term: SearchTerm) -> None:
        self._set_state(WorkerState.SEARCHING)
        try:
            page = self.session.ensure_page()
            count = self.search.search(page, term)
        except Exception as exc:
            self._record_error(f"Search for {term.query()!r}", exc)
            self.session.invalidate()
            return

        for index in range(count):
            if self.control.should_halt() or self._exhausted:
                return
            self._set_state(WorkerState.LISTING_LOOP)
            try:
                if not self.search.open_listing(page, index):
                    return
                self._process_listing(page, term)
            except (ListingError, PlaywrightError) as exc:
                self._record_error(f"Listing {index + 1}/{count}", exc)
            except Exception as exc:
                LOGGER.debug("[worker %s] Listing failure details", self.worker_id, exc_info=True)
                self._record_error(f"Listing {index + 1}/{count} ({exc.__class__.__name__})", exc)
            else:
                self.state.consecutive_errors = 0
                continue

            if self._exhausted:
                return
            if not self._recover(page):
                LOGGER.info("[worker %s] Abandoning search %r", self.worker_id, term.query())
                return

    def _process_listing(self, page: Page, term: SearchTerm) -> None:
        self._set_state(WorkerState.EXTRACTING)
        business = self.extractor.extract(page)
        self.state.processed += 1
        if business is None:
            self._skip("listing without a usable name")
            return

        if not passes_rating_floor(business.rating, self.settings.min_rating):
            self._skip(f"{business.name}: rating {business.rating} below {self.settings.min_rating}")
            return

        self._set_state(WorkerState.CLASSIFYING)
        decision = self.classifier.classify(business.website)
        if decision.stopped:
            return
        if not decision.is_good:
            self._skip(f"{business.name}: {decision.reason.value} (score {decision.quality_score})")
            return

        business = self._enrich(business)
        lead = build_lead(business, term, decision, self.rules)
        if self.control.should_halt():
            return

        self._set_state(WorkerState.SAVING)
        if self.gateway.exists(lead.candidate_keys()) or self.gateway.insert(lead) is InsertOutcome.DUPLICATE:
            self.state.duplicates += 1
            LOGGER.info("[worker %s] Duplicate: %s", self.worker_id, lead.business_name)
            return

        self.state.added += 1
        total = self.control.record_added()
        LOGGER.info(
            "[worker %s] Added %s (%s, lead score %s) [%s/%s]",
            self.worker_id,
            lead.business_name,
            decision.reason.value,
            lead.lead_score,
            total,
            self.control.target if self.control.target is not None else "-",
        )

    def _skip(self, why: str) -> None:
        self._set_state(WorkerState.SKIPPED)
        self.state.skipped += 1
        LOGGER.info("[worker %s] Skipped %s", self.worker_id, why)

    def _enrich(self, business: ScrapedBusiness) -> ScrapedBusiness:
        if self.email_scraper is None or not self.settings.enrich_emails or not business.website:
            return business
        if is_social_or_directory(business.website, self.rules):
            return business
        return business.with_emails(self.email_scraper.scrape(business.website))


__all__ = ["DiscoveryWorker"]
