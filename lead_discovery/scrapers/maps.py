"""Navigation of the map-search results page."""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..config import PipelineSettings
from ..models import SearchTerm
from ..rate_limit import WaitFunction
from .base import Selectors

LOGGER = logging.getLogger(__name__)

SEARCH_BASE_URL = "https://www.google.com/maps/search/"

_SCROLL_FEED_SCRIPT = """
(selector) => {
    const feed = document.querySelector(selector);
    if (feed) {
        feed.scrollTop = feed.scrollHeight;
    }
}
"""


class ListingError(RuntimeError):
    """A listing could not be opened in the detail panel."""


def _no_wait(_seconds: float) -> bool:
    return False


class MapsSearch:
    """Run a search, load its results feed and open listings one at a time."""

    def __init__(
        self,
        selectors: Optional[Selectors] = None,
        *,
        country: Optional[str] = None,
        max_results: int = 20,
        listing_delay: float = 1.0,
        feed_timeout_ms: float = 10_000,
        details_timeout_ms: float = 3_000,
        navigation_timeout_ms: float = 30_000,
        scroll_rounds: int = 2,
        wait: Optional[WaitFunction] = None,
    ) -> None:
        self.selectors = selectors or Selectors()
        self.country = country
        self.max_results = max_results
        self.listing_delay = listing_delay
        self.feed_timeout_ms = feed_timeout_ms
        self.details_timeout_ms = details_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.scroll_rounds = scroll_rounds
        self._wait = wait or _no_wait

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        *,
        selectors: Optional[Selectors] = None,
        wait: Optional[WaitFunction] = None,
    ) -> "MapsSearch":
        return cls(
            selectors,
            country=settings.country,
            max_results=settings.max_results_per_search,
            listing_delay=settings.listing_delay,
            navigation_timeout_ms=settings.navigation_timeout * 1000,
            wait=wait,
        )

    def build_search_url(self, term: SearchTerm) -> str:
        return SEARCH_BASE_URL + quote(term.query(self.country), safe="")

    def search(self, page: Page, term: SearchTerm) -> int:
        """Load results for ``term`` and return how many listings to process."""

        url = self.build_search_url(term)
        LOGGER.info("Searching: %r", term.query(self.country))
        page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        self.accept_cookies(page)

        try:
            page.wait_for_selector(self.selectors.results_feed, timeout=self.feed_timeout_ms)
        except PlaywrightTimeoutError:
            LOGGER.info("No results feed for %r", term.query(self.country))
            return 0

        self.scroll_feed(page)
        found = page.locator(self.selectors.listing_links).count()
        count = min(found, self.max_results)
        LOGGER.info("Found %s listings, processing %s", found, count)
        return count

    def accept_cookies(self, page: Page) -> None:
        button = page.locator(self.selectors.cookie_button).first
        try:
            button.wait_for(state="visible", timeout=2000)
            button.click()
        except PlaywrightError:
            LOGGER.debug("No cookie prompt shown")
            return
        self._wait(0.5)

    def scroll_feed(self, page: Page) -> None:
        for _ in range(self.scroll_rounds):
            page.evaluate(_SCROLL_FEED_SCRIPT, self.selectors.results_feed)
            if self._wait(0.5):
                return

    def open_listing(self, page: Page, index: int) -> bool:
        """Click listing ``index``; ``False`` if it is no longer in the feed.

        The listing links are re-queried on every call because clicking a
        listing re-renders parts of the feed.
        """

        listings = page.locator(self.selectors.listing_links).all()
        if index >= len(listings):
            return False

        try:
            listings[index].click()
        except PlaywrightError as exc:
            LOGGER.debug("Click on listing %s failed: %s", index + 1, exc)
        self._wait(self.listing_delay + 0.2)

        try:
            page.locator(self.selectors.name).first.wait_for(state="visible", timeout=self.details_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ListingError(f"Listing {index + 1}: no details panel") from exc
        return True


__all__ = ["ListingError", "MapsSearch", "SEARCH_BASE_URL"]
