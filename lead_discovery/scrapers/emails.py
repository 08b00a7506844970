"""Collect contact emails from a business's own website."""
from __future__ import annotations

import logging
import re
from typing import Iterable, List

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from ..models import unique_ci
from ..quality.base import normalize_url
from ..rate_limit import WaitFunction
from .session import SessionManager

LOGGER = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

# Substrings of addresses that are asset names or tracking ids, not inboxes.
INVALID_EMAIL_MARKERS = (
    "example.com",
    "sentry.io",
    "wixpress",
    "@2x",
    ".png",
    ".jpg",
    ".svg",
    ".gif",
    ".webp",
    "webpack",
    "node_modules",
)

CONTACT_LINKS = 'a[href*="contact"], a[href*="Contact"], a:has-text("Contact")'


def is_valid_email(email: str) -> bool:
    lowered = email.lower()
    return not any(marker in lowered for marker in INVALID_EMAIL_MARKERS)


def emails_in(text: str) -> List[str]:
    return [match.lower() for match in EMAIL_PATTERN.findall(text or "") if is_valid_email(match)]


def _no_wait(_seconds: float) -> bool:
    return False


class WebsiteEmailScraper:
    """Visit a website in an isolated context and gather the emails it shows."""

    def __init__(
        self,
        session: SessionManager,
        *,
        navigation_timeout_ms: float = 20_000,
        wait: WaitFunction = _no_wait,
    ) -> None:
        self._session = session
        self._navigation_timeout_ms = navigation_timeout_ms
        self._wait = wait

    def scrape(self, website: str) -> List[str]:
        url = normalize_url(website)
        LOGGER.info("Scraping emails from %s", url)
        found: List[str] = []
        try:
            with self._session.isolated_page() as page:
                page.goto(url, wait_until="domcontentloaded", timeout=self._navigation_timeout_ms)
                self._wait(1.0)
                found.extend(emails_in(page.content()))
                found.extend(self._mailto_links(page))
                found.extend(self._contact_page(page))
        except PlaywrightError as exc:
            LOGGER.warning("Email scrape failed for %s: %s", url, exc)

        emails = list(unique_ci(found))
        if emails:
            LOGGER.info("Found %s email(s) on %s", len(emails), url)
        return emails

    @staticmethod
    def _mailto_links(page: Page) -> Iterable[str]:
        emails: List[str] = []
        for link in page.locator('a[href^="mailto:"]').all():
            try:
                href = link.get_attribute("href") or ""
            except PlaywrightError:
                continue
            address = href[len("mailto:"):].split("?", 1)[0].strip().lower()
            if "@" in address and is_valid_email(address):
                emails.append(address)
        return emails

    def _contact_page(self, page: Page) -> Iterable[str]:
        links = page.locator(CONTACT_LINKS)
        try:
            if links.count() == 0:
                return []
            links.first.click()
            self._wait(2.0)
            return emails_in(page.content())
        except PlaywrightError as exc:
            LOGGER.debug("Contact page unavailable: %s", exc)
            return []


__all__ = ["WebsiteEmailScraper", "emails_in", "is_valid_email"]
