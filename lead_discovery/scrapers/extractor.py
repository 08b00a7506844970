"""Pull a structured business record out of a listing's detail panel.

Every field except the name is optional: a selector that times out or
disappears degrades that one field to "absent" instead of failing the record.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar
from urllib.parse import unquote, unquote_plus

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from ..models import ScrapedBusiness, unique_ci
from .base import Selectors

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_PLACE_SLUG = re.compile(r"/place/([^/?#]+)")
_PHONE_JUNK = re.compile(r"[^0-9+\-\s()]")
_PHONE_IN_LABEL = re.compile(r"[\d\s+()-]{10,}")
_RATING = re.compile(r"(\d+(?:[.,]\d+)?)\s*star", re.IGNORECASE)
_REVIEWS_IN_PARENS = re.compile(r"\(([\d,.\s]+)\)")
_REVIEWS_IN_LABEL = re.compile(r"([\d,.\s]+)\s+reviews?", re.IGNORECASE)


@dataclass(frozen=True)
class FieldResult(Generic[T]):
    """Outcome of reading one field: a value, or the reason it is missing."""

    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def attempt(cls, reader: Callable[[], Optional[T]]) -> "FieldResult[T]":
        try:
            return cls(value=reader())
        except (PlaywrightError, ValueError) as exc:
            return cls(error=str(exc) or exc.__class__.__name__)

    @property
    def ok(self) -> bool:
        return self.error is None


def name_from_url(url: str) -> Optional[str]:
    match = _PLACE_SLUG.search(url or "")
    if not match:
        return None
    name = unquote_plus(match.group(1)).strip()
    return name or None


def clean_phone(text: str) -> str:
    return " ".join(_PHONE_JUNK.sub("", text).split())


def _parse_count(text: str) -> int:
    digits = re.sub(r"[^\d]", "", text)
    if not digits:
        raise ValueError(f"No digits in review count {text!r}")
    return int(digits)


class ListingExtractor:
    """Read a :class:`ScrapedBusiness` from the page currently showing a listing."""

    def __init__(self, selectors: Optional[Selectors] = None, *, field_timeout_ms: float = 1000) -> None:
        self.selectors = selectors or Selectors()
        self.field_timeout_ms = field_timeout_ms
        self.last_errors: dict = {}

    def extract(self, page: Page) -> Optional[ScrapedBusiness]:
        try:
            name = self.extract_name(page)
            source_url = page.url
        except PlaywrightError as exc:
            LOGGER.debug("Name lookup failed: %s", exc)
            return None
        if not name:
            return None

        fields = {
            "address": FieldResult.attempt(lambda: self._first_text(page, self.selectors.address)),
            "phones": FieldResult.attempt(lambda: self._phones(page)),
            "emails": FieldResult.attempt(lambda: self._emails(page)),
            "website": FieldResult.attempt(lambda: self._website(page)),
            "rating": FieldResult.attempt(lambda: self._rating(page)),
            "review_count": FieldResult.attempt(lambda: self._review_count(page)),
            "category": FieldResult.attempt(lambda: self._first_text(page, (self.selectors.category,))),
        }
        self.last_errors = {key: result.error for key, result in fields.items() if not result.ok}
        for key, error in self.last_errors.items():
            LOGGER.debug("Field %s unavailable for %s: %s", key, name, error)

        address = fields["address"].value
        website = fields["website"].value
        category = fields["category"].value
        return ScrapedBusiness(
            name=name.strip(),
            source_url=source_url,
            address=(address or "").strip(),
            phones=unique_ci(fields["phones"].value or []),
            emails=unique_ci(fields["emails"].value or []),
            website=website.strip() if website and website.strip() else None,
            rating=fields["rating"].value,
            review_count=fields["review_count"].value,
            category=category.strip() if category and category.strip() else None,
        )

    # ------------------------------------------------------------------
    def is_plausible_name(self, text: Optional[str]) -> bool:
        if not text:
            return False
        text = text.strip()
        if not 2 < len(text) < 100:
            return False
        lowered = text.lower()
        return not any(label in lowered for label in self.selectors.boilerplate_names)

    def extract_name(self, page: Page) -> Optional[str]:
        for heading in page.locator(self.selectors.name).all():
            text = self._safe_text(heading)
            if self.is_plausible_name(text):
                return text.strip()  # type: ignore[union-attr]
        return name_from_url(page.url)

    def _safe_text(self, locator) -> Optional[str]:
        try:
            return locator.text_content(timeout=self.field_timeout_ms)
        except PlaywrightError:
            return None

    def _safe_attribute(self, locator, name: str) -> Optional[str]:
        try:
            return locator.get_attribute(name, timeout=self.field_timeout_ms)
        except PlaywrightError:
            return None

    def _first_text(self, page: Page, selectors) -> Optional[str]:
        for selector in selectors:
            text = self._safe_text(page.locator(selector).first)
            if text and text.strip():
                return text
        return None

    def _phones(self, page: Page) -> List[str]:
        phones: List[str] = []
        for element in page.locator(self.selectors.phone).all():
            text = self._safe_text(element)
            if not text:
                continue
            phone = clean_phone(text)
            if len(phone) >= 10:
                phones.append(phone)
        for element in page.locator(self.selectors.phone_links).all():
            label = self._safe_attribute(element, "aria-label")
            match = _PHONE_IN_LABEL.search(label or "")
            if match and match.group(0).strip():
                phones.append(match.group(0).strip())
        return phones

    def _emails(self, page: Page) -> List[str]:
        emails: List[str] = []
        for element in page.locator(self.selectors.email_links).all():
            href = self._safe_attribute(element, "href") or ""
            if not href.lower().startswith("mailto:"):
                continue
            # mailto URIs are percent-encoded; "+" is a literal character here.
            address = unquote(href[len("mailto:"):].split("?", 1)[0]).strip()
            if "@" in address:
                emails.append(address.lower())
        return emails

    def _website(self, page: Page) -> Optional[str]:
        for selector in self.selectors.website:
            href = self._safe_attribute(page.locator(selector).first, "href")
            if href:
                return href
        return None

    def _rating(self, page: Page) -> Optional[float]:
        for element in page.locator(self.selectors.rating).all():
            match = _RATING.search(self._safe_attribute(element, "aria-label") or "")
            if match:
                return float(match.group(1).replace(",", "."))
        return None

    def _review_count(self, page: Page) -> Optional[int]:
        for element in page.locator(self.selectors.reviews).all():
            match = _REVIEWS_IN_PARENS.search(self._safe_text(element) or "")
            if match is None:
                match = _REVIEWS_IN_LABEL.search(self._safe_attribute(element, "aria-label") or "")
            if match:
                return _parse_count(match.group(1))
        return None


__all__ = ["FieldResult", "ListingExtractor", "clean_phone", "name_from_url"]
