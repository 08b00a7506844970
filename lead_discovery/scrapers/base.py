"""Common configuration shared by the browser-driven scrapers."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from ..config import DEFAULT_USER_AGENT, ConfigurationError, PipelineSettings


@dataclass
class SessionConfig:
    """Runtime configuration for one worker's browser session."""

    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    locale: str = "en-ZA"
    viewport_width: int = 1920
    viewport_height: int = 1080
    page_timeout: float = 15.0
    navigation_timeout: float = 30.0
    launch_args: Tuple[str, ...] = ("--no-sandbox", "--disable-dev-shm-usage")

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "SessionConfig":
        return cls(
            headless=settings.headless,
            user_agent=settings.user_agent,
            locale=settings.locale,
            viewport_width=settings.viewport_width,
            viewport_height=settings.viewport_height,
            page_timeout=settings.page_timeout,
            navigation_timeout=settings.navigation_timeout,
        )

    def context_options(self) -> dict:
        return {
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "user_agent": self.user_agent,
            "locale": self.locale,
        }


@dataclass(frozen=True)
class Selectors:
    """CSS selectors for the map-search pages; overridable because the DOM changes often."""

    name: str = "h1"
    address: Tuple[str, ...] = (
        '[data-item-id="address"] .fontBodyMedium',
        '[data-item-id="address"]',
        'button[data-item-id="address"]',
    )
    phone: str = '[data-item-id^="phone:"]'
    phone_links: str = 'a[data-item-id^="phone:"], button[data-item-id^="phone:"]'
    email_links: str = 'a[href^="mailto:"]'
    website: Tuple[str, ...] = ('[data-item-id="authority"] a', 'a[data-item-id="authority"]')
    rating: str = '[aria-label*="star"]'
    reviews: str = '[aria-label*="review"]'
    category: str = 'button[jsaction*="category"]'
    results_feed: str = '[role="feed"]'
    listing_links: str = 'a[href*="/maps/place"]'
    cookie_button: str = 'button:has-text("Accept all")'
    boilerplate_names: Tuple[str, ...] = field(default=("results", "google maps"))

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]] = None) -> "Selectors":
        if not overrides:
            return cls()
        known = {item.name: item for item in dataclasses.fields(cls)}
        unknown = sorted(set(overrides) - set(known))
        if unknown:
            raise ConfigurationError(f"Unknown selector keys: {', '.join(unknown)}")
        values = {}
        for key, value in overrides.items():
            default = known[key].default
            if isinstance(default, tuple):
                value = (value,) if isinstance(value, str) else tuple(value)
            values[key] = value
        return cls(**values)


__all__ = ["SessionConfig", "Selectors"]
