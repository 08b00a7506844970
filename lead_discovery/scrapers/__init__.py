"""Browser-driven scraping of map-search listings."""

from .base import SessionConfig, Selectors  # noqa: F401
from .emails import WebsiteEmailScraper  # noqa: F401
from .extractor import FieldResult, ListingExtractor  # noqa: F401
from .maps import ListingError, MapsSearch  # noqa: F401
from .session import SessionManager  # noqa: F401

__all__ = [
    "FieldResult",
    "ListingError",
    "ListingExtractor",
    "MapsSearch",
    "Selectors",
    "SessionConfig",
    "SessionManager",
    "WebsiteEmailScraper",
]
