"""Per-worker browser session that transparently replaces dead pages.

Playwright's sync API objects are bound to the thread that created them, so
each worker thread owns one :class:`SessionManager` and never shares it.
"""
from __future__ import annotations

import contextlib
import logging
from typing import Callable, Iterator, Optional

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from .base import SessionConfig

LOGGER = logging.getLogger(__name__)

BrowserFactory = Callable[[], Browser]


class SessionManager:
    """Owns the browser, context and page used by a single worker."""

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        *,
        browser_factory: Optional[BrowserFactory] = None,
        worker_id: int = 0,
    ) -> None:
        self.config = config or SessionConfig()
        self.worker_id = worker_id
        self._browser_factory = browser_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self.contexts_opened = 0

    def __enter__(self) -> "SessionManager":
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    def ensure_page(self) -> Page:
        """Return a page that answered a liveness check, rebuilding the context if needed."""

        if self._page is not None:
            if self._is_alive(self._page):
                return self._page
            LOGGER.info("[worker %s] Recreating browser context", self.worker_id)

        self._discard_context()
        browser = self._ensure_browser()
        context = browser.new_context(**self.config.context_options())
        self._context = context
        page = context.new_page()
        page.set_default_timeout(self.config.page_timeout * 1000)
        page.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
        self._page = page
        self.contexts_opened += 1
        return page

    def invalidate(self) -> None:
        """Forget the current page so the next :meth:`ensure_page` starts fresh."""

        self._page = None

    @contextlib.contextmanager
    def isolated_page(self) -> Iterator[Page]:
        """Yield a page in a throwaway context, leaving the worker's page untouched."""

        context = self._ensure_browser().new_context(**self.config.context_options())
        try:
            page = context.new_page()
            page.set_default_timeout(self.config.page_timeout * 1000)
            yield page
        finally:
            with contextlib.suppress(PlaywrightError):
                context.close()

    def close(self) -> None:
        self._discard_context()
        if self._browser is not None:
            with contextlib.suppress(PlaywrightError):
                self._browser.close()
            self._browser = None
        if self._playwright is not None:
            with contextlib.suppress(PlaywrightError):
                self._playwright.stop()
            self._playwright = None

    # ------------------------------------------------------------------
    @staticmethod
    def _is_alive(page: Page) -> bool:
        try:
            page.evaluate("() => true")
        except PlaywrightError:
            return False
        return True

    def _discard_context(self) -> None:
        self._page = None
        if self._context is None:
            return
        try:
            self._context.close()
        except PlaywrightError as exc:
            LOGGER.debug("[worker %s] Ignoring error while closing context: %s", self.worker_id, exc)
        self._context = None

    def _ensure_browser(self) -> Browser:
        if self._browser is not None:
            if self._browser.is_connected():
                return self._browser
            LOGGER.warning("[worker %s] Browser disconnected; relaunching", self.worker_id)
            self._browser = None

        if self._browser_factory is not None:
            self._browser = self._browser_factory()
        else:
            if self._playwright is None:
                self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.config.headless,
                args=list(self.config.launch_args),
            )
        return self._browser


__all__ = ["BrowserFactory", "SessionManager"]
