"""In-memory stand-ins for the Playwright page objects the scrapers touch."""
from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError


class FakeElement:
    def __init__(
        self,
        text: Optional[str] = None,
        attrs: Optional[Dict[str, str]] = None,
        *,
        broken: bool = False,
        on_click=None,
    ) -> None:
        self.text = text
        self.attrs = attrs or {}
        self.broken = broken
        self.on_click = on_click
        self.clicks = 0


class FakeLocator:
    def __init__(self, elements: List[FakeElement]) -> None:
        self._elements = elements

    @property
    def first(self) -> "FakeLocator":
        return FakeLocator(self._elements[:1])

    def all(self) -> List["FakeLocator"]:
        return [FakeLocator([element]) for element in self._elements]

    def count(self) -> int:
        return len(self._elements)

    def _element(self) -> FakeElement:
        if not self._elements:
            raise PlaywrightTimeoutError("Timeout exceeded waiting for locator")
        element = self._elements[0]
        if element.broken:
            raise PlaywrightError("Element is not attached to the DOM")
        return element

    def text_content(self, timeout=None) -> Optional[str]:
        return self._element().text

    def get_attribute(self, name: str, timeout=None) -> Optional[str]:
        return self._element().attrs.get(name)

    def wait_for(self, state: str = "visible", timeout=None) -> None:
        self._element()

    def click(self, timeout=None) -> None:
        element = self._element()
        element.clicks += 1
        if element.on_click is not None:
            element.on_click()


class FakePage:
    def __init__(self, url: str = "about:blank", elements: Optional[Dict[str, List[FakeElement]]] = None) -> None:
        self.url = url
        self.elements: Dict[str, List[FakeElement]] = elements or {}
        self.html = ""
        self.visited: List[str] = []
        self.evaluated: List[object] = []
        self.alive = True
        self.goto_error: Optional[Exception] = None
        self.default_timeout: Optional[float] = None
        self.default_navigation_timeout: Optional[float] = None

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self.elements.get(selector, []))

    def goto(self, url: str, wait_until=None, timeout=None) -> None:
        if self.goto_error is not None:
            raise self.goto_error
        self.visited.append(url)
        self.url = url

    def wait_for_selector(self, selector: str, timeout=None) -> None:
        if not self.elements.get(selector):
            raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")

    def evaluate(self, script: str, arg=None) -> object:
        if not self.alive:
            raise PlaywrightError("Target page, context or browser has been closed")
        self.evaluated.append(arg)
        return True

    def content(self) -> str:
        return self.html

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout: float) -> None:
        self.default_navigation_timeout = timeout


class FakeContext:
    def __init__(self, options: dict, page_factory) -> None:
        self.options = options
        self.pages: List[FakePage] = []
        self.closed = False
        self._page_factory = page_factory

    def new_page(self) -> FakePage:
        page = self._page_factory()
        self.pages.append(page)
        return page

    def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory=FakePage) -> None:
        self.contexts: List[FakeContext] = []
        self.connected = True
        self.closed = False
        self._page_factory = page_factory

    def new_context(self, **options) -> FakeContext:
        context = FakeContext(options, self._page_factory)
        self.contexts.append(context)
        return context

    def is_connected(self) -> bool:
        return self.connected

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fakes():
    """Namespace of the fake Playwright classes."""

    class Namespace:
        Element = FakeElement
        Locator = FakeLocator
        Page = FakePage
        Browser = FakeBrowser
        Error = PlaywrightError
        TimeoutError = PlaywrightTimeoutError

    return Namespace
