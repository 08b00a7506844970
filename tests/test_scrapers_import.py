"""Regression tests for the browser-facing package imports."""

import importlib

import pytest


def test_scrapers_module_imports_with_playwright() -> None:
    """Ensure the scrapers package exposes its public classes."""

    pytest.importorskip("playwright", reason="Playwright is required for scraper import test")
    module = importlib.import_module("lead_discovery.scrapers")
    assert module.MapsSearch is not None
    assert module.ListingExtractor is not None
    assert module.SessionManager is not None
