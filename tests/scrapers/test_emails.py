from __future__ import annotations

from lead_discovery.scrapers.emails import CONTACT_LINKS, WebsiteEmailScraper, emails_in, is_valid_email
from lead_discovery.scrapers.session import SessionManager


def test_emails_in_filters_asset_names() -> None:
    text = "Mail Info@Acme.co.za or logo@2x.png, error@sentry.io and admin@example.com"

    assert emails_in(text) == ["info@acme.co.za"]


def test_is_valid_email() -> None:
    assert is_valid_email("sales@acme.co.za")
    assert not is_valid_email("icon@webpack.js")


def test_scrape_collects_page_mailto_and_contact_page(fakes) -> None:
    def build_page():
        page = fakes.Page()
        page.html = "<p>hello@acme.co.za</p>"

        def open_contact() -> None:
            page.html = "<p>Bookings: bookings@acme.co.za</p>"

        page.elements = {
            'a[href^="mailto:"]': [fakes.Element(attrs={"href": "mailto:HELLO@acme.co.za"})],
            CONTACT_LINKS: [fakes.Element("Contact", on_click=open_contact)],
        }
        return page

    browser = fakes.Browser(page_factory=build_page)
    session = SessionManager(browser_factory=lambda: browser)

    emails = WebsiteEmailScraper(session).scrape("acme.co.za")

    assert emails == ["hello@acme.co.za", "bookings@acme.co.za"]
    assert browser.contexts[0].pages[0].visited == ["https://acme.co.za"]
    assert browser.contexts[0].closed


def test_scrape_failure_returns_what_was_found(fakes) -> None:
    def build_page():
        page = fakes.Page()
        page.goto_error = fakes.TimeoutError("Navigation timeout")
        return page

    session = SessionManager(browser_factory=lambda: fakes.Browser(page_factory=build_page))

    assert WebsiteEmailScraper(session).scrape("https://slow.example") == []
