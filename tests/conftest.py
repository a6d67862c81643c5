"""Pytest fixtures for the scraping service tests.

This module provides shared fixtures for testing the FastAPI application,
including the test client, sample pages and a scraper service wired to an
in-process HTTP transport.
"""

from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.repositories.session_store import InMemorySessionStore
from app.services.dom import parse_html
from app.services.scraper_service import ScraperService
from app.services.session_manager import ScrapingSessionManager

EXAMPLE_HTML = """<!doctype html>
<html lang="en">
<head>
    <title>Example Domain</title>
    <meta name="description" content="Illustrative example page">
</head>
<body>
<div>
    <h1>Example Domain</h1>
    <p>This domain is for use in illustrative examples in documents. You may use this
    domain in literature without prior coordination or asking for permission.</p>
    <p><a href="https://www.iana.org/domains/example">More information...</a></p>
</div>
</body>
</html>
"""

DIRECTORY_HTML = """<!doctype html>
<html lang="en">
<head><title>Health Expo Exhibitors</title></head>
<body>
<nav class="menu"><a href="/">Home</a><a href="/about">About</a></nav>
<main>
    <h1>Our exhibitors</h1>
    <div class="grid">
        <div class="company-card">
            <h3>Acme Biotech</h3>
            <p class="description">Gene therapy platform for rare diseases.</p>
            <span class="location">Lyon</span>
            <span class="tag">Biotech</span>
            <a href="https://www.acmebiotech.com">Website</a>
            <a href="/exhibitors/acme-biotech">View details</a>
        </div>
        <div class="company-card">
            <h3>Nordic Payments</h3>
            <p class="description">Payment infrastructure for marketplaces, 120 employees.</p>
            <a href="/exhibitors/nordic-payments">View details</a>
        </div>
    </div>
    <div class="pagination"><a href="/exhibitors?page=2">Next</a></div>
</main>
<footer><a href="https://twitter.com/healthexpo">Twitter</a></footer>
</body>
</html>
"""


@pytest.fixture
def client():
    """Create a test client for the FastAPI application.

    Returns:
        TestClient: A test client instance for making requests to the API.
    """
    return TestClient(app)


@pytest.fixture
def example_html():
    """Minimal single-paragraph page.

    Returns:
        str: HTML of a page with one outbound link and no companies.
    """
    return EXAMPLE_HTML


@pytest.fixture
def directory_html():
    """Exhibitor directory page with two company cards and pagination.

    Returns:
        str: HTML of a small healthcare expo directory.
    """
    return DIRECTORY_HTML


@pytest.fixture
def directory_tree(directory_html):
    """Parsed exhibitor directory page."""
    return parse_html(directory_html)


@pytest.fixture
def pages():
    """Mutable map of URL to (status, html) served by the mock transport.

    Tests add or replace entries to control what the scraper sees.
    """
    return {
        "https://example.com/": (200, EXAMPLE_HTML),
        "https://expo.test/exhibitors": (200, DIRECTORY_HTML),
    }


@pytest.fixture
def transport(pages):
    """httpx transport answering from the ``pages`` fixture, 404 otherwise."""

    def handler(request: httpx.Request) -> httpx.Response:
        key = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        status_code, html = pages.get(key, (404, "<html><body>Not found</body></html>"))
        return httpx.Response(status_code, text=html, headers={"Content-Type": "text/html"})

    return httpx.MockTransport(handler)


@pytest.fixture
def session_manager():
    """Session manager with its own empty in-memory store."""
    return ScrapingSessionManager(InMemorySessionStore())


@pytest.fixture
def scraper_service(session_manager, transport):
    """Scraper service that fetches through the mock transport."""
    return ScraperService(manager=session_manager, transport=transport, settle_delay=0)


@pytest.fixture
def api(client, scraper_service, session_manager):
    """Test client whose routers use the mock-transport scraper service.

    Yields:
        TestClient: Client with service accessors patched for both routers.
    """
    with patch("app.routers.scrape.get_scraper_service", return_value=scraper_service), patch(
        "app.routers.sessions.get_scraper_service", return_value=scraper_service
    ), patch("app.routers.sessions.get_session_manager", return_value=session_manager):
        yield client
