"""Tests for the page fetcher."""

import brotli
import httpx
import pytest

from app.core.errors import (
    FetchErrorCategory,
    HttpStatusError,
    ScrapeValidationError,
    TransportError,
    UnsupportedSchemeError,
)
from app.services.page_fetcher import BROWSER_HEADERS, PageFetcher, fetch_page, validate_url


def _transport(status_code=200, html="<html><body>ok</body></html>"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=html)

    return httpx.MockTransport(handler)


def _raising_transport(exc: Exception):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc

    return httpx.MockTransport(handler)


class TestValidateUrl:
    """Test URL validation before any network access."""

    def test_accepts_http_and_https(self):
        """Test both supported schemes pass and whitespace is stripped."""
        assert validate_url(" https://example.com/a ") == "https://example.com/a"
        assert validate_url("http://example.com") == "http://example.com"

    def test_empty_url_rejected(self):
        """Test an empty URL is a validation error."""
        with pytest.raises(ScrapeValidationError, match="URL is required"):
            validate_url("   ")

    def test_unsupported_scheme(self):
        """Test ftp and file URLs are refused with their own category."""
        for url in ("ftp://example.com/file", "file:///etc/passwd"):
            with pytest.raises(UnsupportedSchemeError) as exc_info:
                validate_url(url)
            assert exc_info.value.category is FetchErrorCategory.UNSUPPORTED_SCHEME
            assert exc_info.value.message == "Only HTTP and HTTPS URLs are supported"

    def test_missing_host(self):
        """Test a URL without a host is rejected."""
        with pytest.raises(ScrapeValidationError, match="Invalid URL format"):
            validate_url("https://")


class TestPageFetcher:
    """Test PageFetcher request handling and error mapping."""

    @pytest.mark.asyncio
    async def test_fetch_returns_html(self):
        """Test a 200 response yields body, final URL and status."""
        async with PageFetcher(transport=_transport(html="<p>hello</p>")) as fetcher:
            result = await fetcher.fetch("https://example.com/")
        assert result.html == "<p>hello</p>"
        assert result.final_url == "https://example.com/"
        assert result.status_code == 200

    @pytest.mark.asyncio
    async def test_decodes_brotli_body(self):
        """Test a br-encoded response is decompressed before it reaches the parser."""
        html = "<html><head><title>Compressed</title></head><body>ok</body></html>"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"content-encoding": "br", "content-type": "text/html; charset=utf-8"},
                content=brotli.compress(html.encode("utf-8")),
            )

        async with PageFetcher(transport=httpx.MockTransport(handler)) as fetcher:
            result = await fetcher.fetch("https://example.com/")
        assert result.html == html

    @pytest.mark.asyncio
    async def test_sends_browser_headers(self):
        """Test the request carries the desktop browser User-Agent."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, text="")

        async with PageFetcher(transport=httpx.MockTransport(handler)) as fetcher:
            await fetcher.fetch("https://example.com/")
        assert seen["user-agent"] == BROWSER_HEADERS["User-Agent"]
        assert seen["dnt"] == "1"

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        """Test the final URL reflects redirects."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://example.com/new"})
            return httpx.Response(200, text="moved")

        async with PageFetcher(transport=httpx.MockTransport(handler)) as fetcher:
            result = await fetcher.fetch("https://example.com/old")
        assert result.final_url == "https://example.com/new"
        assert result.html == "moved"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,category,message",
        [
            (403, FetchErrorCategory.FORBIDDEN, "Access forbidden - website blocks scraping"),
            (404, FetchErrorCategory.PAGE_NOT_FOUND, "Page not found"),
            (429, FetchErrorCategory.RATE_LIMITED, "Rate limited - too many requests"),
            (503, FetchErrorCategory.SERVER_ERROR, "Server error on target website"),
            (418, FetchErrorCategory.UNKNOWN, "Request failed with status code 418"),
        ],
    )
    async def test_status_mapping(self, status_code, category, message):
        """Test error statuses map to their categories and messages."""
        async with PageFetcher(transport=_transport(status_code)) as fetcher:
            with pytest.raises(HttpStatusError) as exc_info:
                await fetcher.fetch("https://example.com/")
        error = exc_info.value
        assert error.status_code == status_code
        assert error.category is category
        assert error.message == message
        assert error.url == "https://example.com/"

    @pytest.mark.asyncio
    async def test_allowed_status_passes(self):
        """Test an explicitly allowed error status returns the body."""
        async with PageFetcher(transport=_transport(404, "gone")) as fetcher:
            result = await fetcher.fetch("https://example.com/", allowed_statuses=(404,))
        assert result.status_code == 404
        assert result.html == "gone"

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test read timeouts become retryable transport errors."""
        transport = _raising_transport(httpx.ReadTimeout("timed out"))
        async with PageFetcher(transport=transport) as fetcher:
            with pytest.raises(TransportError) as exc_info:
                await fetcher.fetch("https://slow.example.com/")
        assert exc_info.value.category is FetchErrorCategory.TIMEOUT
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_dns_failure(self):
        """Test name resolution failures map to not-found."""
        transport = _raising_transport(httpx.ConnectError("[Errno -2] Name or service not known"))
        async with PageFetcher(transport=transport) as fetcher:
            with pytest.raises(TransportError) as exc_info:
                await fetcher.fetch("https://no-such-host.invalid/")
        assert exc_info.value.category is FetchErrorCategory.NOT_FOUND
        assert exc_info.value.message == "Website not found or domain does not exist"

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Test other connect errors keep their detail in the message."""
        transport = _raising_transport(httpx.ConnectError("Connection refused"))
        async with PageFetcher(transport=transport) as fetcher:
            with pytest.raises(TransportError) as exc_info:
                await fetcher.fetch("https://example.com/")
        assert exc_info.value.category is FetchErrorCategory.UNKNOWN
        assert "Connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_fetch_outside_context_raises(self):
        """Test using the fetcher without 'async with' is an error."""
        fetcher = PageFetcher()
        with pytest.raises(RuntimeError, match="not initialized"):
            await fetcher.fetch("https://example.com/")

    @pytest.mark.asyncio
    async def test_unsupported_scheme_makes_no_request(self):
        """Test scheme validation happens before the transport is used."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        async with PageFetcher(transport=httpx.MockTransport(handler)) as fetcher:
            with pytest.raises(UnsupportedSchemeError):
                await fetcher.fetch("ftp://example.com/")
        assert calls == []


class TestFetchPage:
    """Test the fetch_page convenience wrapper."""

    @pytest.mark.asyncio
    async def test_fetch_page(self):
        """Test one-off fetch with a short-lived client."""
        result = await fetch_page("https://example.com/", transport=_transport(html="hi"))
        assert result.html == "hi"


class TestErrorRetryable:
    """Test retryable flags on HTTP status errors."""

    def test_server_errors_are_retryable(self):
        assert HttpStatusError(502).retryable is True
        assert HttpStatusError(429).retryable is True

    def test_client_errors_are_not_retryable(self):
        assert HttpStatusError(404).retryable is False
        assert HttpStatusError(403).retryable is False

    def test_str_includes_context(self):
        """Test string form joins message, url and category."""
        error = HttpStatusError(404, url="https://example.com/x")
        assert str(error) == "Page not found | url=https://example.com/x | category=page_not_found"
