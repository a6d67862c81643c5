"""Page fetcher that retrieves raw HTML with browser-like headers."""

import logging
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from app.core import config
from app.core.errors import (
    FetchErrorCategory,
    HttpStatusError,
    ScrapeValidationError,
    TransportError,
    UnsupportedSchemeError,
)

logger = logging.getLogger(__name__)

# Desktop Chrome fingerprint; some directories reject anything less
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate, br",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

ALLOWED_SCHEMES = ("http", "https")

DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "no address associated",
    "temporary failure in name resolution",
    "name resolution",
)


@dataclass
class FetchResult:
    """Raw page retrieved from a URL."""

    html: str
    final_url: str
    status_code: int


def validate_url(url: str) -> str:
    """Check that a URL is an absolute http(s) URL.

    Args:
        url: Candidate URL.

    Returns:
        The stripped URL.

    Raises:
        UnsupportedSchemeError: If the scheme is not http or https.
        ScrapeValidationError: If the URL is empty or has no host.
    """
    url = (url or "").strip()
    if not url:
        raise ScrapeValidationError("URL is required")
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ScrapeValidationError("Invalid URL format", url=url, detail=str(e)) from e
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise UnsupportedSchemeError(url=url)
    if not parsed.netloc:
        raise ScrapeValidationError("Invalid URL format", url=url)
    return url


class PageFetcher:
    """Fetches HTML pages over HTTP.

    Use as an async context manager so the underlying client is closed::

        async with PageFetcher(timeout=30) as fetcher:
            result = await fetcher.fetch("https://example.com")
    """

    def __init__(
        self,
        timeout: float = config.SCRAPE_TIMEOUT,
        max_redirects: int = config.MAX_REDIRECTS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_redirects = max_redirects
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "PageFetcher":
        """Enter async context and create HTTP client."""
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=self.max_redirects,
            headers=BROWSER_HEADERS,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context and close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self, url: str, *, allowed_statuses: tuple[int, ...] = ()
    ) -> FetchResult:
        """
        Fetch a page and return its HTML.

        Args:
            url: Absolute http(s) URL.
            allowed_statuses: Status codes >= 400 to accept instead of failing.

        Returns:
            FetchResult with body, final URL after redirects and status code.

        Raises:
            ScrapeValidationError: For malformed or non-http URLs.
            TransportError: For DNS, timeout and connection failures.
            HttpStatusError: For a final status >= 400 not explicitly allowed.
        """
        if not self._client:
            raise RuntimeError(
                "Fetcher not initialized. Use 'async with' context manager."
            )
        url = validate_url(url)

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise TransportError(
                FetchErrorCategory.TIMEOUT.message,
                url=url,
                category=FetchErrorCategory.TIMEOUT,
                detail=str(e),
            ) from e
        except httpx.ConnectError as e:
            detail = str(e)
            if any(marker in detail.lower() for marker in DNS_FAILURE_MARKERS):
                raise TransportError(
                    FetchErrorCategory.NOT_FOUND.message,
                    url=url,
                    category=FetchErrorCategory.NOT_FOUND,
                    detail=detail,
                ) from e
            raise TransportError(
                f"Connection failed: {detail}" if detail else FetchErrorCategory.UNKNOWN.message,
                url=url,
                detail=detail,
            ) from e
        except httpx.TooManyRedirects as e:
            raise TransportError(
                f"Too many redirects (max {self.max_redirects})", url=url, detail=str(e)
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                str(e) or FetchErrorCategory.UNKNOWN.message, url=url, detail=repr(e)
            ) from e

        final_url = str(response.url)
        if response.status_code >= 400 and response.status_code not in allowed_statuses:
            logger.info(f"Fetch of {url} failed with status {response.status_code}")
            raise HttpStatusError(
                response.status_code, url=url, detail=response.reason_phrase
            )

        logger.debug(
            "Fetched %s -> %s (%d, %d bytes)",
            url,
            final_url,
            response.status_code,
            len(response.content),
        )
        return FetchResult(
            html=response.text, final_url=final_url, status_code=response.status_code
        )


async def fetch_page(
    url: str,
    timeout: float = config.SCRAPE_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchResult:
    """Fetch one page with a short-lived client."""
    async with PageFetcher(timeout=timeout, transport=transport) as fetcher:
        return await fetcher.fetch(url)
