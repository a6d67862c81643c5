"""Exception types raised by the scraping pipeline.

Fetch failures are classified into a fixed set of categories, each with a
human-readable message, so callers never have to interpret raw status codes.

Example:
    >>> try:
    ...     await fetcher.fetch(url)
    ... except ScrapeError as e:
    ...     logger.error(f"Scrape failed: {e}")
"""

from enum import Enum


class FetchErrorCategory(str, Enum):
    """Classified reasons a page could not be fetched."""

    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    FORBIDDEN = "forbidden"
    PAGE_NOT_FOUND = "page_not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    UNKNOWN = "unknown"

    @property
    def message(self) -> str:
        return CATEGORY_MESSAGES[self]


CATEGORY_MESSAGES: dict[FetchErrorCategory, str] = {
    FetchErrorCategory.NOT_FOUND: "Website not found or domain does not exist",
    FetchErrorCategory.TIMEOUT: "Request timeout - website took too long to respond",
    FetchErrorCategory.FORBIDDEN: "Access forbidden - website blocks scraping",
    FetchErrorCategory.PAGE_NOT_FOUND: "Page not found",
    FetchErrorCategory.RATE_LIMITED: "Rate limited - too many requests",
    FetchErrorCategory.SERVER_ERROR: "Server error on target website",
    FetchErrorCategory.UNSUPPORTED_SCHEME: "Only HTTP and HTTPS URLs are supported",
    FetchErrorCategory.UNKNOWN: "Failed to scrape website",
}


def category_for_status(status_code: int) -> FetchErrorCategory:
    """Map a final HTTP status code to a fetch error category.

    Args:
        status_code: HTTP status of the final response.

    Returns:
        The matching category, ``UNKNOWN`` for unlisted 4xx codes.
    """
    if status_code == 403:
        return FetchErrorCategory.FORBIDDEN
    if status_code == 404:
        return FetchErrorCategory.PAGE_NOT_FOUND
    if status_code == 429:
        return FetchErrorCategory.RATE_LIMITED
    if status_code >= 500:
        return FetchErrorCategory.SERVER_ERROR
    return FetchErrorCategory.UNKNOWN


class ScrapeError(Exception):
    """Base exception for all scraping errors.

    Attributes:
        message: Human-readable error message
        url: URL being scraped when the error occurred
        category: Classified fetch failure, if any
        detail: Underlying error text, exposed only in development mode
    """

    retryable = False

    def __init__(
        self,
        message: str,
        url: str | None = None,
        category: FetchErrorCategory = FetchErrorCategory.UNKNOWN,
        detail: str | None = None,
    ):
        self.message = message
        self.url = url
        self.category = category
        self.detail = detail
        super().__init__(message)

    def __str__(self) -> str:
        """String representation with context."""
        parts = [self.message]
        if self.url:
            parts.append(f"url={self.url}")
        if self.category is not FetchErrorCategory.UNKNOWN:
            parts.append(f"category={self.category.value}")
        return " | ".join(parts)


class TransportError(ScrapeError):
    """DNS, timeout, TLS or connection failure.

    Always safe for the caller to retry; the core never retries itself.
    """

    retryable = True


class HttpStatusError(ScrapeError):
    """The final response carried a 4xx or 5xx status."""

    def __init__(self, status_code: int, url: str | None = None, detail: str | None = None):
        category = category_for_status(status_code)
        message = category.message
        if category is FetchErrorCategory.UNKNOWN:
            message = f"Request failed with status code {status_code}"
        super().__init__(message, url=url, category=category, detail=detail)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code == 429 or self.status_code >= 500


class ParsingError(ScrapeError):
    """The document could not be turned into a queryable tree."""


class ExtractionError(ScrapeError):
    """A fetched page could not be analyzed or extracted from."""


class ScrapeValidationError(ScrapeError):
    """Bad caller input such as a missing or malformed URL."""


class UnsupportedSchemeError(ScrapeValidationError):
    """URL scheme other than http or https."""

    def __init__(self, url: str | None = None):
        super().__init__(
            FetchErrorCategory.UNSUPPORTED_SCHEME.message,
            url=url,
            category=FetchErrorCategory.UNSUPPORTED_SCHEME,
        )


class SessionNotFoundError(Exception):
    """Raised by the interactive workflow when a session id is unknown."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")
