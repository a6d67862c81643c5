"""Scrape router.

One-shot scraping of a single page. Errors are returned as
``{"error": true, "message": ..., "url": ...}`` bodies with 400 for bad
input or client-side upstream statuses and 500 for everything else.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from app.core import config
from app.core.errors import HttpStatusError, ScrapeError, ScrapeValidationError
from app.core.log_utils import sanitize_for_log
from app.schemas.scrape import ScrapeErrorResponse, ScrapeRequest, ScrapeResponse
from app.services.scraper_service import get_scraper_service

logger = logging.getLogger(__name__)

router = APIRouter()


def status_for_error(error: ScrapeError) -> int:
    """HTTP status returned to our caller for a scrape failure."""
    if isinstance(error, ScrapeValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, HttpStatusError) and error.status_code < 500:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(
    message: str,
    url: str | None,
    status_code: int,
    details: str | None = None,
) -> JSONResponse:
    body = ScrapeErrorResponse(
        message=message,
        url=url,
        details=details if config.is_development() else None,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def scrape_error_response(error: ScrapeError) -> JSONResponse:
    return error_response(
        error.message, error.url, status_for_error(error), details=error.detail or str(error)
    )


async def _scrape(url: str | None) -> ScrapeResponse | JSONResponse:
    if not url or not url.strip():
        return error_response("URL is required", None, status.HTTP_400_BAD_REQUEST)

    try:
        page = await get_scraper_service().scrape(url)
    except ScrapeError as e:
        logger.warning(f"Scrape of {sanitize_for_log(url)} failed: {e}")
        return scrape_error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error scraping {sanitize_for_log(url)}")
        return error_response(
            "Internal server error",
            url,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=repr(e),
        )

    return ScrapeResponse(data=page, scraped_at=datetime.now(timezone.utc))


@router.post(
    "/scrape",
    response_model=ScrapeResponse,
    status_code=status.HTTP_200_OK,
    summary="Scrape a page",
    description="Fetch a page and return its title, main content, links, images and metadata.",
    responses={
        400: {"model": ScrapeErrorResponse, "description": "Invalid URL or page refused"},
        500: {"model": ScrapeErrorResponse, "description": "Network or upstream server failure"},
    },
)
async def scrape_page(request: ScrapeRequest) -> ScrapeResponse | JSONResponse:
    """Scrape the page at ``request.url``.

    Args:
        request: Body with the URL to scrape.

    Returns:
        ScrapeResponse on success, an error body otherwise.
    """
    return await _scrape(request.url)


@router.get(
    "/scrape",
    response_model=ScrapeResponse,
    status_code=status.HTTP_200_OK,
    summary="Scrape a page (query string)",
    responses={
        400: {"model": ScrapeErrorResponse},
        500: {"model": ScrapeErrorResponse},
    },
)
async def scrape_page_get(
    url: Annotated[str | None, Query(max_length=2048)] = None,
) -> ScrapeResponse | JSONResponse:
    """Same as POST /scrape with the URL in the query string."""
    return await _scrape(url)
