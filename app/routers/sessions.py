"""Interactive scraping session router.

A session is started for one URL, analyzed, then extracted from with
free-text instructions any number of times. Every endpoint is keyed by the
opaque session id returned from ``POST /sessions``.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, Response, status
from fastapi.responses import JSONResponse

from app.core.errors import ScrapeError, SessionNotFoundError
from app.models import ScrapingSession, SessionStatus
from app.routers.scrape import scrape_error_response
from app.schemas.scrape import (
    AnalyzeSessionResponse,
    CleanupResponse,
    CompanyReportResponse,
    ExtractRequest,
    ExtractResponse,
    ScrapeErrorResponse,
    SessionListResponse,
    SessionSummary,
    StartSessionRequest,
    StartSessionResponse,
)
from app.services.report_service import build_company_report, companies_to_csv
from app.services.scraper_service import get_scraper_service
from app.services.session_manager import get_session_manager

logger = logging.getLogger(__name__)

router = APIRouter()

SessionId = Annotated[str, Path(min_length=1, max_length=100)]


def _not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Session '{session_id}' not found",
    )


def _summary(session: ScrapingSession) -> SessionSummary:
    return SessionSummary(
        id=session.id,
        url=session.url,
        status=session.status,
        extraction_steps=len(session.extraction_history),
        companies_found=session.companies_found,
        created_at=session.created_at,
        last_updated=session.last_updated,
    )


# ============================================================================
# Static path endpoints MUST be defined before dynamic path endpoints
# ============================================================================


@router.post(
    "/sessions",
    response_model=StartSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a scraping session",
    responses={400: {"model": ScrapeErrorResponse, "description": "Invalid URL"}},
)
async def start_session(request: StartSessionRequest) -> StartSessionResponse | JSONResponse:
    """Create a session for a URL. A missing scheme defaults to https.

    Args:
        request: Target URL plus optional mode, result cap and instructions.

    Returns:
        StartSessionResponse with the new session id.
    """
    try:
        session = get_scraper_service().start_session(
            request.url,
            extraction_mode=request.extraction_mode,
            max_results=request.max_results,
            instructions=request.instructions,
        )
    except ScrapeError as e:
        return scrape_error_response(e)
    return StartSessionResponse(session_id=session.id, url=session.url, status=session.status)


@router.get(
    "/sessions",
    response_model=SessionListResponse,
    status_code=status.HTTP_200_OK,
    summary="List active sessions",
)
async def list_sessions() -> SessionListResponse:
    sessions = get_session_manager().get_all_active_sessions()
    return SessionListResponse(sessions=[_summary(s) for s in sessions], total=len(sessions))


@router.post(
    "/sessions/cleanup",
    response_model=CleanupResponse,
    status_code=status.HTTP_200_OK,
    summary="Remove stale sessions",
)
async def cleanup_sessions(
    max_age_hours: Annotated[float, Query(alias="maxAgeHours", ge=0, le=24 * 365)] = 24,
) -> CleanupResponse:
    """Delete sessions not updated within ``max_age_hours``.

    Args:
        max_age_hours: Age threshold in hours (default 24).

    Returns:
        CleanupResponse with removed and remaining counts.
    """
    manager = get_session_manager()
    removed = manager.cleanup_old_sessions(max_age_hours)
    return CleanupResponse(removed=removed, remaining=len(manager.get_all_active_sessions()))


@router.get(
    "/sessions/{session_id}",
    response_model=ScrapingSession,
    status_code=status.HTTP_200_OK,
    summary="Get a session",
    responses={404: {"description": "Session not found"}},
)
async def get_session(session_id: SessionId) -> ScrapingSession:
    session = get_session_manager().get_session(session_id)
    if session is None:
        raise _not_found(session_id)
    return session


@router.get(
    "/sessions/{session_id}/status",
    response_model=SessionStatus,
    status_code=status.HTTP_200_OK,
    summary="Poll session status",
    description="Lightweight projection; unknown ids answer with exists=false.",
)
async def get_session_status(session_id: SessionId) -> SessionStatus:
    return get_session_manager().get_session_status(session_id)


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a session",
    responses={404: {"description": "Session not found"}},
)
async def delete_session(session_id: SessionId) -> Response:
    if not get_session_manager().delete_session(session_id):
        raise _not_found(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/sessions/{session_id}/analyze",
    response_model=AnalyzeSessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Analyze the session's page",
    responses={
        404: {"description": "Session not found"},
        400: {"model": ScrapeErrorResponse},
        500: {"model": ScrapeErrorResponse},
    },
)
async def analyze_session(session_id: SessionId) -> AnalyzeSessionResponse | JSONResponse:
    """Fetch the page, detect structure and recommend next steps.

    Args:
        session_id: Session to analyze.

    Returns:
        AnalyzeSessionResponse with the page analysis and snapshot.

    Raises:
        HTTPException: 404 if the session does not exist.
    """
    try:
        outcome = await get_scraper_service().analyze_session(session_id)
    except SessionNotFoundError:
        raise _not_found(session_id)
    except ScrapeError as e:
        return scrape_error_response(e)

    return AnalyzeSessionResponse(
        session_id=session_id,
        status=outcome.session.status,
        page_analysis=outcome.snapshot.page_analysis,
        current_page=outcome.snapshot,
        available_elements=outcome.available_elements,
        available_links=outcome.available_links,
    )


@router.post(
    "/sessions/{session_id}/extract",
    response_model=ExtractResponse,
    status_code=status.HTTP_200_OK,
    summary="Extract data with instructions",
    responses={
        404: {"description": "Session not found"},
        400: {"model": ScrapeErrorResponse},
        500: {"model": ScrapeErrorResponse},
    },
)
async def extract_session(
    session_id: SessionId, request: ExtractRequest
) -> ExtractResponse | JSONResponse:
    """Run one extraction step and record it in the session history.

    Args:
        session_id: Session to extract from.
        request: Instructions and optional explicit selectors.

    Returns:
        ExtractResponse with extracted items, companies and ranked links.

    Raises:
        HTTPException: 404 if the session does not exist.
    """
    try:
        outcome = await get_scraper_service().extract_session(
            session_id,
            instructions=request.instructions,
            data_selectors=request.data_selectors,
        )
    except SessionNotFoundError:
        raise _not_found(session_id)
    except ScrapeError as e:
        return scrape_error_response(e)

    return ExtractResponse(
        session_id=session_id,
        step_number=outcome.step_number,
        status=outcome.session.status,
        total_results=len(outcome.items),
        extracted_data=outcome.items,
        companies=outcome.companies,
        links=outcome.links,
        summary=outcome.summary,
    )


@router.get(
    "/sessions/{session_id}/report",
    response_model=CompanyReportResponse,
    status_code=status.HTTP_200_OK,
    summary="Company data report",
    responses={404: {"description": "Session not found"}},
)
async def session_report(session_id: SessionId) -> CompanyReportResponse:
    try:
        companies = get_scraper_service().session_companies(session_id)
    except SessionNotFoundError:
        raise _not_found(session_id)
    return CompanyReportResponse(session_id=session_id, report=build_company_report(companies))


@router.get(
    "/sessions/{session_id}/export.csv",
    status_code=status.HTTP_200_OK,
    summary="Export companies as CSV",
    response_class=Response,
    responses={
        200: {"content": {"text/csv": {}}},
        404: {"description": "Session not found"},
    },
)
async def export_session_csv(session_id: SessionId) -> Response:
    try:
        companies = get_scraper_service().session_companies(session_id)
    except SessionNotFoundError:
        raise _not_found(session_id)
    return Response(
        content=companies_to_csv(companies),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{session_id}.csv"'},
    )
