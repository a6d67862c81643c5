"""Request and response schemas for the scrape and session endpoints."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field

from app.models import (
    AvailableLink,
    CamelModel,
    CompanyData,
    ElementInventory,
    ExtractedItem,
    ExtractionMode,
    ExtractionSummary,
    LinkData,
    PageAnalysis,
    PageSnapshot,
    ScrapedPage,
    SessionState,
)


class ScrapeRequest(CamelModel):
    """One-shot scrape request. ``url`` is checked by the endpoint so a
    missing value gets the same error body as a failed scrape."""

    url: Optional[str] = Field(default=None, max_length=2048)


class ScrapeResponse(CamelModel):
    success: Literal[True] = True
    data: ScrapedPage
    scraped_at: datetime


class ScrapeErrorResponse(CamelModel):
    error: Literal[True] = True
    message: str
    url: Optional[str] = None
    # Only populated in development mode
    details: Optional[str] = None


class StartSessionRequest(CamelModel):
    url: str = Field(..., min_length=1, max_length=2048)
    extraction_mode: ExtractionMode = "surface"
    max_results: int = Field(default=50, ge=1, le=500)
    instructions: Optional[str] = Field(default=None, max_length=2000)


class StartSessionResponse(CamelModel):
    session_id: str
    url: str
    status: SessionState
    next_action: str = "Call analyze to inspect the page"


class AnalyzeSessionResponse(CamelModel):
    session_id: str
    status: SessionState
    page_analysis: PageAnalysis
    current_page: PageSnapshot
    available_elements: list[ElementInventory] = Field(default_factory=list)
    available_links: list[AvailableLink] = Field(default_factory=list)


class ExtractRequest(CamelModel):
    # Falls back to the instructions given at session start
    instructions: Optional[str] = Field(default=None, max_length=2000)
    data_selectors: Optional[list[str]] = Field(default=None, max_length=50)


class ExtractResponse(CamelModel):
    session_id: str
    step_number: int
    status: SessionState
    total_results: int
    extracted_data: list[ExtractedItem]
    companies: list[CompanyData]
    links: list[LinkData]
    summary: ExtractionSummary


class SessionSummary(CamelModel):
    id: str
    url: str
    status: SessionState
    extraction_steps: int
    companies_found: int
    created_at: int
    last_updated: int


class SessionListResponse(CamelModel):
    sessions: list[SessionSummary]
    total: int


class CleanupResponse(CamelModel):
    removed: int
    remaining: int


class CompanyReportResponse(CamelModel):
    session_id: str
    report: dict[str, Any]
