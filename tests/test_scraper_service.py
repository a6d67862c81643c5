"""Tests for the scraper service and the interactive session workflow."""

import asyncio
from unittest.mock import patch

import pytest

from app.core.errors import (
    ExtractionError,
    FetchErrorCategory,
    HttpStatusError,
    ParsingError,
    ScrapeValidationError,
    SessionNotFoundError,
    UnsupportedSchemeError,
)
from app.services.dom import parse_html
from app.services.scraper_service import (
    MAX_ACTION_LENGTH,
    ScraperService,
    get_scraper_service,
    prepare_session_url,
)

CHALLENGE_HTML = """
<html><head><title>Just a moment...</title></head>
<body>Checking your browser before accessing the site.</body></html>
"""


class TestPrepareSessionUrl:
    """Test session URL normalization."""

    def test_adds_https_to_bare_host(self):
        assert prepare_session_url("example.com") == "https://example.com"

    def test_keeps_explicit_scheme(self):
        assert prepare_session_url("http://example.com/a") == "http://example.com/a"

    def test_rejects_other_schemes(self):
        with pytest.raises(UnsupportedSchemeError):
            prepare_session_url("ftp://example.com")

    def test_rejects_empty(self):
        with pytest.raises(ScrapeValidationError):
            prepare_session_url("  ")


class TestScrape:
    """Test one-shot scraping."""

    @pytest.mark.asyncio
    async def test_example_page(self, scraper_service):
        page = await scraper_service.scrape("https://example.com/")
        assert page.url == "https://example.com/"
        assert page.title == "Example Domain"
        assert "illustrative examples" in page.content
        assert [link.url for link in page.links] == ["https://www.iana.org/domains/example"]
        assert page.images == []
        assert page.metadata.description == "Illustrative example page"
        assert page.metadata.language == "en"
        assert page.metadata.word_count > 0
        assert page.metadata.companies == []

    @pytest.mark.asyncio
    async def test_directory_companies_in_metadata(self, scraper_service):
        page = await scraper_service.scrape("https://expo.test/exhibitors")
        assert [c.name for c in page.metadata.companies] == ["Acme Biotech", "Nordic Payments"]

    @pytest.mark.asyncio
    async def test_http_error_propagates(self, scraper_service):
        with pytest.raises(HttpStatusError) as exc_info:
            await scraper_service.scrape("https://example.com/missing")
        assert exc_info.value.category is FetchErrorCategory.PAGE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unparseable_page_degrades(self, scraper_service):
        """Test a parser failure yields an empty page instead of an error."""
        with patch(
            "app.services.scraper_service.parse_html",
            side_effect=[ParsingError("Could not parse page markup"), parse_html("")],
        ):
            page = await scraper_service.scrape("https://example.com/")
        assert page.title == "No title found"
        assert page.links == []

    @pytest.mark.asyncio
    async def test_invalid_url(self, scraper_service):
        with pytest.raises(UnsupportedSchemeError):
            await scraper_service.scrape("javascript:alert(1)")


class TestStartSession:
    """Test session creation through the service."""

    def test_start_session(self, scraper_service, session_manager):
        session = scraper_service.start_session("example.com", max_results=5)
        assert session.url == "https://example.com"
        assert session.status == "initialized"
        assert session_manager.get_session(session.id).max_results == 5

    def test_invalid_url_creates_nothing(self, scraper_service, session_manager):
        with pytest.raises(UnsupportedSchemeError):
            scraper_service.start_session("ftp://example.com")
        assert session_manager.get_all_active_sessions() == []


class TestAnalyzeSession:
    """Test the analyze step."""

    @pytest.mark.asyncio
    async def test_analyze_example(self, scraper_service, session_manager):
        session = scraper_service.start_session("https://example.com/")
        outcome = await scraper_service.analyze_session(session.id)

        assert outcome.session.status == "awaiting_instructions"
        assert outcome.snapshot.title == "Example Domain"
        assert outcome.snapshot.description == "Illustrative example page"
        assert outcome.snapshot.page_analysis.total_links == 1
        assert outcome.snapshot.found_companies == []
        assert [link.type for link in outcome.snapshot.found_links] == ["navigation"]
        assert any(e.type == "paragraphs" for e in outcome.available_elements)
        assert outcome.available_links[0].type == "external"

        stored = session_manager.get_session(session.id)
        assert stored.current_page.title == "Example Domain"
        assert stored.extraction_history == []

    @pytest.mark.asyncio
    async def test_analyze_directory(self, scraper_service):
        session = scraper_service.start_session("https://expo.test/exhibitors")
        outcome = await scraper_service.analyze_session(session.id)
        assert [c.name for c in outcome.snapshot.found_companies] == [
            "Acme Biotech",
            "Nordic Payments",
        ]
        assert outcome.snapshot.page_analysis.has_pagination is True
        assert outcome.snapshot.found_links[0].priority == 10

    @pytest.mark.asyncio
    async def test_anti_bot_page_pauses_session(self, scraper_service, pages):
        pages["https://bot.test/"] = (200, CHALLENGE_HTML)
        session = scraper_service.start_session("https://bot.test/")
        outcome = await scraper_service.analyze_session(session.id)
        assert outcome.session.status == "paused"
        assert outcome.snapshot.page_analysis.antie_bot_detection is True

    @pytest.mark.asyncio
    async def test_fetch_failure_sets_error(self, scraper_service, session_manager):
        session = scraper_service.start_session("https://gone.test/")
        with pytest.raises(HttpStatusError):
            await scraper_service.analyze_session(session.id)
        stored = session_manager.get_session(session.id)
        assert stored.status == "error"
        assert stored.extraction_history == []

    @pytest.mark.asyncio
    async def test_processing_failure_sets_error(self, scraper_service, session_manager):
        """Test an analyzer crash leaves the session in error, not analyzing."""
        session = scraper_service.start_session("https://example.com/")
        with patch(
            "app.services.scraper_service.analyze_page", side_effect=RuntimeError("boom")
        ):
            with pytest.raises(ExtractionError, match="Page analysis failed"):
                await scraper_service.analyze_session(session.id)
        stored = session_manager.get_session(session.id)
        assert stored.status == "error"
        assert stored.current_page is None
        assert stored.extraction_history == []

    @pytest.mark.asyncio
    async def test_unknown_session(self, scraper_service, session_manager):
        with pytest.raises(SessionNotFoundError):
            await scraper_service.analyze_session("session_0_missing")
        assert "session_0_missing" not in session_manager._step_locks


class TestExtractSession:
    """Test the extract step."""

    @pytest.mark.asyncio
    async def test_extract_after_analyze(self, scraper_service, session_manager):
        session = scraper_service.start_session("https://expo.test/exhibitors")
        await scraper_service.analyze_session(session.id)
        outcome = await scraper_service.extract_session(session.id, "Get company names")

        assert outcome.step_number == 1
        assert outcome.session.status == "completed"
        assert [c.name for c in outcome.companies] == ["Acme Biotech", "Nordic Payments"]
        assert outcome.links
        assert outcome.summary.total_items == len(outcome.items)

        history = session_manager.get_extraction_history(session.id)
        assert len(history) == 1
        step = history[0]
        assert step.action == "extract: Get company names"
        assert step.result.companies_found == 2
        assert step.result.errors is None
        assert step.result.metadata["itemsFound"] == outcome.summary.total_items
        assert [c["name"] for c in step.result.metadata["companies"]] == [
            "Acme Biotech",
            "Nordic Payments",
        ]
        assert session_manager.get_session(session.id).instructions == "Get company names"

    @pytest.mark.asyncio
    async def test_extract_without_analyze_uses_session_url(self, scraper_service):
        session = scraper_service.start_session("https://example.com/", instructions="domain info")
        outcome = await scraper_service.extract_session(session.id)
        assert outcome.step_number == 1
        assert outcome.session.instructions == "domain info"
        assert outcome.companies == []

    @pytest.mark.asyncio
    async def test_repeated_extractions_number_steps(self, scraper_service):
        session = scraper_service.start_session("https://example.com/")
        numbers = [
            (await scraper_service.extract_session(session.id, "domain")).step_number
            for _ in range(3)
        ]
        assert numbers == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_concurrent_extractions_are_serialized(self, scraper_service, session_manager):
        session = scraper_service.start_session("https://example.com/")
        results = await asyncio.gather(
            *(scraper_service.extract_session(session.id, "domain") for _ in range(4))
        )
        assert sorted(r.step_number for r in results) == [1, 2, 3, 4]
        history = session_manager.get_extraction_history(session.id)
        assert [s.step_number for s in history] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_fetch_failure_recorded_as_step(self, scraper_service, session_manager):
        session = scraper_service.start_session("https://gone.test/")
        with pytest.raises(HttpStatusError):
            await scraper_service.extract_session(session.id, "companies")

        stored = session_manager.get_session(session.id)
        assert stored.status == "error"
        assert len(stored.extraction_history) == 1
        step = stored.extraction_history[0]
        assert step.result.errors == ["Page not found"]
        assert step.result.metadata == {"category": "page_not_found"}
        assert step.result.companies_found == 0

    @pytest.mark.asyncio
    async def test_processing_failure_recorded_as_step(self, scraper_service, session_manager):
        """Test an error after the fetch still records the attempt and ends in error."""
        session = scraper_service.start_session("https://expo.test/exhibitors")
        with patch(
            "app.services.scraper_service.extract_with_instructions",
            side_effect=ValueError("bad selector state"),
        ):
            with pytest.raises(ExtractionError) as exc_info:
                await scraper_service.extract_session(session.id, "companies")
        assert isinstance(exc_info.value.__cause__, ValueError)

        stored = session_manager.get_session(session.id)
        assert stored.status == "error"
        assert len(stored.extraction_history) == 1
        step = stored.extraction_history[0]
        assert step.result.errors == ["Extraction failed: bad selector state"]
        assert step.result.metadata == {"category": "unknown"}

    @pytest.mark.asyncio
    async def test_extract_recovers_after_processing_failure(self, scraper_service):
        session = scraper_service.start_session("https://expo.test/exhibitors")
        with patch(
            "app.services.scraper_service.extract_with_instructions",
            side_effect=ValueError("boom"),
        ):
            with pytest.raises(ExtractionError):
                await scraper_service.extract_session(session.id, "companies")
        outcome = await scraper_service.extract_session(session.id, "companies")
        assert outcome.step_number == 2
        assert outcome.session.status == "completed"

    @pytest.mark.asyncio
    async def test_action_truncated(self, scraper_service, session_manager):
        session = scraper_service.start_session("https://example.com/")
        await scraper_service.extract_session(session.id, "domain " * 50)
        step = session_manager.get_extraction_history(session.id)[0]
        assert len(step.action) == MAX_ACTION_LENGTH

    @pytest.mark.asyncio
    async def test_settle_delay(self, session_manager, transport):
        service = ScraperService(manager=session_manager, transport=transport, settle_delay=0.01)
        session = service.start_session("https://example.com/")
        outcome = await service.extract_session(session.id, "domain")
        assert outcome.step_number == 1

    @pytest.mark.asyncio
    async def test_unknown_session(self, scraper_service):
        with pytest.raises(SessionNotFoundError):
            await scraper_service.extract_session("session_0_missing", "companies")


class TestSessionCompanies:
    """Test aggregation of companies across a session."""

    @pytest.mark.asyncio
    async def test_deduplicates_across_steps_and_snapshot(self, scraper_service):
        session = scraper_service.start_session("https://expo.test/exhibitors")
        await scraper_service.analyze_session(session.id)
        await scraper_service.extract_session(session.id, "companies")
        await scraper_service.extract_session(session.id, "companies")
        companies = scraper_service.session_companies(session.id)
        assert [c.name for c in companies] == ["Acme Biotech", "Nordic Payments"]

    def test_new_session_has_none(self, scraper_service):
        session = scraper_service.start_session("https://example.com/")
        assert scraper_service.session_companies(session.id) == []

    def test_unknown_session(self, scraper_service):
        with pytest.raises(SessionNotFoundError):
            scraper_service.session_companies("missing")


class TestGetScraperService:
    """Test the process-wide accessor."""

    def test_singleton(self):
        assert get_scraper_service() is get_scraper_service()
