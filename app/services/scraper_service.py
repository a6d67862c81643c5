"""One-shot scraping pipeline and the interactive session workflow.

The workflow ties the session manager to the fetcher and the page
heuristics: ``start`` creates a session, ``analyze`` loads the page and
attaches a snapshot, ``extract`` runs instruction-driven extraction and
records the attempt as an extraction step.
"""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

from app.core import config
from app.core.errors import (
    ExtractionError,
    ParsingError,
    ScrapeError,
    SessionNotFoundError,
)
from app.core.heuristics import DEFAULT_HEURISTICS, HeuristicsConfig
from app.core.log_utils import sanitize_for_log
from app.models import (
    AvailableLink,
    CompanyData,
    ElementInventory,
    ExtractedItem,
    ExtractionMode,
    ExtractionResult,
    ExtractionSummary,
    LinkData,
    PageSnapshot,
    ScrapedPage,
    ScrapingSession,
)
from app.services.company_extractor import CompanyExtractor
from app.services.content_normalizer import (
    extract_images,
    extract_links,
    extract_main_content,
    extract_metadata,
    extract_title,
)
from app.services.dom import PageTree, parse_html
from app.services.instruction_extractor import (
    describe_page_elements,
    extract_with_instructions,
    list_available_links,
    summarize_items,
)
from app.services.link_classifier import extract_relevant_links
from app.services.page_analyzer import analyze_page
from app.services.page_fetcher import FetchResult, PageFetcher, validate_url
from app.services.session_manager import ScrapingSessionManager, get_session_manager

logger = logging.getLogger(__name__)

MAX_ACTION_LENGTH = 100


def prepare_session_url(url: str) -> str:
    """Add ``https://`` to bare hosts and validate the result."""
    url = (url or "").strip()
    if url and "://" not in url:
        url = f"https://{url}"
    return validate_url(url)


@dataclass
class SessionAnalysis:
    """Outcome of analyzing a session's target page."""

    session: ScrapingSession
    snapshot: PageSnapshot
    available_elements: list[ElementInventory] = field(default_factory=list)
    available_links: list[AvailableLink] = field(default_factory=list)


@dataclass
class SessionExtraction:
    """Outcome of one instruction-driven extraction step."""

    session: ScrapingSession
    step_number: int
    items: list[ExtractedItem]
    companies: list[CompanyData]
    links: list[LinkData]
    summary: ExtractionSummary


class ScraperService:
    """Scrapes pages and drives interactive scraping sessions.

    Args:
        manager: Session manager; defaults to the process-wide one.
        heuristics: Vocabulary for analysis, link ranking and extraction.
        transport: Optional httpx transport, used by tests to serve pages.
        settle_delay: Seconds to wait before re-fetching a page for extraction.
    """

    def __init__(
        self,
        manager: ScrapingSessionManager | None = None,
        heuristics: HeuristicsConfig = DEFAULT_HEURISTICS,
        transport: httpx.AsyncBaseTransport | None = None,
        settle_delay: float = config.SETTLE_DELAY_SECONDS,
    ) -> None:
        self.manager = manager or get_session_manager()
        self.heuristics = heuristics
        self.extractor = CompanyExtractor(heuristics)
        self.settle_delay = settle_delay
        self._transport = transport

    async def _fetch(self, url: str, timeout: float) -> FetchResult:
        async with PageFetcher(timeout=timeout, transport=self._transport) as fetcher:
            return await fetcher.fetch(url)

    def _parse(self, result: FetchResult) -> PageTree:
        try:
            return parse_html(result.html)
        except ParsingError as e:
            # Continue with an empty document so the step still completes
            logger.warning(f"Unparseable page at {sanitize_for_log(result.final_url)}: {e}")
            return parse_html("")

    async def scrape(self, url: str) -> ScrapedPage:
        """
        Fetch a page and return its title, content, links, images and metadata.

        Args:
            url: Absolute http(s) URL.

        Returns:
            ScrapedPage with companies found on the page in its metadata.

        Raises:
            ScrapeError: On invalid input or fetch failure.
        """
        url = validate_url(url)
        logger.info(f"Scraping {sanitize_for_log(url)}")
        result = await self._fetch(url, config.SCRAPE_TIMEOUT)

        tree = self._parse(result)
        content = extract_main_content(tree, self.heuristics)
        metadata = extract_metadata(tree, content)
        metadata.companies = self.extractor.extract(tree, result.final_url)

        page = ScrapedPage(
            url=url,
            title=extract_title(tree),
            content=content,
            links=extract_links(tree, result.final_url),
            images=extract_images(tree, result.final_url),
            metadata=metadata,
        )
        logger.info(
            f"Scraped {sanitize_for_log(url)}: {len(page.links)} links, "
            f"{len(page.images)} images, {len(metadata.companies)} companies"
        )
        return page

    def start_session(
        self,
        url: str,
        extraction_mode: ExtractionMode = "surface",
        max_results: int = 50,
        instructions: str | None = None,
    ) -> ScrapingSession:
        """Validate the target URL and create a session for it."""
        return self.manager.create_session(
            prepare_session_url(url),
            extraction_mode=extraction_mode,
            max_results=max_results,
            instructions=instructions,
        )

    def _require(self, session_id: str) -> ScrapingSession:
        session = self.manager.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _set_status(self, session_id: str, updates: dict) -> ScrapingSession:
        session = self.manager.update_session(session_id, updates)
        if session is None:
            # Deleted while a step was running
            raise SessionNotFoundError(session_id)
        return session

    async def analyze_session(self, session_id: str) -> SessionAnalysis:
        """
        Load the session's page and attach a fresh snapshot and analysis.

        Moves the session to ``awaiting_instructions``, or ``paused`` when the
        page looks like a bot challenge. A fetch or processing failure moves it
        to ``error``.

        Args:
            session_id: Session to analyze.

        Returns:
            SessionAnalysis with the snapshot and an element inventory.

        Raises:
            SessionNotFoundError: If the session does not exist.
            ScrapeError: If the page could not be fetched or processed.
        """
        self._require(session_id)
        async with self.manager.step_lock(session_id):
            session = self._require(session_id)
            self._set_status(session_id, {"status": "analyzing"})
            logger.info(f"Analyzing session {session_id} ({sanitize_for_log(session.url)})")

            try:
                result = await self._fetch(session.url, config.SESSION_FETCH_TIMEOUT)
            except ScrapeError as e:
                logger.error(f"Analysis fetch failed for session {session_id}: {e}")
                self._set_status(session_id, {"status": "error"})
                raise

            try:
                tree = self._parse(result)
                analysis = analyze_page(tree, self.heuristics)
                meta = extract_metadata(tree)
                snapshot = PageSnapshot(
                    url=result.final_url,
                    title=extract_title(tree),
                    description=meta.description,
                    found_links=extract_relevant_links(
                        tree,
                        result.final_url,
                        max_links=session.max_results,
                        config=self.heuristics,
                    ),
                    found_companies=self.extractor.extract(
                        tree, result.final_url, max_results=session.max_results
                    ),
                    page_analysis=analysis,
                )
                available_elements = describe_page_elements(tree)
                available_links = list_available_links(tree, result.final_url)
            except Exception as e:
                logger.exception(f"Analysis failed for session {session_id}")
                self._set_status(session_id, {"status": "error"})
                raise ExtractionError(
                    "Page analysis failed", url=result.final_url, detail=repr(e)
                ) from e

            status = "paused" if analysis.antie_bot_detection else "awaiting_instructions"
            updated = self._set_status(session_id, {"current_page": snapshot, "status": status})

            return SessionAnalysis(
                session=updated,
                snapshot=snapshot,
                available_elements=available_elements,
                available_links=available_links,
            )

    async def extract_session(
        self,
        session_id: str,
        instructions: str | None = None,
        data_selectors: list[str] | None = None,
    ) -> SessionExtraction:
        """
        Run one extraction step against the session's current page.

        Every attempt, successful or not, is appended to the session's
        extraction history. Success moves the session to ``completed``;
        a fetch or processing failure is recorded in the step's errors and
        moves it to ``error``.

        Args:
            session_id: Session to extract from.
            instructions: What to extract; defaults to the session's instructions.
            data_selectors: Explicit CSS selectors overriding keyword-derived ones.

        Returns:
            SessionExtraction with items, companies, ranked links and a summary.

        Raises:
            SessionNotFoundError: If the session does not exist.
            ScrapeError: If the page could not be fetched or processed.
        """
        self._require(session_id)
        async with self.manager.step_lock(session_id):
            session = self._require(session_id)
            instructions = instructions or session.instructions or ""
            self._set_status(session_id, {"status": "continuing", "instructions": instructions})
            target = session.current_page.url if session.current_page else session.url
            action = f"extract: {instructions}"[:MAX_ACTION_LENGTH]
            logger.info(
                f"Extracting for session {session_id}: {sanitize_for_log(instructions)}"
            )

            if self.settle_delay > 0:
                await asyncio.sleep(self.settle_delay)

            try:
                result = await self._fetch(target, config.SESSION_FETCH_TIMEOUT)
            except ScrapeError as e:
                self.manager.add_extraction_step(
                    session_id,
                    action,
                    target,
                    ExtractionResult(
                        errors=[e.message], metadata={"category": e.category.value}
                    ),
                )
                self._set_status(session_id, {"status": "error"})
                raise

            try:
                tree = self._parse(result)
                items = extract_with_instructions(
                    tree,
                    result.final_url,
                    instructions,
                    data_selectors=data_selectors,
                    max_results=session.max_results,
                )
                companies = self.extractor.extract(
                    tree, result.final_url, max_results=session.max_results
                )
                links = extract_relevant_links(
                    tree, result.final_url, max_links=session.max_results, config=self.heuristics
                )
                summary = summarize_items(items)
            except Exception as e:
                logger.exception(f"Extraction failed for session {session_id}")
                error = ExtractionError(
                    "Extraction failed", url=result.final_url, detail=repr(e)
                )
                self.manager.add_extraction_step(
                    session_id,
                    action,
                    result.final_url,
                    ExtractionResult(
                        errors=[f"{error.message}: {e}"],
                        metadata={"category": error.category.value},
                    ),
                )
                self._set_status(session_id, {"status": "error"})
                raise error from e

            self.manager.add_extraction_step(
                session_id,
                action,
                result.final_url,
                ExtractionResult(
                    companies_found=len(companies),
                    links_found=len(links),
                    metadata={
                        "itemsFound": summary.total_items,
                        "companies": [c.model_dump(mode="json") for c in companies],
                    },
                ),
            )
            updated = self._set_status(session_id, {"status": "completed"})
            return SessionExtraction(
                session=updated,
                step_number=len(updated.extraction_history),
                items=items,
                companies=companies,
                links=links,
                summary=summary,
            )

    def session_companies(self, session_id: str) -> list[CompanyData]:
        """All companies seen by a session, deduplicated by name.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        session = self._require(session_id)
        found: dict[str, CompanyData] = {}
        for step in session.extraction_history:
            for raw in (step.result.metadata or {}).get("companies", []):
                company = CompanyData.model_validate(raw)
                found.setdefault(company.name.lower(), company)
        if session.current_page:
            for company in session.current_page.found_companies:
                found.setdefault(company.name.lower(), company)
        return list(found.values())


_scraper_service: ScraperService | None = None


def get_scraper_service() -> ScraperService:
    """Get the singleton ScraperService instance."""
    global _scraper_service
    if _scraper_service is None:
        _scraper_service = ScraperService()
    return _scraper_service
