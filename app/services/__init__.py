"""Services package for the interactive scraping service."""

from app.services.company_extractor import CompanyExtractor
from app.services.page_fetcher import PageFetcher, fetch_page
from app.services.scraper_service import ScraperService, get_scraper_service
from app.services.session_manager import ScrapingSessionManager, get_session_manager

__all__ = [
    "CompanyExtractor",
    "PageFetcher",
    "fetch_page",
    "ScraperService",
    "get_scraper_service",
    "ScrapingSessionManager",
    "get_session_manager",
]
