"""Routers package for API endpoints.

This package contains the FastAPI routers for the scraping service.
"""

from app.routers import scrape, sessions

__all__ = ["scrape", "sessions"]
