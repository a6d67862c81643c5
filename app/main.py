"""FastAPI application for the interactive scraping service.

This module provides the main FastAPI application instance with CORS
middleware configuration, router registration and the background task
that removes stale scraping sessions.
"""

# Load environment variables before any other imports
from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core import config
from app.routers import scrape, sessions

# Configure logging
logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

# API version and metadata
API_VERSION = "0.1.0"
API_TITLE = "Tetika Scraper API"
API_DESCRIPTION = """
Interactive web scraping API.

This API provides endpoints for:
- One-shot page scraping (title, content, links, images, companies)
- Multi-step scraping sessions with heuristic page analysis
- Instruction-driven extraction with ranked links and company records
- Company reports and CSV export per session
"""


async def _cleanup_loop(interval: float, max_age_hours: float) -> None:
    """Periodically remove sessions that have not been updated recently."""
    from app.services.session_manager import get_session_manager

    while True:
        await asyncio.sleep(interval)
        removed = get_session_manager().cleanup_old_sessions(max_age_hours)
        if removed:
            logger.info(f"Background cleanup removed {removed} stale sessions")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Starts the stale-session cleanup task on startup and cancels it on
    shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup is complete.
    """
    cleanup_task: asyncio.Task | None = None
    if config.SESSION_CLEANUP_INTERVAL_SECONDS > 0:
        cleanup_task = asyncio.create_task(
            _cleanup_loop(config.SESSION_CLEANUP_INTERVAL_SECONDS, config.SESSION_MAX_AGE_HOURS)
        )
        logger.info(
            f"Session cleanup every {config.SESSION_CLEANUP_INTERVAL_SECONDS:.0f}s "
            f"(max age {config.SESSION_MAX_AGE_HOURS}h)"
        )
    else:
        logger.warning("Background session cleanup disabled")
    logger.info("Application startup complete")

    yield

    # Shutdown: Clean up resources
    logger.info("Shutting down application...")
    if cleanup_task is not None:
        cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cleanup_task
        logger.info("Session cleanup task stopped")


# Create FastAPI application instance
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# Configure CORS middleware
# Can be overridden via CORS_ORIGINS environment variable (comma-separated list)
_default_origins = [
    "http://localhost:3000",  # Next.js dev server
    "http://127.0.0.1:3000",
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",
]

if config.CORS_ORIGINS:
    ALLOWED_ORIGINS = [
        origin.strip() for origin in config.CORS_ORIGINS.split(",") if origin.strip()
    ]
else:
    ALLOWED_ORIGINS = _default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    expose_headers=["Content-Length", "Content-Type", "Content-Disposition"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, Any]:
    """Root endpoint returning API information.

    Returns:
        Dict containing API metadata including name, version,
        description, and available documentation URLs.
    """
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "description": "Interactive web scraping API",
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json",
        },
        "status": "operational",
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for monitoring and load balancers.

    Returns:
        Dict with status indicating the API is healthy.
    """
    return {"status": "healthy"}


# Router registration
app.include_router(scrape.router, prefix="/api", tags=["scrape"])
app.include_router(sessions.router, prefix="/api", tags=["sessions"])
