"""Scraping session manager.

Owns the lifecycle of interactive scraping sessions: creation, shallow
updates, append-only extraction history and time-based cleanup. Missing
sessions are logged and answered with a sentinel instead of an exception,
so a long-running interactive flow is never interrupted by a stale id.
"""

import asyncio
import logging
import secrets
import string
from typing import Any

from app.core import config
from app.models import (
    ExtractionMode,
    ExtractionResult,
    ExtractionStep,
    ScrapingSession,
    SessionStatus,
    now_ms,
)
from app.repositories.session_store import InMemorySessionStore, SessionStore

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_RANDOM_LENGTH = 7

# Fields that only the manager itself may set
IMMUTABLE_FIELDS = frozenset({"id", "url", "created_at", "extraction_history", "last_updated"})

MS_PER_HOUR = 60 * 60 * 1000


def generate_session_id() -> str:
    """Build an id of the form ``session_<epoch-ms>_<7 base36 chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_RANDOM_LENGTH))
    return f"session_{now_ms()}_{suffix}"


def _field_name(key: str) -> str:
    """Accept both snake_case field names and camelCase aliases."""
    if key in ScrapingSession.model_fields:
        return key
    for name, info in ScrapingSession.model_fields.items():
        if info.alias == key:
            return name
    return key


class ScrapingSessionManager:
    """Creates, updates and tears down scraping sessions.

    Args:
        store: Backend holding the sessions. Defaults to a fresh in-memory store.
    """

    def __init__(self, store: SessionStore | None = None) -> None:
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self._step_locks: dict[str, asyncio.Lock] = {}

    def create_session(
        self,
        url: str,
        extraction_mode: ExtractionMode = "surface",
        max_results: int = 50,
        instructions: str | None = None,
    ) -> ScrapingSession:
        """
        Create a session in the ``initialized`` state.

        Args:
            url: Target page, immutable for the session's lifetime.
            extraction_mode: surface, deep or hybrid.
            max_results: Cap on records per extraction.
            instructions: Optional free-text extraction intent.

        Returns:
            The new session.
        """
        now = now_ms()
        session = ScrapingSession(
            id=generate_session_id(),
            url=url,
            status="initialized",
            instructions=instructions,
            created_at=now,
            last_updated=now,
            extraction_mode=extraction_mode,
            max_results=max_results,
        )
        self.store.add(session)
        logger.info(f"Created scraping session {session.id} for {url}")
        return session

    def get_session(self, session_id: str) -> ScrapingSession | None:
        session = self.store.get(session_id)
        if session is None:
            logger.warning(f"Session {session_id} not found")
        return session

    def update_session(
        self, session_id: str, updates: dict[str, Any]
    ) -> ScrapingSession | None:
        """
        Shallow-merge fields into a session and refresh ``last_updated``.

        Identity fields (id, url, created_at) and the extraction history are
        ignored; use :meth:`add_extraction_step` to record steps.

        Args:
            session_id: Session to update.
            updates: Field values keyed by snake_case name or camelCase alias.

        Returns:
            The updated session, or None if the id is unknown.
        """
        changes = {_field_name(k): v for k, v in updates.items()}
        ignored = IMMUTABLE_FIELDS.intersection(changes)
        if ignored:
            logger.warning(f"Ignoring immutable session fields: {sorted(ignored)}")
            for key in ignored:
                changes.pop(key)

        session = self.store.update(session_id, changes)
        if session is None:
            logger.warning(f"Session {session_id} not found for update")
            return None
        logger.info(f"Updated session {session_id}: {', '.join(sorted(changes)) or 'touch'}")
        return session

    def add_extraction_step(
        self,
        session_id: str,
        action: str,
        url: str,
        result: ExtractionResult | None = None,
    ) -> bool:
        """
        Append an extraction step with the next step number.

        Args:
            session_id: Session to record the step on.
            action: Free-text description of the attempt.
            url: Page the step ran against.
            result: Counts, errors and metadata of the attempt.

        Returns:
            True if the step was recorded, False if the session is unknown.
        """
        step = self.store.append_step(session_id, action, url, result or ExtractionResult())
        if step is None:
            logger.warning(f"Session {session_id} not found when adding extraction step")
            return False
        logger.info(
            f"Added extraction step {step.step_number} to session {session_id}: "
            f"{step.result.companies_found} companies, {step.result.links_found} links"
        )
        return True

    def get_extraction_history(self, session_id: str) -> list[ExtractionStep]:
        session = self.store.get(session_id)
        return list(session.extraction_history) if session else []

    def delete_session(self, session_id: str) -> bool:
        deleted = self.store.delete(session_id)
        self._step_locks.pop(session_id, None)
        if deleted:
            logger.info(f"Deleted session {session_id}")
        else:
            logger.warning(f"Session {session_id} not found for deletion")
        return deleted

    def get_all_active_sessions(self) -> list[ScrapingSession]:
        return self.store.list_all()

    def cleanup_old_sessions(self, max_age_hours: float = config.SESSION_MAX_AGE_HOURS) -> int:
        """
        Remove sessions whose last update is older than ``max_age_hours``.

        Args:
            max_age_hours: Age threshold in hours.

        Returns:
            Number of sessions removed.
        """
        cutoff = now_ms() - int(max_age_hours * MS_PER_HOUR)
        removed = self.store.remove_stale(cutoff)
        for session_id in removed:
            self._step_locks.pop(session_id, None)
        if removed:
            logger.info(f"Cleaned up {len(removed)} old scraping sessions")
        return len(removed)

    def get_session_status(self, session_id: str) -> SessionStatus:
        """Read-only projection of a session for lightweight polling."""
        session = self.store.get(session_id)
        if session is None:
            logger.warning(f"Session {session_id} not found for status check")
            return SessionStatus(exists=False)
        return SessionStatus(
            exists=True,
            status=session.status,
            current_page=session.current_page.url if session.current_page else None,
            extraction_steps=len(session.extraction_history),
            companies_found=session.companies_found,
            last_updated=session.last_updated,
        )

    def step_lock(self, session_id: str) -> asyncio.Lock:
        """Lock that serializes analyze and extract steps of one session."""
        lock = self._step_locks.get(session_id)
        if lock is None:
            lock = self._step_locks[session_id] = asyncio.Lock()
        return lock


_session_manager: ScrapingSessionManager | None = None


def get_session_manager() -> ScrapingSessionManager:
    """Get the singleton ScrapingSessionManager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = ScrapingSessionManager(InMemorySessionStore())
    return _session_manager
