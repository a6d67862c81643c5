"""Session storage for the scraping session manager.

The manager receives a store instead of owning a module-level table, so
tests use a fresh store and other backends can be plugged in.
"""

import copy
import threading
from typing import Any, Protocol

from app.models import ExtractionResult, ExtractionStep, ScrapingSession, now_ms


class SessionStore(Protocol):
    """Backend holding scraping sessions keyed by id.

    Implementations hand out copies: mutating a returned session never
    changes the stored one.
    """

    def get(self, session_id: str) -> ScrapingSession | None: ...

    def add(self, session: ScrapingSession) -> None: ...

    def update(self, session_id: str, changes: dict[str, Any]) -> ScrapingSession | None: ...

    def append_step(
        self, session_id: str, action: str, url: str, result: ExtractionResult
    ) -> ExtractionStep | None: ...

    def delete(self, session_id: str) -> bool: ...

    def list_all(self) -> list[ScrapingSession]: ...

    def remove_stale(self, cutoff_ms: int) -> list[str]: ...


class InMemorySessionStore:
    """Process-local store guarded by a re-entrant lock.

    Step numbers are assigned inside the lock, so concurrent appends to the
    same session never produce gaps or duplicates.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ScrapingSession] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def get(self, session_id: str) -> ScrapingSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    def add(self, session: ScrapingSession) -> None:
        with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"Session id already in use: {session.id}")
            self._sessions[session.id] = session.model_copy(deep=True)

    def update(self, session_id: str, changes: dict[str, Any]) -> ScrapingSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            # Re-validate so nested dicts become models and bad values are rejected.
            # Model instances pass validation as-is, so copy them off the caller.
            data = session.model_dump(by_alias=False)
            data.update(copy.deepcopy(changes))
            data["last_updated"] = now_ms()
            updated = ScrapingSession.model_validate(data)
            self._sessions[session_id] = updated
            return updated.model_copy(deep=True)

    def append_step(
        self, session_id: str, action: str, url: str, result: ExtractionResult
    ) -> ExtractionStep | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            step = ExtractionStep(
                step_number=len(session.extraction_history) + 1,
                action=action,
                url=url,
                result=result.model_copy(deep=True),
            )
            session.extraction_history.append(step)
            session.last_updated = step.timestamp
            return step

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def list_all(self) -> list[ScrapingSession]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._sessions.values()]

    def remove_stale(self, cutoff_ms: int) -> list[str]:
        """Delete sessions last updated before ``cutoff_ms`` and return their ids."""
        with self._lock:
            stale = [sid for sid, s in self._sessions.items() if s.last_updated < cutoff_ms]
            for sid in stale:
                del self._sessions[sid]
            return stale

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
