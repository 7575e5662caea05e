"""
Session store.

Responsibilities:
- Own the ordered list of debug/generate/explain sessions
- Generate unique, monotonic session ids
- Mirror every mutation into a persistence collaborator

Non-responsibilities:
- No prompt building, no gateway calls
- No ordering other than insertion order

Persistence failures are logged and never propagate to callers: a
failed load starts from an empty store, a failed write keeps the
in-memory view authoritative.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from errors import PersistenceError
from observability.logger import log_event, now_ms
from parsing.markdown_blocks import Block, block_from_document, block_to_document
from store.persistence import InMemoryPersistence, Persistence


class SessionMode(str, Enum):
    """What the user asked the assistant to do with the input."""

    DEBUG = "debug"
    GENERATE = "generate"
    EXPLAIN = "explain"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class Session:
    """One persisted prompt/response exchange. Immutable once created."""

    id: int
    title: str
    input_text: str
    mode: SessionMode
    blocks: tuple[Block, ...]
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "inputText": self.input_text,
            "mode": self.mode.value,
            "blocks": [block_to_document(b) for b in self.blocks],
            "createdAt": self.created_at.isoformat(),
        }

    @staticmethod
    def from_document(doc: dict[str, Any]) -> Session:
        return Session(
            id=int(doc["id"]),
            title=str(doc.get("title", "")),
            input_text=str(doc.get("inputText", "")),
            mode=SessionMode(doc.get("mode", SessionMode.DEBUG.value)),
            blocks=tuple(block_from_document(b) for b in doc.get("blocks", [])),
            created_at=datetime.fromisoformat(doc["createdAt"]),
        )


class SessionStore:
    """
    Ordered, persisted collection of sessions.

    Invariants:
    - list() returns sessions in insertion order
    - ids are strictly increasing within a process lifetime
    - a deleted id is never observable through list() or get()
    """

    def __init__(self, persistence: Persistence | None = None) -> None:
        self._persistence: Persistence = persistence or InMemoryPersistence()
        self._last_id = 0
        self._sessions: list[Session] = self._load()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def next_id(self) -> int:
        """
        Return a new session id from a monotonic clock reading.

        time.time_ns() may repeat or step backwards; ids are bumped past
        the last issued value so they stay unique.
        """
        candidate = time.time_ns()
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate

    def next_title(self, mode: SessionMode) -> str:
        return f"{mode.label} Session {len(self._sessions) + 1}"

    def save(self, session: Session) -> None:
        """Append a session."""
        self._sessions.append(session)
        self._last_id = max(self._last_id, session.id)
        self._persist("append", lambda: self._persistence.append(session.to_document()))

    def list(self) -> tuple[Session, ...]:
        return tuple(self._sessions)

    def get(self, session_id: int) -> Session | None:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def delete(self, session_id: int) -> bool:
        """
        Remove one session.

        The in-memory view drops the session before persistence is
        rewritten, so no caller can observe a stale copy.
        Returns False if the id was unknown.
        """
        remaining = [s for s in self._sessions if s.id != session_id]
        if len(remaining) == len(self._sessions):
            return False
        self._sessions = remaining
        self._persist("delete", lambda: self._persistence.delete(session_id))
        return True

    def clear(self) -> None:
        """Remove all sessions. Irreversible."""
        self._sessions = []
        self._persist("clear", self._persistence.delete_all)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> list[Session]:
        try:
            docs = self._persistence.read_all()
            sessions = [Session.from_document(d) for d in docs]
        except (PersistenceError, KeyError, TypeError, ValueError) as exc:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "SESSION_STORE_LOAD_FAILED",
                "error": str(exc),
                "exception": type(exc).__name__,
            })
            return []

        if sessions:
            self._last_id = max(s.id for s in sessions)
        return sessions

    def _persist(self, operation: str, write: Callable[[], None]) -> None:
        try:
            write()
        except PersistenceError as exc:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "SESSION_STORE_WRITE_FAILED",
                "operation": operation,
                "error": str(exc),
            })
