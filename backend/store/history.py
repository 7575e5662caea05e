"""
Chat history repository.

Backs the history API: one record per answered chat question, owned by
a username string. No isolation beyond that string.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from errors import PersistenceError
from observability.logger import log_event, now_ms
from store.persistence import InMemoryPersistence, Persistence


@dataclass(frozen=True)
class HistoryRecord:
    """Single answered chat question."""
    username: str
    question: str
    response: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "question": self.question,
            "response": self.response,
            "createdAt": self.created_at.isoformat(),
        }

    @staticmethod
    def from_document(doc: dict[str, Any]) -> HistoryRecord:
        return HistoryRecord(
            id=str(doc["id"]),
            username=str(doc.get("username", "")),
            question=str(doc.get("question", "")),
            response=str(doc.get("response", "")),
            created_at=datetime.fromisoformat(doc["createdAt"]),
        )


class HistoryRepository:
    """
    Per-user question/answer history.

    Unlike SessionStore, reads go straight to persistence: several
    processes may share the same backing document store.
    """

    def __init__(self, persistence: Persistence | None = None) -> None:
        self._persistence: Persistence = persistence or InMemoryPersistence()

    def add(self, record: HistoryRecord) -> None:
        self._persistence.append(record.to_document())

    def list_for(self, username: str) -> list[HistoryRecord]:
        """
        Return the user's records, newest first.

        An unreadable store reads as empty and malformed documents are
        skipped; both are logged.
        """
        try:
            docs = self._persistence.read_all()
        except PersistenceError as exc:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "HISTORY_READ_FAILED",
                "username": username,
                "error": str(exc),
            })
            return []

        records: list[HistoryRecord] = []
        for doc in docs:
            if doc.get("username") != username:
                continue
            try:
                records.append(HistoryRecord.from_document(doc))
            except (KeyError, TypeError, ValueError) as exc:
                log_event({
                    "ts_ms": now_ms(),
                    "event_type": "HISTORY_RECORD_SKIPPED",
                    "username": username,
                    "doc_id": doc.get("id"),
                    "error": repr(exc),
                })

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def delete_for(self, username: str) -> int:
        """
        Delete every record owned by username. Returns the count removed.

        Remaining documents are written back in one replace_all, so a
        failure leaves the collection untouched. Raises PersistenceError.
        """
        try:
            docs = self._persistence.read_all()
            remaining = [d for d in docs if d.get("username") != username]
            deleted = len(docs) - len(remaining)
            if deleted:
                self._persistence.replace_all(remaining)
        except PersistenceError as exc:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "HISTORY_CLEAR_FAILED",
                "username": username,
                "error": str(exc),
            })
            raise

        log_event({
            "ts_ms": now_ms(),
            "event_type": "HISTORY_CLEARED",
            "username": username,
            "deleted": deleted,
        })
        return deleted


def safe_add(repository: HistoryRepository, record: HistoryRecord) -> None:
    """Record history without failing the caller on persistence errors."""
    try:
        repository.add(record)
    except PersistenceError as exc:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "HISTORY_WRITE_FAILED",
            "username": record.username,
            "error": str(exc),
        })
