# pylint: disable=missing-module-docstring,missing-function-docstring
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

import store.history as history_mod
from errors import PersistenceError
from store.history import HistoryRecord, HistoryRepository, safe_add
from store.persistence import InMemoryPersistence, JsonFilePersistence


def record(username: str, question: str, minutes: int = 0) -> HistoryRecord:
    return HistoryRecord(
        username=username,
        question=question,
        response=f"answer to {question}",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


def test_list_for_is_newest_first_and_per_user():
    repo = HistoryRepository()
    repo.add(record("ada", "first", minutes=0))
    repo.add(record("ada", "second", minutes=5))
    repo.add(record("bob", "other", minutes=10))

    assert [r.question for r in repo.list_for("ada")] == ["second", "first"]
    assert [r.question for r in repo.list_for("bob")] == ["other"]
    assert repo.list_for("nobody") == []


def test_delete_for_removes_only_that_user():
    repo = HistoryRepository()
    repo.add(record("ada", "q1"))
    repo.add(record("ada", "q2"))
    repo.add(record("bob", "q3"))

    assert repo.delete_for("ada") == 2
    assert repo.list_for("ada") == []
    assert len(repo.list_for("bob")) == 1


def test_history_survives_reload(tmp_path: Path):
    path = tmp_path / "history.json"
    HistoryRepository(JsonFilePersistence(path)).add(record("ada", "persisted"))

    reloaded = HistoryRepository(JsonFilePersistence(path))

    assert [r.question for r in reloaded.list_for("ada")] == ["persisted"]


def test_safe_add_logs_and_swallows_persistence_errors(monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(history_mod, "log_event", emitted.append)

    class FailingPersistence(InMemoryPersistence):
        def append(self, doc: dict[str, Any]) -> None:
            raise PersistenceError("read-only")

    safe_add(HistoryRepository(FailingPersistence()), record("ada", "q"))

    assert emitted[0]["event_type"] == "HISTORY_WRITE_FAILED"
    assert emitted[0]["username"] == "ada"


def test_json_file_rejects_non_list_root(tmp_path: Path):
    path = tmp_path / "history.json"
    path.write_text('{"id": 1}', encoding="utf-8")

    with pytest.raises(PersistenceError):
        JsonFilePersistence(path).read_all()


def test_json_file_missing_is_empty(tmp_path: Path):
    assert JsonFilePersistence(tmp_path / "absent.json").read_all() == []


def test_unreadable_history_lists_as_empty(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(history_mod, "log_event", emitted.append)

    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")

    assert HistoryRepository(JsonFilePersistence(path)).list_for("ada") == []
    assert emitted[0]["event_type"] == "HISTORY_READ_FAILED"


def test_malformed_history_document_is_skipped(monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(history_mod, "log_event", emitted.append)

    persistence = InMemoryPersistence([
        {"id": "bad", "username": "ada", "question": "q", "createdAt": "yesterday"},
    ])
    repo = HistoryRepository(persistence)
    repo.add(record("ada", "good"))

    assert [r.question for r in repo.list_for("ada")] == ["good"]
    assert emitted[0]["event_type"] == "HISTORY_RECORD_SKIPPED"
    assert emitted[0]["doc_id"] == "bad"


def test_delete_for_rewrites_remaining_in_one_write():
    class CountingPersistence(InMemoryPersistence):
        def __init__(self) -> None:
            super().__init__()
            self.replacements = 0

        def delete(self, doc_id: Any) -> None:
            raise AssertionError("per-document delete not expected")

        def replace_all(self, docs: list[dict[str, Any]]) -> None:
            self.replacements += 1
            super().replace_all(docs)

    persistence = CountingPersistence()
    repo = HistoryRepository(persistence)
    for question in ("q1", "q2", "q3"):
        repo.add(record("ada", question))
    repo.add(record("bob", "kept"))

    assert repo.delete_for("ada") == 3
    assert persistence.replacements == 1
    assert [d["question"] for d in persistence.read_all()] == ["kept"]


def test_failed_clear_leaves_history_intact(monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(history_mod, "log_event", emitted.append)

    class ReadOnlyPersistence(InMemoryPersistence):
        def replace_all(self, docs: list[dict[str, Any]]) -> None:
            raise PersistenceError("read-only")

    repo = HistoryRepository(ReadOnlyPersistence())
    repo.add(record("ada", "q1"))
    repo.add(record("ada", "q2"))

    with pytest.raises(PersistenceError):
        repo.delete_for("ada")

    assert len(repo.list_for("ada")) == 2
    assert emitted[0]["event_type"] == "HISTORY_CLEAR_FAILED"
