# pylint: disable=missing-module-docstring,missing-function-docstring
import json
from pathlib import Path
from typing import Any

import pytest

import store.session_store as store_mod
from errors import PersistenceError
from parsing.markdown_blocks import CodeBlock, TextBlock
from store.persistence import InMemoryPersistence, JsonFilePersistence, Persistence
from store.session_store import Session, SessionMode, SessionStore


def make_session(store: SessionStore, mode: SessionMode = SessionMode.DEBUG) -> Session:
    return Session(
        id=store.next_id(),
        title=store.next_title(mode),
        input_text="x = 1",
        mode=mode,
        blocks=(TextBlock(content="ok"), CodeBlock(language="python", content="x = 2")),
    )


class BrokenPersistence:
    """Every operation fails like an unreadable / unwritable file."""

    def append(self, doc: dict[str, Any]) -> None:
        raise PersistenceError("disk full")

    def read_all(self) -> list[dict[str, Any]]:
        raise PersistenceError("corrupt")

    def delete(self, doc_id: Any) -> None:
        raise PersistenceError("disk full")

    def delete_all(self) -> None:
        raise PersistenceError("disk full")

    def replace_all(self, docs: list[dict[str, Any]]) -> None:
        raise PersistenceError("disk full")


def test_persistence_implementations_satisfy_protocol(tmp_path: Path):
    assert isinstance(InMemoryPersistence(), Persistence)
    assert isinstance(JsonFilePersistence(tmp_path / "s.json"), Persistence)
    assert isinstance(BrokenPersistence(), Persistence)


def test_list_returns_insertion_order():
    store = SessionStore()
    sessions = [make_session(store) for _ in range(3)]
    for s in sessions:
        store.save(s)

    assert store.list() == tuple(sessions)


def test_ids_are_unique_and_increasing(monkeypatch: pytest.MonkeyPatch):
    store = SessionStore()
    # Frozen clock: ids must still be unique
    monkeypatch.setattr(store_mod.time, "time_ns", lambda: 1_000)

    ids = [store.next_id() for _ in range(5)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 5


def test_titles_count_existing_sessions():
    store = SessionStore()
    store.save(make_session(store, SessionMode.DEBUG))

    assert store.next_title(SessionMode.EXPLAIN) == "Explain Session 2"


def test_delete_removes_only_that_session():
    store = SessionStore()
    a, b = make_session(store), make_session(store)
    store.save(a)
    store.save(b)

    assert store.delete(a.id) is True
    assert store.list() == (b,)
    assert store.get(a.id) is None
    assert store.delete(a.id) is False


def test_clear_empties_store():
    persistence = InMemoryPersistence()
    store = SessionStore(persistence)
    store.save(make_session(store))
    store.save(make_session(store))

    store.clear()

    assert store.list() == ()
    assert persistence.read_all() == []


def test_json_persistence_survives_reload(tmp_path: Path):
    path = tmp_path / "sessions.json"
    store = SessionStore(JsonFilePersistence(path))
    a, b = make_session(store), make_session(store, SessionMode.GENERATE)
    store.save(a)
    store.save(b)

    reloaded = SessionStore(JsonFilePersistence(path))

    assert reloaded.list() == (a, b)
    # New ids continue past the reloaded ones
    assert reloaded.next_id() > b.id


def test_delete_rewrites_remaining_sessions(tmp_path: Path):
    path = tmp_path / "sessions.json"
    store = SessionStore(JsonFilePersistence(path))
    a, b = make_session(store), make_session(store)
    store.save(a)
    store.save(b)

    store.delete(a.id)

    docs = json.loads(path.read_text(encoding="utf-8"))
    assert [d["id"] for d in docs] == [b.id]
    assert docs[0]["inputText"] == "x = 1"
    assert docs[0]["blocks"][1] == {"type": "code", "language": "python", "content": "x = 2"}


def test_corrupt_file_loads_as_empty(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(store_mod, "log_event", emitted.append)

    path = tmp_path / "sessions.json"
    path.write_text("{not json", encoding="utf-8")

    store = SessionStore(JsonFilePersistence(path))

    assert store.list() == ()
    assert emitted[0]["event_type"] == "SESSION_STORE_LOAD_FAILED"


def test_write_failures_keep_memory_view(monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(store_mod, "log_event", emitted.append)

    store = SessionStore(BrokenPersistence())
    session = make_session(store)

    store.save(session)
    assert store.list() == (session,)

    store.delete(session.id)
    assert store.list() == ()

    failed = [e["operation"] for e in emitted if e["event_type"] == "SESSION_STORE_WRITE_FAILED"]
    assert failed == ["append", "delete"]


def test_session_document_round_trip():
    store = SessionStore()
    session = make_session(store, SessionMode.EXPLAIN)

    doc = session.to_document()

    assert doc["mode"] == "explain"
    assert Session.from_document(doc) == session
