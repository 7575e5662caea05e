"""
Document persistence collaborators.

Rules:
- Documents are plain JSON-compatible dicts carrying an "id" key.
- Collaborators raise PersistenceError on IO / decode failures; callers
  decide how to degrade.
- No ordering logic beyond "append keeps insertion order".
- replace_all is the only multi-document mutation; it is a single write.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from errors import PersistenceError


Document = dict[str, Any]


@runtime_checkable
class Persistence(Protocol):
    """Append / full-read / delete-by-id / bulk-replace document store."""

    def append(self, doc: Document) -> None: ...
    def read_all(self) -> list[Document]: ...
    def delete(self, doc_id: Any) -> None: ...
    def delete_all(self) -> None: ...
    def replace_all(self, docs: list[Document]) -> None: ...


class InMemoryPersistence:
    """Process-local persistence. Used in tests and when DATA_DIR is unset."""

    def __init__(self, docs: list[Document] | None = None) -> None:
        self._docs: list[Document] = [dict(d) for d in docs or []]

    def append(self, doc: Document) -> None:
        self._docs.append(dict(doc))

    def read_all(self) -> list[Document]:
        return [dict(d) for d in self._docs]

    def delete(self, doc_id: Any) -> None:
        self._docs = [d for d in self._docs if d.get("id") != doc_id]

    def delete_all(self) -> None:
        self._docs = []

    def replace_all(self, docs: list[Document]) -> None:
        self._docs = [dict(d) for d in docs]


class JsonFilePersistence:
    """
    Single JSON file holding the whole collection.

    The file format only supports whole-collection replacement, so every
    mutation rewrites the remaining documents. Writes go to a temp file in
    the same directory and are renamed over the target, so readers never
    observe a partially written collection.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, doc: Document) -> None:
        docs = self.read_all()
        docs.append(doc)
        self._write(docs)

    def read_all(self) -> list[Document]:
        if not self._path.exists():
            return []
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"read failed: {self._path}: {exc}") from exc

        if not isinstance(data, list):
            raise PersistenceError(f"unexpected document root in {self._path}")
        return [d for d in data if isinstance(d, dict)]

    def delete(self, doc_id: Any) -> None:
        remaining = [d for d in self.read_all() if d.get("id") != doc_id]
        self._write(remaining)

    def delete_all(self) -> None:
        self._write([])

    def replace_all(self, docs: list[Document]) -> None:
        """Swap the whole collection in one write."""
        self._write(list(docs))

    def _write(self, docs: list[Document]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(docs, fh, ensure_ascii=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"write failed: {self._path}: {exc}") from exc
