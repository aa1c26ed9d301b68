"""A small JSON document store with one file per collection.

Each collection lives in ``<root>/<collection>.json``. Writes take an
exclusive lock file and replace the collection atomically, so readers never
see a half-written file. Document ids and ``created_at`` timestamps are
assigned here at write time rather than by callers.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, MutableMapping

__all__ = ["PersistenceError", "DocumentStore", "new_document"]

Document = Dict[str, Any]

_LOCK_TIMEOUT_SECONDS = 5.0
_COLLECTION_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


class PersistenceError(RuntimeError):
    """Raised when a store read or write fails."""


class DocumentStore:
    """Persist JSON documents grouped by collection name."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create store at {root}") from exc

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, collection: str) -> Path:
        if not _COLLECTION_NAME.match(collection):
            raise PersistenceError(f"Invalid collection name: {collection!r}")
        return self._root / f"{collection}.json"

    def all(self, collection: str) -> List[Document]:
        """Return every document in insertion order."""

        return self._read(self.path_for(collection))

    def find(
        self,
        collection: str,
        predicate: Callable[[Mapping[str, Any]], bool],
        *,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> List[Document]:
        """Return matching documents, optionally newest first and capped.

        Documents sharing a ``created_at`` value keep insertion order, so the
        later insert counts as newer.
        """

        matches = [
            (position, doc)
            for position, doc in enumerate(self.all(collection))
            if predicate(doc)
        ]
        if newest_first:
            matches.sort(
                key=lambda item: (str(item[1].get("created_at", "")), item[0]),
                reverse=True,
            )
        docs = [doc for _, doc in matches]
        return docs[:limit] if limit is not None else docs

    def get(self, collection: str, doc_id: str) -> Document | None:
        for doc in self.all(collection):
            if doc.get("id") == doc_id:
                return doc
        return None

    def insert(self, collection: str, fields: Mapping[str, Any]) -> Document:
        """Add a document and return it with its assigned id and timestamp."""

        document = new_document(fields)

        def _append(docs: List[Document]) -> Document:
            docs.append(document)
            return document

        return self.transact(collection, _append)

    def update(
        self,
        collection: str,
        doc_id: str,
        mutate: Callable[[MutableMapping[str, Any]], None],
    ) -> Document:
        """Apply ``mutate`` to one document under the collection lock."""

        def _apply(docs: List[Document]) -> Document:
            for doc in docs:
                if doc.get("id") == doc_id:
                    mutate(doc)
                    return doc
            raise PersistenceError(
                f"Document '{doc_id}' not found in {collection}."
            )

        return self.transact(collection, _apply)

    def transact(
        self,
        collection: str,
        operation: Callable[[List[Document]], Any],
    ) -> Any:
        """Run a read-modify-write cycle on ``collection`` under its lock.

        ``operation`` edits the document list in place. Its return value is
        passed through. Nothing is written when it raises.
        """

        path = self.path_for(collection)
        with _CollectionLock(path.with_suffix(".lock")):
            docs = self._read(path)
            result = operation(docs)
            _atomic_write_json(path, {"documents": docs})
        return result

    def _read(self, path: Path) -> List[Document]:
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Failed to parse store file: {path}") from exc
        except OSError as exc:
            raise PersistenceError(f"Failed to read store file: {path}") from exc
        docs = payload.get("documents") if isinstance(payload, dict) else None
        if not isinstance(docs, list):
            raise PersistenceError(f"Malformed store file: {path}")
        return [doc for doc in docs if isinstance(doc, dict)]


class _CollectionLock:
    """Filesystem lock built on exclusive file creation."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def __enter__(self) -> "_CollectionLock":
        deadline = time.monotonic() + _LOCK_TIMEOUT_SECONDS
        while True:
            try:
                fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if time.monotonic() > deadline:
                    raise PersistenceError(
                        f"Timed out waiting for store lock: {self._path}"
                    ) from None
                time.sleep(0.02)
                continue
            os.close(fd)
            return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self._path.unlink(missing_ok=True)


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        suffix=".tmp",
    )
    try:
        try:
            json.dump(payload, handle, indent=2, sort_keys=True)
            handle.flush()
            os.fsync(handle.fileno())
        finally:
            handle.close()
        os.replace(handle.name, path)
    except OSError as exc:
        Path(handle.name).unlink(missing_ok=True)
        raise PersistenceError(f"Failed to write store file: {path}") from exc
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass


def new_document(fields: Mapping[str, Any]) -> Document:
    """Copy ``fields`` and stamp a fresh id and creation timestamp."""

    document: Document = dict(fields)
    document["id"] = uuid.uuid4().hex
    document["created_at"] = _timestamp()
    return document


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
