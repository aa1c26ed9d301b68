from __future__ import annotations

import json

import pytest

from quizwise.store.documents import DocumentStore, PersistenceError


def test_insert_assigns_id_and_timestamp(store):
    doc = store.insert("things", {"name": "a"})

    assert len(doc["id"]) == 32
    assert doc["created_at"]
    assert store.get("things", doc["id"]) == doc
    on_disk = json.loads(store.path_for("things").read_text(encoding="utf-8"))
    assert on_disk["documents"] == [doc]


def test_find_newest_first_uses_insertion_order_for_ties(store, monkeypatch):
    from quizwise.store import documents

    monkeypatch.setattr(documents, "_timestamp", lambda: "2024-01-01T00:00:00")
    first = store.insert("things", {"n": 1})
    second = store.insert("things", {"n": 2})
    third = store.insert("things", {"n": 3})

    newest = store.find("things", lambda doc: True, newest_first=True)
    assert [doc["id"] for doc in newest] == [third["id"], second["id"], first["id"]]
    assert store.find("things", lambda doc: doc["n"] > 1, limit=1) == [second]


def test_update_missing_document_raises(store):
    with pytest.raises(PersistenceError, match="not found"):
        store.update("things", "missing", lambda doc: None)


def test_failed_transaction_writes_nothing(store):
    store.insert("things", {"n": 1})
    before = store.path_for("things").read_text(encoding="utf-8")

    def _boom(docs):
        docs.clear()
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        store.transact("things", _boom)
    assert store.path_for("things").read_text(encoding="utf-8") == before
    assert not store.path_for("things").with_suffix(".lock").exists()


def test_invalid_collection_name(store):
    with pytest.raises(PersistenceError, match="Invalid collection"):
        store.path_for("../escape")


def test_corrupt_file_is_reported(tmp_path):
    store = DocumentStore(tmp_path)
    store.path_for("things").write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError, match="parse"):
        store.all("things")


def test_store_root_must_be_creatable(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(PersistenceError):
        DocumentStore(blocker / "store")
