"""Topic records: per-user quiz subjects and their question history."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, List, Mapping, MutableMapping, Optional, Sequence

from .documents import DocumentStore, PersistenceError, new_document

__all__ = ["Topic", "TopicRepository", "TOPICS_COLLECTION"]

TOPICS_COLLECTION = "topics"


@dataclass(frozen=True)
class Topic:
    id: str
    user_id: str
    name: str
    created_at: str
    is_favourite: bool = False
    questions: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "created_at": self.created_at,
            "is_favourite": self.is_favourite,
            "questions": list(self.questions),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Topic":
        try:
            return cls(
                id=str(payload["id"]),
                user_id=str(payload["user_id"]),
                name=str(payload["name"]),
                created_at=str(payload.get("created_at", "")),
                is_favourite=bool(payload.get("is_favourite", False)),
                questions=tuple(
                    str(item) for item in payload.get("questions") or ()
                ),
            )
        except KeyError as exc:
            raise PersistenceError(
                f"Topic record missing required field: {exc}"
            ) from exc


class TopicRepository:
    """Topic persistence scoped by user id.

    Methods are coroutines; file IO runs in a worker thread so the event
    loop stays free while the store lock is held.
    """

    def __init__(self, store: DocumentStore, *, limit: int = 50) -> None:
        self._store = store
        self._limit = limit

    async def save_topic(self, name: str, user_id: str) -> str:
        """Return the id of the ``(user_id, name)`` topic, creating it once."""
        return await asyncio.to_thread(self._save_topic, name, user_id)

    async def get_topic_by_name(
        self, user_id: str, name: str
    ) -> Optional[Topic]:
        return await asyncio.to_thread(self._get_topic_by_name, user_id, name)

    async def add_questions_to_topic(
        self,
        topic_id: str,
        questions: Sequence[str],
        *,
        user_id: Optional[str] = None,
    ) -> Topic:
        """Append question texts not already in the topic history."""
        return await asyncio.to_thread(
            self._add_questions, topic_id, list(questions), user_id
        )

    async def get_topics_for_user(
        self, user_id: str, *, limit: Optional[int] = None
    ) -> List[Topic]:
        return await asyncio.to_thread(
            self._topics_for_user, user_id, limit or self._limit
        )

    async def update_topic_favourite_status(
        self,
        topic_id: str,
        is_favourite: bool,
        *,
        user_id: Optional[str] = None,
    ) -> Topic:
        return await asyncio.to_thread(
            self._set_favourite, topic_id, bool(is_favourite), user_id
        )

    def _save_topic(self, name: str, user_id: str) -> str:
        name = name.strip()
        if not name or not user_id:
            raise ValueError("topic name and user id are required")

        # Lookup and insert share one lock so concurrent saves of the same
        # topic still produce a single record.
        def _upsert(docs: List[dict]) -> str:
            for doc in docs:
                if doc.get("user_id") == user_id and doc.get("name") == name:
                    return str(doc["id"])
            created = new_document(
                {
                    "user_id": user_id,
                    "name": name,
                    "is_favourite": False,
                    "questions": [],
                }
            )
            docs.append(created)
            return created["id"]

        return self._store.transact(TOPICS_COLLECTION, _upsert)

    def _get_topic_by_name(self, user_id: str, name: str) -> Optional[Topic]:
        name = name.strip()
        matches = self._store.find(
            TOPICS_COLLECTION,
            lambda doc: doc.get("user_id") == user_id
            and doc.get("name") == name,
            limit=1,
        )
        return Topic.from_dict(matches[0]) if matches else None

    def _add_questions(
        self, topic_id: str, questions: List[str], user_id: Optional[str]
    ) -> Topic:
        def _union(doc: MutableMapping[str, Any]) -> None:
            _check_owner(doc, user_id)
            history = list(doc.get("questions") or [])
            seen = set(history)
            for text in questions:
                if text not in seen:
                    history.append(text)
                    seen.add(text)
            doc["questions"] = history

        return Topic.from_dict(
            self._store.update(TOPICS_COLLECTION, topic_id, _union)
        )

    def _topics_for_user(self, user_id: str, limit: int) -> List[Topic]:
        docs = self._store.find(
            TOPICS_COLLECTION,
            lambda doc: doc.get("user_id") == user_id,
            newest_first=True,
            limit=limit,
        )
        return [Topic.from_dict(doc) for doc in docs]

    def _set_favourite(
        self, topic_id: str, is_favourite: bool, user_id: Optional[str]
    ) -> Topic:
        def _flag(doc: MutableMapping[str, Any]) -> None:
            _check_owner(doc, user_id)
            doc["is_favourite"] = is_favourite

        return Topic.from_dict(
            self._store.update(TOPICS_COLLECTION, topic_id, _flag)
        )


def _check_owner(doc: Mapping[str, Any], user_id: Optional[str]) -> None:
    if user_id is not None and doc.get("user_id") != user_id:
        raise PersistenceError("Topic belongs to a different user.")

