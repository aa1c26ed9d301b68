"""Quiz result records written once when a quiz finishes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, List, Mapping, MutableMapping, Optional

from .documents import DocumentStore, PersistenceError

__all__ = ["QuizResult", "QuizResultRepository", "RESULTS_COLLECTION"]

RESULTS_COLLECTION = "quiz_results"


@dataclass(frozen=True)
class QuizResult:
    id: str
    user_id: str
    topic_name: str
    score: int
    total_questions: int
    created_at: str

    @property
    def percentage(self) -> float:
        return 100.0 * self.score / self.total_questions

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "topic_name": self.topic_name,
            "score": self.score,
            "total_questions": self.total_questions,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuizResult":
        try:
            return cls(
                id=str(payload["id"]),
                user_id=str(payload["user_id"]),
                topic_name=str(payload["topic_name"]),
                score=int(payload["score"]),
                total_questions=int(payload["total_questions"]),
                created_at=str(payload.get("created_at", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Malformed quiz result: {exc}") from exc


class QuizResultRepository:
    """Append-only quiz results scoped by user id."""

    def __init__(self, store: DocumentStore, *, limit: int = 20) -> None:
        self._store = store
        self._limit = limit

    async def save_quiz_result(
        self,
        user_id: str,
        topic_name: str,
        score: int,
        total_questions: int,
    ) -> str:
        """Persist a finished quiz and return the new record id.

        Raises ValueError when ``total_questions`` is not positive or
        ``score`` lies outside ``0..total_questions``.
        """
        if not user_id:
            raise ValueError("user id is required")
        if total_questions <= 0:
            raise ValueError("total_questions must be positive")
        if not 0 <= score <= total_questions:
            raise ValueError("score must be between 0 and total_questions")
        document = await asyncio.to_thread(
            self._store.insert,
            RESULTS_COLLECTION,
            {
                "user_id": user_id,
                "topic_name": topic_name,
                "score": score,
                "total_questions": total_questions,
            },
        )
        return str(document["id"])

    async def get_quiz_results_for_user(
        self, user_id: str, *, limit: Optional[int] = None
    ) -> List[QuizResult]:
        docs = await asyncio.to_thread(
            self._store.find,
            RESULTS_COLLECTION,
            lambda doc: doc.get("user_id") == user_id,
            newest_first=True,
            limit=limit or self._limit,
        )
        return [QuizResult.from_dict(doc) for doc in docs]
