"""Persistence for topics and quiz results."""

from __future__ import annotations

from pathlib import Path

from .documents import DocumentStore, PersistenceError
from .results import QuizResult, QuizResultRepository
from .topics import Topic, TopicRepository

__all__ = [
    "DocumentStore",
    "PersistenceError",
    "QuizResult",
    "QuizResultRepository",
    "Topic",
    "TopicRepository",
    "open_repositories",
]


def open_repositories(
    root: Path, *, topic_limit: int = 50, result_limit: int = 20
) -> tuple[TopicRepository, QuizResultRepository]:
    """Return topic and result repositories sharing one store at ``root``."""

    store = DocumentStore(root)
    return (
        TopicRepository(store, limit=topic_limit),
        QuizResultRepository(store, limit=result_limit),
    )
