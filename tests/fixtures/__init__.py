"""Shared testing fixtures for the quizwise test suite."""

from .gateway import FakeGateway, make_questions  # noqa: F401
from .openai import FakeAsyncOpenAI, question_payload, questions_json  # noqa: F401
from .workspace import WorkspaceBuilder  # noqa: F401

__all__ = [
    "FakeAsyncOpenAI",
    "FakeGateway",
    "WorkspaceBuilder",
    "make_questions",
    "question_payload",
    "questions_json",
]
