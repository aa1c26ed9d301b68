from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

ROOT = TESTS_DIR.parent
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from fixtures import FakeAsyncOpenAI, FakeGateway, WorkspaceBuilder  # noqa: E402

from quizwise.store import DocumentStore, QuizResultRepository, TopicRepository  # noqa: E402


@pytest.fixture
def fake_client() -> FakeAsyncOpenAI:
    return FakeAsyncOpenAI()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def store(tmp_path: Path) -> DocumentStore:
    return DocumentStore(tmp_path / "store")


@pytest.fixture
def topics(store: DocumentStore) -> TopicRepository:
    return TopicRepository(store)


@pytest.fixture
def results(store: DocumentStore) -> QuizResultRepository:
    return QuizResultRepository(store)


@pytest.fixture(autouse=True)
def _isolate_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[None]:
    for name in ("QUIZWISE_CONFIG", "QUIZWISE_USER", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("QUIZWISE_DATA_HOME", str(tmp_path / "data"))
    yield
    logger = logging.getLogger("quizwise")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
