from __future__ import annotations

import asyncio

import pytest

from quizwise.store import PersistenceError, open_repositories
from quizwise.store.results import QuizResultRepository
from quizwise.store.topics import TopicRepository


def _run(coro):
    return asyncio.run(coro)


def test_save_topic_is_idempotent_per_user(topics):
    first = _run(topics.save_topic("Roman Empire", "ada"))
    again = _run(topics.save_topic(" Roman Empire ", "ada"))
    other = _run(topics.save_topic("Roman Empire", "grace"))

    assert first == again
    assert other != first
    topic = _run(topics.get_topic_by_name("ada", "Roman Empire"))
    assert topic.id == first
    assert topic.is_favourite is False
    assert topic.questions == ()


def test_lookup_trims_the_topic_name(topics):
    topic_id = _run(topics.save_topic(" Rome ", "ada"))

    assert _run(topics.get_topic_by_name("ada", " Rome ")).id == topic_id
    assert _run(topics.get_topic_by_name("ada", "Rome")).id == topic_id
    assert _run(topics.get_topic_by_name("grace", "Rome")) is None


def test_concurrent_saves_create_one_topic(topics):
    async def _both():
        return await asyncio.gather(
            topics.save_topic("Roman Empire", "ada"),
            topics.save_topic("Roman Empire", "ada"),
        )

    first, second = _run(_both())
    assert first == second
    assert len(_run(topics.get_topics_for_user("ada"))) == 1


def test_save_topic_requires_name_and_user(topics):
    with pytest.raises(ValueError):
        _run(topics.save_topic("   ", "ada"))
    with pytest.raises(ValueError):
        _run(topics.save_topic("Roman Empire", ""))


def test_add_questions_is_an_ordered_union(topics):
    topic_id = _run(topics.save_topic("Roman Empire", "ada"))
    _run(topics.add_questions_to_topic(topic_id, ["Q1", "Q2"]))
    updated = _run(topics.add_questions_to_topic(topic_id, ["Q2", "Q3", "Q3"]))

    assert updated.questions == ("Q1", "Q2", "Q3")


def test_add_questions_checks_owner(topics):
    topic_id = _run(topics.save_topic("Roman Empire", "ada"))
    with pytest.raises(PersistenceError, match="different user"):
        _run(topics.add_questions_to_topic(topic_id, ["Q1"], user_id="grace"))


def test_add_questions_to_missing_topic(topics):
    with pytest.raises(PersistenceError):
        _run(topics.add_questions_to_topic("nope", ["Q1"]))


def test_topics_newest_first_and_limited(store):
    topics = TopicRepository(store, limit=2)
    for name in ("One", "Two", "Three"):
        _run(topics.save_topic(name, "ada"))
    _run(topics.save_topic("Elsewhere", "grace"))

    names = [topic.name for topic in _run(topics.get_topics_for_user("ada"))]
    assert names == ["Three", "Two"]
    everything = _run(topics.get_topics_for_user("ada", limit=10))
    assert [topic.name for topic in everything] == ["Three", "Two", "One"]


def test_favourite_toggle(topics):
    topic_id = _run(topics.save_topic("Roman Empire", "ada"))

    marked = _run(
        topics.update_topic_favourite_status(topic_id, True, user_id="ada")
    )
    assert marked.is_favourite is True
    cleared = _run(topics.update_topic_favourite_status(topic_id, False))
    assert cleared.is_favourite is False
    with pytest.raises(PersistenceError):
        _run(
            topics.update_topic_favourite_status(topic_id, True, user_id="grace")
        )


def test_save_and_list_results(results):
    first = _run(results.save_quiz_result("ada", "Roman Empire", 5, 5))
    _run(results.save_quiz_result("ada", "Chemistry", 2, 10))
    _run(results.save_quiz_result("grace", "Roman Empire", 1, 5))

    listed = _run(results.get_quiz_results_for_user("ada"))
    assert [item.topic_name for item in listed] == ["Chemistry", "Roman Empire"]
    assert listed[1].id == first
    assert listed[1].percentage == 100.0
    assert listed[0].percentage == 20.0


@pytest.mark.parametrize(
    "score, total",
    [(0, 0), (-1, 5), (6, 5)],
)
def test_result_bounds_are_enforced(results, score, total):
    with pytest.raises(ValueError):
        _run(results.save_quiz_result("ada", "Roman Empire", score, total))
    assert _run(results.get_quiz_results_for_user("ada")) == []


def test_result_limit(store):
    results = QuizResultRepository(store, limit=3)
    for score in range(5):
        _run(results.save_quiz_result("ada", f"T{score}", score, 5))
    listed = _run(results.get_quiz_results_for_user("ada"))
    assert [item.topic_name for item in listed] == ["T4", "T3", "T2"]


def test_open_repositories_share_one_store(tmp_path):
    topics, results = open_repositories(tmp_path, topic_limit=5, result_limit=5)
    _run(topics.save_topic("Roman Empire", "ada"))
    _run(results.save_quiz_result("ada", "Roman Empire", 3, 5))

    assert (tmp_path / "topics.json").exists()
    assert (tmp_path / "quiz_results.json").exists()
