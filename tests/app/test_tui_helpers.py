from __future__ import annotations

from fixtures import make_questions

from quizwise.app import tui
from quizwise.app.shell import Notice
from quizwise.chat.session import ChatMessage
from quizwise.gateway.audio import to_data_uri
from quizwise.quiz import session as quiz
from quizwise.quiz.session import SessionPhase
from quizwise.store.results import QuizResult
from quizwise.store.topics import Topic


def _finished(correct: int, total: int = 5) -> quiz.QuizSession:
    session = quiz.submit_topic(quiz.new_session(), "Roman Empire", total)
    session = quiz.receive_questions(session, make_questions(total))
    for index in range(total):
        question = session.current_question
        choice = question.correct_answer if index < correct else question.options[1]
        session = quiz.advance(quiz.select_answer(session, choice))
    return session


def test_view_for_each_phase():
    assert tui.view_for_phase(SessionPhase.AWAITING_TOPIC) == "topic-view"
    assert tui.view_for_phase(SessionPhase.GENERATING) == "loading-view"
    assert tui.view_for_phase(SessionPhase.ACTIVE) == "active-view"
    assert tui.view_for_phase(SessionPhase.FINISHED) == "finished-view"


def test_notice_severity_maps_levels():
    assert tui.notice_severity(Notice("error", "x")) == "error"
    assert tui.notice_severity(Notice("warning", "x")) == "warning"
    assert tui.notice_severity(Notice("info", "x")) == "information"


def test_question_texts():
    session = quiz.receive_questions(
        quiz.submit_topic(quiz.new_session(), "Roman Empire", 5),
        make_questions(5),
    )
    question = session.current_question
    assert tui.option_label(2, "Nero") == "C. Nero"
    assert tui.progress_text(session) == "Question 1 of 5"
    assert tui.feedback_text(None, question) == ""

    right = quiz.select_answer(session, question.correct_answer)
    assert tui.feedback_text(right.current_feedback, question) == (
        "Correct! Because of fact 1."
    )
    wrong = quiz.select_answer(session, question.options[1])
    assert tui.feedback_text(wrong.current_feedback, question) == (
        "Incorrect. The correct answer is: Option 1-A. Because of fact 1."
    )


def test_score_text():
    assert tui.score_text(_finished(4)) == (
        "You scored 4 out of 5 (80%) on Roman Empire."
    )
    assert tui.score_text(_finished(5)).startswith("You scored 5 out of 5 (100%)")


def test_sidebar_labels():
    topic = Topic(id="t1", user_id="ada", name="Chemistry", created_at="2024-05-01")
    assert tui.topic_label(topic) == "Chemistry"
    favourite = Topic(
        id="t1",
        user_id="ada",
        name="Chemistry",
        created_at="2024-05-01",
        is_favourite=True,
    )
    assert tui.topic_label(favourite) == "★ Chemistry"
    result = QuizResult(
        id="r1",
        user_id="ada",
        topic_name="Chemistry",
        score=3,
        total_questions=5,
        created_at="2024-05-01T10:00:00+00:00",
    )
    assert tui.history_label(result) == "Chemistry: 3/5 (2024-05-01)"


def test_media_lines_report_unsaved_attachments(tmp_path):
    message = ChatMessage(
        role="assistant",
        content="Here is a map.",
        image=to_data_uri(b"\x89PNG map", "image/png"),
        audio="not-a-uri",
    )

    lines = tui.media_lines(message, tmp_path)

    assert lines[0] == f"[image saved to {tmp_path / (message.id + '-image.png')}]"
    assert lines[1] == "[audio could not be saved]"
