"""Quiz attempt lifecycle as an immutable session plus transition functions.

A :class:`QuizSession` moves through ``AWAITING_TOPIC -> GENERATING ->
ACTIVE -> FINISHED``. Every transition returns a new session and never
mutates its input, so callers always hold a consistent snapshot. ``abort``
returns to a fresh ``AWAITING_TOPIC`` session from any phase.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence

from quizwise.gateway.models import Question

__all__ = [
    "DEFAULT_COUNTS",
    "Feedback",
    "QuizSession",
    "SessionError",
    "SessionPhase",
    "abort",
    "advance",
    "fail_generation",
    "new_session",
    "receive_questions",
    "select_answer",
    "submit_topic",
]

DEFAULT_COUNTS = (5, 10, 20)


class SessionError(RuntimeError):
    """Raised for transitions the current phase does not allow."""


class SessionPhase(str, Enum):
    AWAITING_TOPIC = "awaiting_topic"
    GENERATING = "generating"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class Feedback:
    """The recorded answer for one question."""

    selected: str
    is_correct: bool
    explanation: str


@dataclass(frozen=True)
class QuizSession:
    phase: SessionPhase = SessionPhase.AWAITING_TOPIC
    topic: Optional[str] = None
    requested_count: Optional[int] = None
    questions: tuple[Question, ...] = ()
    index: int = 0
    # One slot per question; ``None`` until that question is answered.
    feedback: tuple[Optional[Feedback], ...] = ()
    final_score: Optional[int] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase is not SessionPhase.ACTIVE:
            return None
        return self.questions[self.index]

    @property
    def current_feedback(self) -> Optional[Feedback]:
        if self.phase is not SessionPhase.ACTIVE:
            return None
        return self.feedback[self.index]

    @property
    def is_answered(self) -> bool:
        return self.current_feedback is not None

    @property
    def is_last_question(self) -> bool:
        return (
            self.phase is SessionPhase.ACTIVE
            and self.index == self.total_questions - 1
        )

    @property
    def answered_count(self) -> int:
        return sum(1 for entry in self.feedback if entry is not None)

    @property
    def score(self) -> int:
        return sum(1 for entry in self.feedback if entry and entry.is_correct)

    @property
    def progress(self) -> float:
        """Share of the quiz behind the displayed question, in ``[0, 1]``."""
        if not self.questions:
            return 0.0
        if self.phase is SessionPhase.FINISHED:
            return 1.0
        return self.index / self.total_questions


def new_session() -> QuizSession:
    return QuizSession()


def submit_topic(
    session: QuizSession,
    topic: str,
    count: int,
    *,
    allowed_counts: Sequence[int] = DEFAULT_COUNTS,
) -> QuizSession:
    _require_phase(session, SessionPhase.AWAITING_TOPIC, "submit a topic")
    name = (topic or "").strip()
    if not name:
        raise SessionError("Topic must not be empty.")
    if count not in allowed_counts:
        choices = ", ".join(str(item) for item in allowed_counts)
        raise SessionError(f"Question count must be one of: {choices}.")
    return QuizSession(
        phase=SessionPhase.GENERATING, topic=name, requested_count=count
    )


def receive_questions(
    session: QuizSession, questions: Sequence[Question]
) -> QuizSession:
    """Start answering. An empty question list is refused."""
    _require_phase(session, SessionPhase.GENERATING, "receive questions")
    if not questions:
        raise SessionError("Cannot start a quiz without questions.")
    return replace(
        session,
        phase=SessionPhase.ACTIVE,
        questions=tuple(questions),
        index=0,
        feedback=(None,) * len(questions),
    )


def fail_generation(session: QuizSession) -> QuizSession:
    _require_phase(session, SessionPhase.GENERATING, "fail generation")
    return new_session()


def select_answer(session: QuizSession, option: str) -> QuizSession:
    """Record ``option`` for the current question if it has no answer yet.

    Answers are write-once: selecting again on an answered question returns
    ``session`` unchanged.
    """
    _require_phase(session, SessionPhase.ACTIVE, "select an answer")
    question = session.questions[session.index]
    if option not in question.options:
        raise SessionError(f"'{option}' is not an option for this question.")
    if session.feedback[session.index] is not None:
        return session
    entry = Feedback(
        selected=option,
        is_correct=option == question.correct_answer,
        explanation=question.explanation,
    )
    feedback = list(session.feedback)
    feedback[session.index] = entry
    return replace(session, feedback=tuple(feedback))


def advance(session: QuizSession) -> QuizSession:
    """Move past the answered current question, finishing after the last."""
    _require_phase(session, SessionPhase.ACTIVE, "advance")
    if session.feedback[session.index] is None:
        raise SessionError("Answer the current question before moving on.")
    if session.index + 1 < session.total_questions:
        return replace(session, index=session.index + 1)
    return replace(
        session, phase=SessionPhase.FINISHED, final_score=session.score
    )


def abort(session: QuizSession) -> QuizSession:  # noqa: ARG001
    return new_session()


def _require_phase(
    session: QuizSession, phase: SessionPhase, action: str
) -> None:
    if session.phase is not phase:
        raise SessionError(
            f"Cannot {action} while the quiz is {session.phase.value}."
        )
