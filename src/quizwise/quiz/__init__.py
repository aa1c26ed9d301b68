"""Quiz session state machine and console loop."""

from __future__ import annotations

from .console import QuizCommand, parse_quiz_command, run_console_quiz
from .session import (
    DEFAULT_COUNTS,
    Feedback,
    QuizSession,
    SessionError,
    SessionPhase,
    abort,
    advance,
    fail_generation,
    new_session,
    receive_questions,
    select_answer,
    submit_topic,
)

__all__ = [
    "DEFAULT_COUNTS",
    "Feedback",
    "QuizCommand",
    "QuizSession",
    "SessionError",
    "SessionPhase",
    "abort",
    "advance",
    "fail_generation",
    "new_session",
    "parse_quiz_command",
    "receive_questions",
    "run_console_quiz",
    "select_answer",
    "submit_topic",
]
