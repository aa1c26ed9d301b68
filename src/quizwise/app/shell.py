"""Application shell: wires topic entry, generation, the quiz session,
persistence and chat together for a single user.

The shell is UI-agnostic. The Textual app and the console loops call its
methods and render :attr:`QuizShell.session` plus the queued notices.
Failures a user can trigger never escape as exceptions. They become
:class:`Notice` entries and the session stays consistent. Persistence
is best-effort and runs in background tasks that :meth:`QuizShell.drain`
waits for.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Literal, Optional, Sequence

from quizwise.chat.session import ChatBusyError, ChatMessage, ChatSession
from quizwise.core.files import compose_topic_prompt
from quizwise.gateway.errors import ChatTextError, EvaluationError, GenerationError
from quizwise.gateway.models import Evaluation
from quizwise.quiz import session as quiz
from quizwise.quiz.session import Feedback, QuizSession, SessionError, SessionPhase
from quizwise.store.documents import PersistenceError
from quizwise.store.results import QuizResult, QuizResultRepository
from quizwise.store.topics import Topic, TopicRepository

__all__ = ["Library", "Notice", "QuizShell", "ShellSettings"]

NoticeLevel = Literal["error", "warning", "info"]


@dataclass(frozen=True)
class Notice:
    """A dismissible message for whichever surface is showing the shell."""

    level: NoticeLevel
    title: str
    detail: str = ""


@dataclass(frozen=True)
class Library:
    topics: tuple[Topic, ...] = ()
    results: tuple[QuizResult, ...] = ()

    @property
    def favourites(self) -> tuple[Topic, ...]:
        return tuple(topic for topic in self.topics if topic.is_favourite)


@dataclass(frozen=True)
class ShellSettings:
    question_counts: tuple[int, ...] = quiz.DEFAULT_COUNTS
    default_count: int = 10
    history_window: int = 20
    include_audio: bool = True
    default_chat_topic: str = "general knowledge"

    @classmethod
    def from_config(cls, config: Any) -> "ShellSettings":
        return cls(
            question_counts=config.quiz.question_counts,
            default_count=config.quiz.default_count,
            history_window=config.quiz.history_window,
            include_audio=config.chat.include_audio,
            default_chat_topic=config.chat.default_topic,
        )


@dataclass
class _Pending:
    topic_id: Optional[str] = None
    history: list[str] = field(default_factory=list)


class QuizShell:
    def __init__(
        self,
        gateway: Any,
        *,
        topics: Optional[TopicRepository] = None,
        results: Optional[QuizResultRepository] = None,
        user_id: Optional[str] = None,
        settings: Optional[ShellSettings] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._gateway = gateway
        self._topics = topics
        self._results = results
        self._user_id = user_id or None
        self._settings = settings or ShellSettings()
        self._logger = logger or logging.getLogger(__name__)
        self._session = quiz.new_session()
        self._notices: list[Notice] = []
        self._sidebar_topic = ""
        self._chat: Optional[ChatSession] = None
        self._chat_open = False
        self._generation: Optional[asyncio.Future] = None
        self._epoch = 0
        self._background: set[asyncio.Task] = set()

    @property
    def session(self) -> QuizSession:
        return self._session

    @property
    def settings(self) -> ShellSettings:
        return self._settings

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    @property
    def sidebar_topic(self) -> str:
        return self._sidebar_topic

    @property
    def notices(self) -> tuple[Notice, ...]:
        return tuple(self._notices)

    def pop_notices(self) -> list[Notice]:
        """Return queued notices and clear the queue."""
        queued, self._notices = self._notices, []
        return queued

    def dismiss(self, notice: Notice) -> None:
        if notice in self._notices:
            self._notices.remove(notice)

    def select_topic(self, name: str) -> str:
        """Pre-fill the topic field; the quiz still has to be submitted."""
        self._sidebar_topic = name.strip()
        return self._sidebar_topic

    async def create_quiz(
        self,
        topic: str,
        count: Optional[int] = None,
        *,
        context: Optional[str] = None,
    ) -> QuizSession:
        """Generate questions for ``topic`` and start the quiz.

        On failure the session returns to topic entry and an error notice
        is queued. Calling :meth:`quit` while this awaits the model discards
        the late result.
        """
        count = count or self._settings.default_count
        try:
            self._session = quiz.submit_topic(
                self._session,
                topic,
                count,
                allowed_counts=self._settings.question_counts,
            )
        except SessionError as exc:
            self._notify("error", "Cannot start quiz", str(exc))
            return self._session

        self._epoch += 1
        epoch = self._epoch
        name = self._session.topic or ""
        if self._chat is not None and self._chat.topic != name:
            self._chat = None

        pending = await self._prepare_topic(name)
        if epoch != self._epoch:
            return self._session

        self._logger.info(
            "Starting quiz generation",
            extra={
                "count": count,
                "history_size": len(pending.history),
                "has_context": bool(context),
                "authenticated": self.is_authenticated,
            },
        )
        request = asyncio.ensure_future(
            self._gateway.generate_questions(
                compose_topic_prompt(name, context), count, pending.history
            )
        )
        self._generation = request
        try:
            questions = await request
        except asyncio.CancelledError:
            if epoch != self._epoch:
                self._logger.info("Discarded cancelled quiz generation")
                return self._session
            raise
        except GenerationError as exc:
            if epoch != self._epoch:
                return self._session
            self._logger.error(
                "Quiz generation failed", extra={"reason": str(exc)}
            )
            self._session = quiz.fail_generation(self._session)
            self._notify(
                "error",
                "Failed to generate quiz",
                "Please try a different topic.",
            )
            return self._session
        finally:
            if self._generation is request:
                self._generation = None

        if epoch != self._epoch:
            return self._session
        try:
            self._session = quiz.receive_questions(self._session, questions)
        except SessionError:
            self._session = quiz.fail_generation(self._session)
            self._notify(
                "error", "Failed to generate quiz", "No questions were generated."
            )
            return self._session

        if pending.topic_id and self._topics is not None:
            self._spawn(
                self._topics.add_questions_to_topic(
                    pending.topic_id,
                    [item.question for item in questions],
                    user_id=self._user_id,
                ),
                "Could not save question history",
            )
        return self._session

    def select_answer(self, option: str) -> Optional[Feedback]:
        try:
            self._session = quiz.select_answer(self._session, option)
        except SessionError as exc:
            self._notify("warning", "Answer not recorded", str(exc))
            return None
        return self._session.current_feedback

    async def next_question(self) -> QuizSession:
        try:
            self._session = quiz.advance(self._session)
        except SessionError as exc:
            self._notify("info", "Not yet", str(exc))
            return self._session
        if self._session.phase is SessionPhase.FINISHED:
            self._logger.info(
                "Quiz finished",
                extra={
                    "score": self._session.final_score,
                    "total": self._session.total_questions,
                },
            )
            if self.is_authenticated and self._results is not None:
                self._spawn(
                    self._results.save_quiz_result(
                        self._user_id,
                        self._session.topic or "",
                        self._session.final_score or 0,
                        self._session.total_questions,
                    ),
                    "Could not save quiz result",
                )
        return self._session

    def quit(self) -> QuizSession:
        """Abandon the attempt, cancelling any in-flight generation."""
        self._epoch += 1
        if self._generation is not None and not self._generation.done():
            self._generation.cancel()
        self._generation = None
        self._session = quiz.abort(self._session)
        self._sidebar_topic = ""
        return self._session

    restart = quit

    async def explain_answer(self) -> Optional[Evaluation]:
        """Ask the model to explain the recorded answer to the current question.

        The score is unaffected; grading stays an exact match.
        """
        question = self._session.current_question
        feedback = self._session.current_feedback
        if question is None or feedback is None:
            self._notify("info", "Nothing to explain", "Answer a question first.")
            return None
        try:
            return await self._gateway.evaluate_answer(
                question.question,
                feedback.selected,
                question.correct_answer,
                self._session.topic or "",
            )
        except EvaluationError as exc:
            self._logger.error(
                "Answer evaluation failed", extra={"reason": str(exc)}
            )
            self._notify(
                "error", "Could not explain answer", "Please try again later."
            )
            return None

    @property
    def chat_open(self) -> bool:
        return self._chat_open

    @property
    def chat(self) -> ChatSession:
        if self._chat is None:
            self._chat = ChatSession(self.chat_topic, logger=self._logger)
        return self._chat

    @property
    def chat_topic(self) -> str:
        if self._chat is not None:
            return self._chat.topic
        return (
            self._session.topic
            or self._sidebar_topic
            or self._settings.default_chat_topic
        )

    def open_chat(self) -> ChatSession:
        self._chat_open = True
        return self.chat

    def resume_chat(self, chat: ChatSession) -> ChatSession:
        """Adopt a previously exported transcript as the open chat."""
        self._chat = chat
        self._chat_open = True
        return chat

    def close_chat(self) -> None:
        self._chat_open = False

    def toggle_chat(self) -> bool:
        if self._chat_open:
            self.close_chat()
        else:
            self.open_chat()
        return self._chat_open

    async def send_chat(
        self, text: str, *, include_audio: Optional[bool] = None
    ) -> Optional[ChatMessage]:
        if include_audio is None:
            include_audio = self._settings.include_audio
        try:
            return await self.chat.send(
                self._gateway, text, include_audio=include_audio
            )
        except ChatBusyError as exc:
            self._notify("info", "Assistant is busy", str(exc))
        except ChatTextError as exc:
            self._logger.error("Chat turn failed", extra={"reason": str(exc)})
            self._notify(
                "error",
                "AI Error",
                "The AI assistant is having trouble. Please try again later.",
            )
        return None

    async def load_library(self) -> Library:
        """Return the signed-in user's topics and recent results."""
        if not self.is_authenticated:
            return Library()
        topics: Sequence[Topic] = ()
        results: Sequence[QuizResult] = ()
        try:
            if self._topics is not None:
                topics = await self._topics.get_topics_for_user(self._user_id)
            if self._results is not None:
                results = await self._results.get_quiz_results_for_user(
                    self._user_id
                )
        except PersistenceError as exc:
            self._logger.warning(
                "Could not load library", extra={"reason": str(exc)}
            )
            self._notify("warning", "Could not load your library", str(exc))
        return Library(topics=tuple(topics), results=tuple(results))

    async def toggle_favourite(self, topic: Topic) -> Optional[Topic]:
        if not self.is_authenticated or self._topics is None:
            return None
        try:
            return await self._topics.update_topic_favourite_status(
                topic.id, not topic.is_favourite, user_id=self._user_id
            )
        except PersistenceError as exc:
            self._notify("warning", "Could not update favourite", str(exc))
            return None

    async def drain(self) -> None:
        """Wait for outstanding background writes."""
        while self._background:
            await asyncio.gather(*list(self._background))

    async def _prepare_topic(self, name: str) -> _Pending:
        pending = _Pending()
        if not self.is_authenticated or self._topics is None:
            return pending
        window = self._settings.history_window
        try:
            existing = await self._topics.get_topic_by_name(self._user_id, name)
            if existing is not None:
                pending.topic_id = existing.id
                if window:
                    pending.history = list(existing.questions[-window:])
            else:
                pending.topic_id = await self._topics.save_topic(
                    name, self._user_id
                )
        except PersistenceError as exc:
            self._logger.warning(
                "Topic lookup failed; generating without history",
                extra={"reason": str(exc)},
            )
            self._notify("warning", "Could not save topic", str(exc))
        return pending

    def _spawn(self, operation: Awaitable[Any], failure_title: str) -> None:
        task = asyncio.ensure_future(self._guard(operation, failure_title))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _guard(self, operation: Awaitable[Any], failure_title: str) -> None:
        try:
            await operation
        except (PersistenceError, ValueError) as exc:
            self._logger.warning(failure_title, extra={"reason": str(exc)})
            self._notify("warning", failure_title, str(exc))

    def _notify(self, level: NoticeLevel, title: str, detail: str = "") -> None:
        self._notices.append(Notice(level=level, title=title, detail=detail))
