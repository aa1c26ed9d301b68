"""Textual front end for the quiz shell.

Layout: a sidebar with the signed-in user's favourites, topics and history;
a stage that switches between topic entry, loading, the active question
and the final score; and a chat panel toggled with ``ctrl+t``. Model calls
run in Textual workers so the interface stays responsive.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import (
    Button,
    ContentSwitcher,
    Footer,
    Header,
    Input,
    Label,
    ListItem,
    ListView,
    LoadingIndicator,
    ProgressBar,
    RadioButton,
    RadioSet,
    Static,
    TextArea,
)

from quizwise.chat.media import save_data_uri
from quizwise.chat.session import ChatMessage
from quizwise.core.files import MAX_CONTEXT_BYTES, ContextFileError, read_context_file
from quizwise.gateway.models import Question
from quizwise.quiz.session import Feedback, QuizSession, SessionPhase
from quizwise.store.results import QuizResult
from quizwise.store.topics import Topic

from .shell import Library, Notice, QuizShell

_VIEWS = {
    SessionPhase.AWAITING_TOPIC: "topic-view",
    SessionPhase.GENERATING: "loading-view",
    SessionPhase.ACTIVE: "active-view",
    SessionPhase.FINISHED: "finished-view",
}
_SEVERITY = {"error": "error", "warning": "warning", "info": "information"}


def view_for_phase(phase: SessionPhase) -> str:
    return _VIEWS[phase]


def notice_severity(notice: Notice) -> str:
    return _SEVERITY.get(notice.level, "information")


def option_label(index: int, text: str) -> str:
    return f"{chr(ord('A') + index)}. {text}"


def progress_text(session: QuizSession) -> str:
    return f"Question {session.index + 1} of {session.total_questions}"


def feedback_text(feedback: Optional[Feedback], question: Question) -> str:
    if feedback is None:
        return ""
    if feedback.is_correct:
        return f"Correct! {feedback.explanation}".strip()
    return (
        f"Incorrect. The correct answer is: {question.correct_answer}. "
        f"{feedback.explanation}"
    ).strip()


def score_text(session: QuizSession) -> str:
    total = session.total_questions
    score = session.final_score or 0
    percent = round(100 * score / total) if total else 0
    return f"You scored {score} out of {total} ({percent}%) on {session.topic}."


def topic_label(topic: Topic) -> str:
    return f"★ {topic.name}" if topic.is_favourite else topic.name


def history_label(result: QuizResult) -> str:
    day = result.created_at[:10]
    return (
        f"{result.topic_name}: {result.score}/{result.total_questions}"
        f" ({day})"
    )


def media_lines(message: ChatMessage, media_dir: Path) -> List[str]:
    """Write the message attachments to ``media_dir`` and describe each one."""

    lines = []
    for kind, uri in (("image", message.image), ("audio", message.audio)):
        if not uri:
            continue
        try:
            path = save_data_uri(uri, media_dir, f"{message.id}-{kind}")
        except (ValueError, OSError):
            lines.append(f"[{kind} could not be saved]")
            continue
        lines.append(f"[{kind} saved to {path}]")
    return lines


class QuizwiseApp(App):
    TITLE = "QuizWise"
    CSS = """
#sidebar { width: 30; border-right: solid $primary; }
#sidebar ListView { height: auto; max-height: 12; }
.heading { text-style: bold; padding: 1 0 0 1; }
#stage { width: 1fr; padding: 1 2; }
#context-text { height: 6; }
#options Button { width: 100%; margin: 0 0 1 0; }
#options Button.correct { background: $success; }
#options Button.wrong { background: $error; }
#feedback { padding: 1 0; }
#chat-panel { width: 50; border-left: solid $accent; display: none; }
#chat-panel.open { display: block; }
#chat-log { height: 1fr; }
.chat-user { color: $accent; }
"""
    BINDINGS = [
        Binding("ctrl+t", "toggle_chat", "Chat"),
        Binding("ctrl+n", "next", "Next"),
        Binding("ctrl+e", "explain", "Explain"),
        Binding("ctrl+r", "restart", "Quit quiz"),
        Binding("ctrl+f", "favourite", "Favourite"),
    ]

    def __init__(
        self,
        shell: QuizShell,
        *,
        media_dir: Optional[Path] = None,
        max_context_bytes: int = MAX_CONTEXT_BYTES,
    ) -> None:
        super().__init__()
        self._shell = shell
        self._media_dir = media_dir
        self._max_context_bytes = max_context_bytes
        self._library = Library()
        self._topic_index: Dict[str, Topic] = {}
        self._rendered_index: Optional[int] = None
        self._saved_media: Dict[str, List[str]] = {}

    def compose(self) -> ComposeResult:
        settings = self._shell.settings
        yield Header()
        with Horizontal():
            with Vertical(id="sidebar"):
                yield Static("Favourites", classes="heading")
                yield ListView(id="favourites")
                yield Static("Topics", classes="heading")
                yield ListView(id="topics")
                yield Static("History", classes="heading")
                yield ListView(id="history")
            with ContentSwitcher(initial="topic-view", id="stage"):
                with Vertical(id="topic-view"):
                    yield Static("Create a new quiz", classes="heading")
                    yield Input(
                        placeholder="Topic, e.g. Roman Empire", id="topic-input"
                    )
                    with RadioSet(id="count"):
                        for count in settings.question_counts:
                            yield RadioButton(
                                f"{count} questions",
                                value=count == settings.default_count,
                                name=str(count),
                            )
                    yield Static("Optional context", classes="heading")
                    yield TextArea(id="context-text")
                    with Horizontal():
                        yield Input(
                            placeholder="Path to a .txt file", id="context-file"
                        )
                        yield Button("Load", id="load-context")
                    yield Button("Generate Quiz", id="create", variant="primary")
                with Vertical(id="loading-view"):
                    yield LoadingIndicator()
                    yield Static("Generating your quiz...")
                    yield Button("Cancel", id="cancel", variant="error")
                with Vertical(id="active-view"):
                    yield ProgressBar(total=1, show_eta=False, id="progress")
                    yield Static("", id="progress-text")
                    yield Static("", id="question-text")
                    yield Vertical(id="options")
                    yield Static("", id="feedback")
                    with Horizontal():
                        yield Button("Explain", id="explain")
                        yield Button("Next", id="next", variant="primary")
                        yield Button("Quit", id="quit", variant="error")
                with Vertical(id="finished-view"):
                    yield Static("Quiz Complete!", classes="heading")
                    yield Static("", id="score")
                    yield Button(
                        "Try another topic", id="restart", variant="primary"
                    )
            with Vertical(id="chat-panel"):
                yield Static("", id="chat-title", classes="heading")
                yield VerticalScroll(id="chat-log")
                yield Input(placeholder="Ask anything...", id="chat-input")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#sidebar").display = self._shell.is_authenticated
        if self._shell.is_authenticated:
            self.run_worker(self._refresh_library(), group="library")

    # Stage rendering

    async def _render_session(self) -> None:
        session = self._shell.session
        self.query_one("#stage", ContentSwitcher).current = view_for_phase(
            session.phase
        )
        if session.phase is SessionPhase.ACTIVE:
            await self._render_question(session)
        elif session.phase is SessionPhase.FINISHED:
            self.query_one("#score", Static).update(score_text(session))
            self._rendered_index = None
        else:
            self._rendered_index = None
        self._flush_notices()

    async def _render_question(self, session: QuizSession) -> None:
        question = session.current_question
        assert question is not None
        progress = self.query_one("#progress", ProgressBar)
        progress.update(total=session.total_questions, progress=session.index)
        self.query_one("#progress-text", Static).update(progress_text(session))
        self.query_one("#question-text", Static).update(question.question)
        options = self.query_one("#options", Vertical)
        if self._rendered_index != session.index:
            await options.remove_children()
            await options.mount_all(
                Button(option_label(idx, text), name=str(idx), classes="option")
                for idx, text in enumerate(question.options)
            )
            self._rendered_index = session.index
        feedback = session.current_feedback
        for button in options.query(Button):
            text = question.options[int(button.name or 0)]
            button.disabled = feedback is not None
            button.set_class(
                feedback is not None and text == question.correct_answer,
                "correct",
            )
            button.set_class(
                feedback is not None
                and text == feedback.selected
                and not feedback.is_correct,
                "wrong",
            )
        self.query_one("#feedback", Static).update(
            feedback_text(feedback, question)
        )
        self.query_one("#next", Button).disabled = feedback is None
        self.query_one("#next", Button).label = (
            "Finish" if session.is_last_question else "Next"
        )

    def _flush_notices(self) -> None:
        for notice in self._shell.pop_notices():
            self.notify(
                notice.detail or notice.title,
                title=notice.title,
                severity=notice_severity(notice),
            )

    # Quiz actions

    @on(Button.Pressed, "#create")
    def _create_pressed(self) -> None:
        topic = self.query_one("#topic-input", Input).value
        if not topic.strip():
            self.notify(
                "Please provide a topic to generate a quiz.",
                title="Topic is empty",
                severity="error",
            )
            return
        context = self.query_one("#context-text", TextArea).text
        self.query_one("#stage", ContentSwitcher).current = "loading-view"
        self.run_worker(
            self._create_quiz(topic, self._selected_count(), context),
            exclusive=True,
            group="quiz",
        )

    async def _create_quiz(self, topic: str, count: int, context: str) -> None:
        await self._shell.create_quiz(topic, count, context=context or None)
        await self._render_session()
        if self._shell.is_authenticated:
            await self._refresh_library()

    def _selected_count(self) -> int:
        pressed = self.query_one("#count", RadioSet).pressed_button
        if pressed is None or not pressed.name:
            return self._shell.settings.default_count
        return int(pressed.name)

    @on(Button.Pressed, "#load-context")
    def _load_context(self) -> None:
        raw = self.query_one("#context-file", Input).value.strip()
        if not raw:
            return
        try:
            text = read_context_file(
                Path(raw).expanduser(), max_bytes=self._max_context_bytes
            )
        except (ContextFileError, OSError) as exc:
            self.notify(str(exc), title="Context not loaded", severity="error")
            return
        self.query_one("#context-text", TextArea).load_text(text)
        self.notify(
            "The file content has been added as context.", title="File loaded"
        )

    @on(Button.Pressed, ".option")
    async def _option_pressed(self, event: Button.Pressed) -> None:
        question = self._shell.session.current_question
        if question is None:
            return
        index = int(event.button.name or 0)
        self._shell.select_answer(question.options[index])
        await self._render_session()

    @on(Button.Pressed, "#next")
    async def action_next(self) -> None:
        if self._shell.session.phase is not SessionPhase.ACTIVE:
            return
        await self._shell.next_question()
        await self._render_session()
        if self._shell.session.phase is SessionPhase.FINISHED:
            self.run_worker(self._after_finish(), group="library")

    async def _after_finish(self) -> None:
        await self._shell.drain()
        self._flush_notices()
        if self._shell.is_authenticated:
            await self._refresh_library()

    @on(Button.Pressed, "#explain")
    def action_explain(self) -> None:
        if self._shell.session.current_feedback is None:
            return
        self.run_worker(self._explain(), exclusive=True, group="explain")

    async def _explain(self) -> None:
        evaluation = await self._shell.explain_answer()
        if evaluation is not None:
            self.notify(
                evaluation.feedback,
                title="Correct" if evaluation.is_correct else "Not quite",
                timeout=20,
            )
        self._flush_notices()

    @on(Button.Pressed, "#quit")
    @on(Button.Pressed, "#restart")
    @on(Button.Pressed, "#cancel")
    async def action_restart(self) -> None:
        self._shell.quit()
        self.query_one("#topic-input", Input).value = ""
        await self._render_session()

    # Sidebar

    async def _refresh_library(self) -> None:
        self._library = await self._shell.load_library()
        self._topic_index = {topic.id: topic for topic in self._library.topics}
        await self._fill(
            "#favourites",
            [(topic.id, topic_label(topic)) for topic in self._library.favourites],
        )
        await self._fill(
            "#topics",
            [(topic.id, topic_label(topic)) for topic in self._library.topics],
        )
        await self._fill(
            "#history",
            [(result.id, history_label(result)) for result in self._library.results],
        )
        self._flush_notices()

    async def _fill(self, selector: str, rows: List[tuple[str, str]]) -> None:
        view = self.query_one(selector, ListView)
        await view.clear()
        await view.extend(ListItem(Label(text), name=key) for key, text in rows)

    @on(ListView.Selected, "#favourites, #topics")
    def _topic_selected(self, event: ListView.Selected) -> None:
        topic = self._topic_index.get(event.item.name or "")
        if topic is None:
            return
        name = self._shell.select_topic(topic.name)
        self.query_one("#topic-input", Input).value = name
        self.query_one("#context-text", TextArea).load_text("")

    def action_favourite(self) -> None:
        item = self.query_one("#topics", ListView).highlighted_child
        topic = self._topic_index.get(item.name or "") if item else None
        if topic is not None:
            self.run_worker(self._toggle_favourite(topic), group="library")

    async def _toggle_favourite(self, topic: Topic) -> None:
        await self._shell.toggle_favourite(topic)
        await self._refresh_library()

    # Chat

    async def action_quit(self) -> None:
        await self._shell.drain()
        self.exit()

    async def action_toggle_chat(self) -> None:
        is_open = self._shell.toggle_chat()
        panel = self.query_one("#chat-panel")
        panel.set_class(is_open, "open")
        if is_open:
            await self._render_chat()
            self.query_one("#chat-input", Input).focus()

    @on(Input.Submitted, "#chat-input")
    def _chat_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        if not text:
            return
        event.input.value = ""
        self.run_worker(self._send_chat(text), group="chat")

    async def _send_chat(self, text: str) -> None:
        pending = self._shell.send_chat(text)
        await self._render_chat(pending_text=text)
        await pending
        await self._render_chat()
        self._flush_notices()

    async def _render_chat(self, pending_text: Optional[str] = None) -> None:
        chat = self._shell.chat
        self.query_one("#chat-title", Static).update(f"Chat about {chat.topic}")
        log = self.query_one("#chat-log", VerticalScroll)
        await log.remove_children()
        widgets = [self._message_widget(message) for message in chat.messages]
        if pending_text is not None:
            widgets.append(Static(f"You: {pending_text}", classes="chat-user"))
            widgets.append(Static("Assistant is thinking..."))
        await log.mount_all(widgets)
        log.scroll_end(animate=False)

    def _message_widget(self, message: ChatMessage) -> Static:
        if message.role == "user":
            return Static(f"You: {message.content}", classes="chat-user")
        lines = [f"Assistant: {message.content}"]
        lines.extend(self._media_lines(message))
        return Static("\n".join(lines), markup=False)

    def _media_lines(self, message: ChatMessage) -> List[str]:
        if self._media_dir is None:
            return []
        if message.id not in self._saved_media:
            self._saved_media[message.id] = media_lines(message, self._media_dir)
        return self._saved_media[message.id]
