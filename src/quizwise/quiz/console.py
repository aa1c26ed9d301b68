"""Rich console loop for taking a quiz through the shell.

The loop renders the current question, reads one command per prompt from
``input_provider`` and delegates every state change to
:class:`~quizwise.app.shell.QuizShell`. It returns the session as it stood
when the loop ended, which is ``FINISHED`` after a completed quiz.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Literal, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .session import QuizSession, SessionPhase

if TYPE_CHECKING:  # pragma: no cover
    from quizwise.app.shell import QuizShell

InputProvider = Callable[[], str]


@dataclass(frozen=True)
class QuizCommand:
    """Normalized user command parsed from console input."""

    type: Literal["select", "next", "explain", "quit"]
    choice: Optional[int] = None


def parse_quiz_command(raw: Optional[str], option_count: int) -> Optional[QuizCommand]:
    """Parse console input; options may be given as ``A``-style letters or numbers."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return QuizCommand("next")
    if lowered in {"e", "explain"}:
        return QuizCommand("explain")
    if lowered in {"q", "quit", "exit"}:
        return QuizCommand("quit")
    if text.isdigit():
        index = int(text) - 1
    elif len(text) == 1 and text.isalpha():
        index = ord(text.upper()) - ord("A")
    else:
        return None
    if 0 <= index < option_count:
        return QuizCommand("select", index)
    return None


async def run_console_quiz(
    shell: "QuizShell",
    console: Console,
    input_provider: InputProvider,
    *,
    topic: str,
    count: Optional[int] = None,
    context: Optional[str] = None,
) -> QuizSession:
    with console.status(f"Generating a quiz about {topic}..."):
        session = await shell.create_quiz(topic, count, context=context)
    _print_notices(shell, console)
    if session.phase is not SessionPhase.ACTIVE:
        return session

    while shell.session.phase is SessionPhase.ACTIVE:
        _render_question(console, shell.session)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return await _leave(shell)
        question = shell.session.current_question
        assert question is not None
        command = parse_quiz_command(raw, len(question.options))
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Quiz abandoned; no result was saved.[/]")
            return await _leave(shell)
        if command.type == "select" and command.choice is not None:
            feedback = shell.select_answer(question.options[command.choice])
            if feedback is not None:
                _render_feedback(
                    console,
                    feedback.is_correct,
                    feedback.explanation,
                    question.correct_answer,
                )
        elif command.type == "next":
            await shell.next_question()
        elif command.type == "explain":
            evaluation = await shell.explain_answer()
            if evaluation is not None:
                console.print(Panel(evaluation.feedback, title="Explanation"))
        _print_notices(shell, console)

    await shell.drain()
    _render_summary(console, shell.session)
    _print_notices(shell, console)
    return shell.session


async def _leave(shell: "QuizShell") -> QuizSession:
    session = shell.quit()
    await shell.drain()
    return session


def _render_question(console: Console, session: QuizSession) -> None:
    question = session.current_question
    assert question is not None
    feedback = session.current_feedback
    header = Text.assemble(
        (f"Question {session.index + 1}", "bold cyan"),
        (f" / {session.total_questions}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.question, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Option")
    for idx, option in enumerate(question.options):
        row = Text(option)
        if feedback is not None:
            if option == question.correct_answer:
                row.stylize("bold green")
            elif option == feedback.selected:
                row.stylize("bold red")
        table.add_row(chr(ord("A") + idx), row)
    console.print(table)

    keys = ", ".join(chr(ord("A") + idx) for idx in range(len(question.options)))
    if feedback is None:
        hint = f"Commands: choices [{keys}], quit"
    else:
        action = "finish" if session.is_last_question else "next"
        hint = f"Commands: n ({action}), e (explain), quit"
    console.print(
        Text(f"Score {session.score}/{session.answered_count} | {hint}", style="dim")
    )


def _render_feedback(
    console: Console, is_correct: bool, explanation: str, correct_answer: str
) -> None:
    if is_correct:
        console.print(Panel(explanation, title="Correct!", border_style="green"))
        return
    body = f"The correct answer is: {correct_answer}\n\n{explanation}"
    console.print(Panel(body, title="Incorrect", border_style="red"))


def _render_summary(console: Console, session: QuizSession) -> None:
    total = session.total_questions
    score = session.final_score or 0
    accuracy = (score / total) if total else 0.0
    table = Table(title="Quiz Summary", box=box.SIMPLE_HEAVY)
    table.add_column("Topic")
    table.add_column("Score", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_row(session.topic or "", f"{score}/{total}", f"{accuracy:.0%}")
    console.print()
    console.print(table)


def _print_notices(shell: "QuizShell", console: Console) -> None:
    styles = {"error": "red", "warning": "yellow", "info": "cyan"}
    for notice in shell.pop_notices():
        style = styles.get(notice.level, "white")
        detail = f": {notice.detail}" if notice.detail else ""
        console.print(f"[{style}]{notice.title}[/]{detail}")
