"""Rich console loop for the topic chat assistant."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from rich.console import Console
from rich.panel import Panel

from .media import save_data_uri
from .session import ChatMessage, ChatSession

if TYPE_CHECKING:  # pragma: no cover
    from quizwise.app.shell import QuizShell

InputProvider = Callable[[], str]

_EXIT_COMMANDS = {":quit", ":q", "quit", "exit"}


async def run_console_chat(
    shell: "QuizShell",
    console: Console,
    input_provider: InputProvider,
    *,
    media_dir: Optional[Path] = None,
    include_audio: Optional[bool] = None,
) -> ChatSession:
    chat = shell.open_chat()
    console.print(
        Panel(
            chat.messages[0].content,
            title=f"QuizWise Chat: {chat.topic}",
            subtitle="Type :q to leave",
        )
    )
    while True:
        try:
            prompt = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\nExiting chat.")
            break
        prompt = (prompt or "").strip()
        if prompt in _EXIT_COMMANDS:
            console.print("Goodbye!")
            break
        if not prompt:
            continue
        with console.status("Thinking..."):
            message = await shell.send_chat(prompt, include_audio=include_audio)
        for notice in shell.pop_notices():
            console.print(f"[red]{notice.title}:[/] {notice.detail}")
        if message is not None:
            render_reply(console, message, media_dir=media_dir)
    shell.close_chat()
    return chat


def render_reply(
    console: Console,
    message: ChatMessage,
    *,
    media_dir: Optional[Path] = None,
) -> list[Path]:
    """Print the reply and write its attachments to ``media_dir``."""

    console.print(Panel(message.content, title="Assistant"))
    saved: list[Path] = []
    for kind, uri in (("image", message.image), ("audio", message.audio)):
        if not uri:
            continue
        if media_dir is None:
            console.print(f"[dim]{kind.title()} attached (not saved).[/]")
            continue
        try:
            path = save_data_uri(uri, media_dir, f"{message.id}-{kind}")
        except (ValueError, OSError) as exc:
            console.print(f"[yellow]Could not save {kind}:[/] {exc}")
            continue
        saved.append(path)
        console.print(f"[cyan]{kind.title()}:[/] {path}")
    return saved
