"""``quizwise chat``: talk to the topic assistant in the terminal."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from rich.console import Console

from quizwise import runtime as runtime_mod

from .console import InputProvider, run_console_chat
from .media import load_transcript, save_transcript


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizwise chat",
        description=(
            "Chat with the QuizWise assistant about a topic. Images and "
            "spoken answers are saved under the workspace media directory."
        ),
    )
    parser.add_argument(
        "--topic",
        help="Chat topic (defaults to [chat] default_topic).",
    )
    parser.add_argument(
        "--no-audio",
        action="store_true",
        help="Skip text-to-speech for answers.",
    )
    parser.add_argument(
        "--transcript",
        type=Path,
        help=(
            "JSON transcript to resume from when it exists; the conversation "
            "is written back on exit."
        ),
    )
    runtime_mod.add_common_arguments(parser)
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
    env: Mapping[str, str] | None = None,
    client_factory: Callable[..., Any] | None = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        runtime = runtime_mod.build_runtime(
            args, env=env, client_factory=client_factory
        )
    except runtime_mod.RuntimeSetupError as exc:
        runtime_mod.print_error(str(exc))
        return 2

    shell = runtime_mod.build_shell(runtime)
    if args.topic:
        shell.select_topic(args.topic)
    transcript: Optional[Path] = args.transcript
    if transcript is not None and transcript.exists():
        try:
            shell.resume_chat(load_transcript(transcript))
        except (ValueError, OSError) as exc:
            runtime_mod.print_error(f"Cannot resume transcript: {exc}")
            return 2

    console = console or Console()
    if input_provider is None:
        input_provider = lambda: console.input("[bold green]You[/]> ")  # noqa: E731

    chat = asyncio.run(
        run_console_chat(
            shell,
            console,
            input_provider,
            media_dir=runtime.layout.path_for("media"),
            include_audio=False if args.no_audio else None,
        )
    )
    if transcript is not None:
        try:
            save_transcript(chat, transcript)
        except OSError as exc:
            runtime_mod.print_error(f"Cannot write transcript: {exc}")
            return 1
        console.print(f"Transcript saved to {transcript}")
    runtime.logger.info(
        "Console chat ended", extra={"messages": len(chat.messages)}
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
