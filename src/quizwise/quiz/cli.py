"""``quizwise quiz``: take a single quiz in the terminal."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from rich.console import Console

from quizwise import runtime as runtime_mod
from quizwise.core.files import ContextFileError, read_context_file

from .console import InputProvider, run_console_quiz
from .session import SessionPhase


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizwise quiz",
        description=(
            "Generate a multiple-choice quiz about TOPIC and take it in the "
            "terminal. Exits 0 when the quiz is completed."
        ),
    )
    parser.add_argument("topic", nargs="+", help="Quiz topic.")
    parser.add_argument(
        "--count",
        type=int,
        help="Number of questions (one of the configured question counts).",
    )
    parser.add_argument(
        "--context-file",
        type=Path,
        help="Optional .txt file whose text is sent along with the topic.",
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

    context = None
    if args.context_file is not None:
        try:
            context = read_context_file(
                args.context_file,
                max_bytes=runtime.config.quiz.max_context_bytes,
            )
        except ContextFileError as exc:
            runtime_mod.print_error(str(exc))
            return 2
        except OSError as exc:
            runtime_mod.print_error(f"Cannot read context file: {exc}")
            return 2

    console = console or Console()
    if input_provider is None:
        input_provider = lambda: console.input("[bold green]Answer[/]> ")  # noqa: E731

    shell = runtime_mod.build_shell(runtime)
    session = asyncio.run(
        run_console_quiz(
            shell,
            console,
            input_provider,
            topic=" ".join(args.topic),
            count=args.count,
            context=context,
        )
    )
    runtime.logger.info(
        "Console quiz ended", extra={"phase": session.phase.value}
    )
    return 0 if session.phase is SessionPhase.FINISHED else 1


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
