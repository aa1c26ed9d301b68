"""``quizwise play``: launch the Textual quiz app."""

from __future__ import annotations

import argparse
from typing import Any, Callable, Mapping, Sequence

from quizwise import runtime as runtime_mod

from .tui import QuizwiseApp


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizwise play",
        description=(
            "Open the QuizWise terminal app: create quizzes, review saved "
            "topics and chat with the assistant."
        ),
    )
    runtime_mod.add_common_arguments(parser)
    return parser


def build_app(runtime: runtime_mod.Runtime) -> QuizwiseApp:
    return QuizwiseApp(
        runtime_mod.build_shell(runtime),
        media_dir=runtime.layout.path_for("media"),
        max_context_bytes=runtime.config.quiz.max_context_bytes,
    )


def main(
    argv: Sequence[str] | None = None,
    *,
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

    runtime.logger.info("Launching app", extra={"log_path": str(runtime.log_path)})
    build_app(runtime).run()
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
