"""``quizwise library``: inspect saved topics and quiz results."""

from __future__ import annotations

import argparse
import asyncio
from typing import Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from quizwise import runtime as runtime_mod

from .documents import PersistenceError
from .results import QuizResult
from .topics import Topic


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizwise library",
        description="List saved topics and results for the signed-in user.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    topics_parser = subparsers.add_parser("topics", help="List saved topics.")
    topics_parser.add_argument(
        "--favourites",
        action="store_true",
        help="Only show favourite topics.",
    )
    runtime_mod.add_common_arguments(topics_parser)

    results_parser = subparsers.add_parser(
        "results", help="List recent quiz results."
    )
    runtime_mod.add_common_arguments(results_parser)

    favourite_parser = subparsers.add_parser(
        "favourite", help="Mark a topic as favourite."
    )
    favourite_parser.add_argument("topic_id", help="Topic id from `topics`.")
    favourite_parser.add_argument(
        "--off",
        action="store_true",
        help="Remove the favourite mark instead.",
    )
    runtime_mod.add_common_arguments(favourite_parser)
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
    env: Mapping[str, str] | None = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        runtime = runtime_mod.build_runtime(args, env=env, with_gateway=False)
    except runtime_mod.RuntimeSetupError as exc:
        runtime_mod.print_error(str(exc))
        return 2
    if runtime.user_id is None:
        runtime_mod.print_error(
            "No user id set. Pass --user, set QUIZWISE_USER or [account] user_id."
        )
        return 2

    console = console or Console()
    try:
        if args.command == "topics":
            topics = asyncio.run(
                runtime.topics.get_topics_for_user(runtime.user_id)
            )
            if args.favourites:
                topics = [topic for topic in topics if topic.is_favourite]
            _print_topics(console, topics)
        elif args.command == "results":
            results = asyncio.run(
                runtime.results.get_quiz_results_for_user(runtime.user_id)
            )
            _print_results(console, results)
        elif args.command == "favourite":
            topic = asyncio.run(
                runtime.topics.update_topic_favourite_status(
                    args.topic_id, not args.off, user_id=runtime.user_id
                )
            )
            state = "marked as favourite" if topic.is_favourite else "unmarked"
            console.print(f"Topic '{topic.name}' {state}.")
        else:  # pragma: no cover - argparse enforces choices
            raise RuntimeError(f"Unhandled library command: {args.command}")
    except PersistenceError as exc:
        runtime.logger.error(
            "Library command failed",
            extra={"command": args.command, "reason": str(exc)},
        )
        runtime_mod.print_error(str(exc))
        return 1
    return 0


def _print_topics(console: Console, topics: Sequence[Topic]) -> None:
    if not topics:
        console.print("No saved topics yet.")
        return
    table = Table(title="Topics", box=box.SIMPLE)
    table.add_column("Id", style="dim")
    table.add_column("Topic")
    table.add_column("Fav", justify="center")
    table.add_column("Questions asked", justify="right")
    table.add_column("Created")
    for topic in topics:
        table.add_row(
            topic.id,
            topic.name,
            "★" if topic.is_favourite else "",
            str(len(topic.questions)),
            topic.created_at[:10],
        )
    console.print(table)


def _print_results(console: Console, results: Sequence[QuizResult]) -> None:
    if not results:
        console.print("No quiz results yet.")
        return
    table = Table(title="Recent results", box=box.SIMPLE)
    table.add_column("Topic")
    table.add_column("Score", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Taken")
    for result in results:
        table.add_row(
            result.topic_name,
            f"{result.score}/{result.total_questions}",
            f"{result.percentage:.0f}%",
            result.created_at[:16].replace("T", " "),
        )
    console.print(table)


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
