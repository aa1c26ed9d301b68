"""``quizwise init``: create the workspace and a starter config."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from quizwise import config as config_mod
from quizwise.core import workspace as workspace_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizwise init",
        description=(
            "Bootstrap the QuizWise workspace, its subdirectories and a "
            "quizwise.toml template."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to QUIZWISE_DATA_HOME "
            "or ~/.quizwise-data)."
        ),
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing quizwise.toml with the template.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _format_created(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def main(
    argv: Sequence[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(env=env, path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"{exc}\n")
        return 2

    config_path = layout.path_for("config") / config_mod.CONFIG_FILENAME
    config_status = "exists"
    if args.force or not config_path.exists():
        try:
            config_mod.write_template(config_path, overwrite=True)
        except config_mod.ConfigError as exc:
            sys.stderr.write(f"{exc}\n")
            return 2
        config_status = "written"

    if args.quiet:
        return 0

    home_status = _format_created(layout.created, "home")
    lines = [f"Workspace ready at {layout.home} ({home_status})"]
    if layout.directories:
        lines.append("Subdirectories:")
        width = max(len(name) for name in layout.directories)
        for name, directory in layout.items():
            status = _format_created(layout.created, name)
            lines.append(f"  {name.ljust(width)}  {directory} ({status})")
    lines.append(f"Config: {config_path} ({config_status})")
    sys.stdout.write("\n".join(lines) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
