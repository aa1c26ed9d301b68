"""Shared bootstrap for the quizwise subcommands.

Each command parses its own arguments, then asks :func:`build_runtime` for
the loaded config, the workspace, a configured logger, the AI gateway and
the repositories. Setup failures surface as :class:`RuntimeSetupError` so
the command can print one line and exit with status 2.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from quizwise import config as config_mod
from quizwise.app.shell import QuizShell, ShellSettings
from quizwise.core import workspace as workspace_mod
from quizwise.core.ai import ClientError, load_async_client
from quizwise.core.logging import configure_logger
from quizwise.gateway import GatewaySettings, GenerationGateway
from quizwise.store import (
    PersistenceError,
    QuizResultRepository,
    TopicRepository,
    open_repositories,
)

USER_ENV = "QUIZWISE_USER"
LOGGER_NAME = "quizwise"


class RuntimeSetupError(RuntimeError):
    """Raised when config, workspace or client setup fails."""


@dataclass(frozen=True)
class Runtime:
    config: config_mod.QuizwiseConfig
    layout: workspace_mod.WorkspaceLayout
    logger: logging.Logger
    log_path: Path
    gateway: Optional[GenerationGateway]
    topics: TopicRepository
    results: QuizResultRepository
    user_id: Optional[str]


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to quizwise.toml (defaults to QUIZWISE_CONFIG or the workspace).",
    )
    parser.add_argument(
        "--user",
        help=(
            "User id for saving topics and results (defaults to "
            f"{USER_ENV} or [account] user_id)."
        ),
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo log records to stderr.",
    )


def resolve_user(
    explicit: Optional[str],
    config: config_mod.QuizwiseConfig,
    env: Mapping[str, str] | None = None,
) -> Optional[str]:
    """Pick the user id from the flag, the environment, then the config."""

    env_map = os.environ if env is None else env
    for candidate in (explicit, env_map.get(USER_ENV), config.account.user_id):
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def load_settings(
    args: argparse.Namespace, *, env: Mapping[str, str] | None = None
) -> tuple[config_mod.QuizwiseConfig, workspace_mod.WorkspaceLayout]:
    """Load config and prepare the workspace it points at."""

    explicit = getattr(args, "config", None)
    try:
        cfg = config_mod.load_config(
            explicit_path=Path(explicit) if explicit else None, env=env
        )
        layout = workspace_mod.ensure_workspace(
            env=env, path=cfg.paths.data_home_override
        )
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        raise RuntimeSetupError(str(exc)) from exc
    return cfg, layout


def build_runtime(
    args: argparse.Namespace,
    *,
    env: Mapping[str, str] | None = None,
    client_factory: Callable[..., Any] | None = None,
    with_gateway: bool = True,
) -> Runtime:
    """Assemble everything a command needs.

    ``with_gateway=False`` skips the OpenAI client so read-only commands work
    without an API key.
    """
    cfg, layout = load_settings(args, env=env)
    verbose = bool(getattr(args, "verbose", False)) or cfg.logging.verbose
    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=layout.path_for("logs"),
        level=cfg.logging.level,
        verbose=verbose,
    )

    gateway = None
    if with_gateway:
        factory = client_factory or load_async_client
        try:
            client = factory(
                api_base=cfg.openai.api_base,
                timeout=cfg.openai.request_timeout_seconds,
            )
        except ClientError as exc:
            logger.error(
                "OpenAI client unavailable", extra={"reason": str(exc)}
            )
            raise RuntimeSetupError(str(exc)) from exc
        gateway = GenerationGateway(
            client, settings=GatewaySettings.from_config(cfg), logger=logger
        )

    try:
        topics, results = open_repositories(
            layout.path_for("store"),
            topic_limit=cfg.library.topic_limit,
            result_limit=cfg.library.result_limit,
        )
    except PersistenceError as exc:
        raise RuntimeSetupError(str(exc)) from exc
    user_id = resolve_user(getattr(args, "user", None), cfg, env)
    logger.info(
        "Runtime ready",
        extra={
            "workspace": str(layout.home),
            "authenticated": user_id is not None,
        },
    )
    return Runtime(
        config=cfg,
        layout=layout,
        logger=logger,
        log_path=log_path,
        gateway=gateway,
        topics=topics,
        results=results,
        user_id=user_id,
    )


def build_shell(runtime: Runtime) -> QuizShell:
    return QuizShell(
        runtime.gateway,
        topics=runtime.topics,
        results=runtime.results,
        user_id=runtime.user_id,
        settings=ShellSettings.from_config(runtime.config),
        logger=runtime.logger,
    )


def print_error(message: str) -> None:
    sys.stderr.write(message + "\n")
