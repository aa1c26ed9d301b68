"""Configuration management for quizwise.

Settings live in ``quizwise.toml`` under the workspace ``config`` directory.
Every key has a default, so a missing file is not an error. Unknown keys are
rejected so typos surface instead of silently falling back to defaults.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from quizwise.core import config as toml_mod
from quizwise.core import workspace as workspace_mod
from quizwise.core.config import TomlConfigError

CONFIG_PATH_ENV = "QUIZWISE_CONFIG"
CONFIG_FILENAME = "quizwise.toml"


class ConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class PathsConfig:
    data_home_override: Optional[Path]


@dataclass(frozen=True)
class OpenAIConfig:
    chat_model: str
    image_model: str
    speech_model: str
    voice: str
    temperature: float
    max_output_tokens: int
    api_base: Optional[str]
    request_timeout_seconds: int


@dataclass(frozen=True)
class QuizConfig:
    question_counts: tuple[int, ...]
    default_count: int
    options_per_question: int
    history_window: int
    max_context_bytes: int


@dataclass(frozen=True)
class LibraryConfig:
    topic_limit: int
    result_limit: int


@dataclass(frozen=True)
class ChatConfig:
    include_audio: bool
    default_topic: str


@dataclass(frozen=True)
class AccountConfig:
    user_id: Optional[str]


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizwiseConfig:
    paths: PathsConfig
    openai: OpenAIConfig
    quiz: QuizConfig
    library: LibraryConfig
    chat: ChatConfig
    account: AccountConfig
    logging: LoggingConfig


def _section(tree: Mapping[str, Any], *names: str) -> Mapping[str, Any]:
    node: Any = tree
    for name in names:
        node = node.get(name, {})
        if not isinstance(node, Mapping):
            raise ConfigError(f"{'.'.join(names)} table must be a mapping.")
    return node


def _build_openai(section: Mapping[str, Any]) -> OpenAIConfig:
    prefix = "providers.openai"
    return OpenAIConfig(
        chat_model=toml_mod.require_string(
            section.get("chat_model"), field=f"{prefix}.chat_model"
        ),
        image_model=toml_mod.require_string(
            section.get("image_model"), field=f"{prefix}.image_model"
        ),
        speech_model=toml_mod.require_string(
            section.get("speech_model"), field=f"{prefix}.speech_model"
        ),
        voice=toml_mod.require_string(
            section.get("voice"), field=f"{prefix}.voice"
        ),
        temperature=toml_mod.require_float_range(
            section.get("temperature"),
            field=f"{prefix}.temperature",
            min_value=0.0,
            max_value=2.0,
        ),
        max_output_tokens=toml_mod.require_positive_int(
            section.get("max_output_tokens"),
            field=f"{prefix}.max_output_tokens",
        ),
        api_base=toml_mod.optional_string(
            section.get("api_base"), field=f"{prefix}.api_base"
        ),
        request_timeout_seconds=toml_mod.require_positive_int(
            section.get("request_timeout_seconds"),
            field=f"{prefix}.request_timeout_seconds",
        ),
    )


def _build_quiz(section: Mapping[str, Any]) -> QuizConfig:
    counts = toml_mod.require_int_choices(
        section.get("question_counts"), field="quiz.question_counts"
    )
    default_count = toml_mod.require_positive_int(
        section.get("default_count"), field="quiz.default_count"
    )
    if default_count not in counts:
        raise ConfigError(
            "quiz.default_count must be one of quiz.question_counts."
        )
    return QuizConfig(
        question_counts=counts,
        default_count=default_count,
        options_per_question=toml_mod.require_non_negative_int(
            section.get("options_per_question"),
            field="quiz.options_per_question",
        ),
        history_window=toml_mod.require_non_negative_int(
            section.get("history_window"), field="quiz.history_window"
        ),
        max_context_bytes=toml_mod.require_positive_int(
            section.get("max_context_bytes"), field="quiz.max_context_bytes"
        ),
    )


def _build_library(section: Mapping[str, Any]) -> LibraryConfig:
    return LibraryConfig(
        topic_limit=toml_mod.require_positive_int(
            section.get("topic_limit"), field="library.topic_limit"
        ),
        result_limit=toml_mod.require_positive_int(
            section.get("result_limit"), field="library.result_limit"
        ),
    )


def _build_chat(section: Mapping[str, Any]) -> ChatConfig:
    return ChatConfig(
        include_audio=toml_mod.require_bool(
            section.get("include_audio"), field="chat.include_audio"
        ),
        default_topic=toml_mod.require_string(
            section.get("default_topic"), field="chat.default_topic"
        ),
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = toml_mod.require_string(
        section.get("level"), field="logging.level"
    ).upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(
            "logging.level must be one of "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    verbose = toml_mod.require_bool(
        section.get("verbose"), field="logging.verbose"
    )
    return LoggingConfig(level=level, verbose=verbose)


def _build_config(tree: Mapping[str, Any]) -> QuizwiseConfig:
    try:
        return QuizwiseConfig(
            paths=PathsConfig(
                data_home_override=toml_mod.optional_path(
                    _section(tree, "paths").get("data_home"),
                    field="paths.data_home",
                )
            ),
            openai=_build_openai(_section(tree, "providers", "openai")),
            quiz=_build_quiz(_section(tree, "quiz")),
            library=_build_library(_section(tree, "library")),
            chat=_build_chat(_section(tree, "chat")),
            account=AccountConfig(
                user_id=toml_mod.optional_string(
                    _section(tree, "account").get("user_id"),
                    field="account.user_id",
                )
            ),
            logging=_build_logging(_section(tree, "logging")),
        )
    except TomlConfigError as exc:
        raise ConfigError(str(exc)) from exc


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Return the config path from the argument, ``QUIZWISE_CONFIG`` or workspace."""

    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().resolve()
    env_override = env_map.get(CONFIG_PATH_ENV)
    if env_override:
        return Path(env_override).expanduser().resolve()
    try:
        layout = workspace_mod.ensure_workspace(env=env_map, create=False)
    except workspace_mod.WorkspaceError as exc:
        raise ConfigError(str(exc)) from exc
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
) -> QuizwiseConfig:
    """Load the TOML config on top of the defaults and validate it.

    An explicitly requested file must exist. The implicit workspace file is
    optional.
    """

    path = resolve_config_path(explicit_path=explicit_path, env=env)
    tree = default_tree()
    env_map = os.environ if env is None else env
    required = explicit_path is not None or bool(env_map.get(CONFIG_PATH_ENV))
    if required or path.exists():
        try:
            document = toml_mod.load_toml(path)
            toml_mod.merge_defaults(tree, document)
        except TomlConfigError as exc:
            raise ConfigError(str(exc)) from exc
    return _build_config(tree)


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return copy.deepcopy(_DEFAULTS)


def default_config() -> QuizwiseConfig:
    return _build_config(default_tree())


def config_template() -> str:
    """Return the TOML template written by ``quizwise init``."""

    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(
    path: Path, *, overwrite: bool = False, mode: int = 0o600
) -> Path:
    try:
        return toml_mod.write_toml_template(
            path, template=config_template(), overwrite=overwrite, mode=mode
        )
    except TomlConfigError as exc:
        raise ConfigError(str(exc)) from exc


_DEFAULTS: Dict[str, Any] = {
    "paths": {
        "data_home": None,
    },
    "providers": {
        "openai": {
            "chat_model": "gpt-4o-mini",
            "image_model": "gpt-image-1",
            "speech_model": "gpt-4o-mini-tts",
            "voice": "alloy",
            "temperature": 0.7,
            "max_output_tokens": 4000,
            "api_base": None,
            "request_timeout_seconds": 120,
        },
    },
    "quiz": {
        "question_counts": [5, 10, 20],
        "default_count": 10,
        "options_per_question": 4,
        "history_window": 20,
        "max_context_bytes": 1024 * 1024,
    },
    "library": {
        "topic_limit": 50,
        "result_limit": 20,
    },
    "chat": {
        "include_audio": True,
        "default_topic": "general knowledge",
    },
    "account": {
        "user_id": None,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# QuizWise configuration

[paths]
# Set to override the default data directory (~/.quizwise-data)
# data_home = "~/my-quizwise-data"

[providers.openai]
# Model used for question generation, answer evaluation and chat text
chat_model = "gpt-4o-mini"
# Model used when a chat answer benefits from an illustration
image_model = "gpt-image-1"
# Text-to-speech model and voice for spoken chat answers
speech_model = "gpt-4o-mini-tts"
voice = "alloy"
# Sampling temperature (0.0-2.0)
temperature = 0.7
max_output_tokens = 4000
# Optional API base override
# api_base = "https://api.openai.com/v1"
request_timeout_seconds = 120

[quiz]
# Question counts offered when creating a quiz
question_counts = [5, 10, 20]
default_count = 10
# Options each generated question must carry (0 disables the check)
options_per_question = 4
# Previously asked questions sent to the model to avoid repeats
history_window = 20
# Upper bound for .txt context files, in bytes
max_context_bytes = 1048576

[library]
# How many saved topics and quiz results to show
topic_limit = 50
result_limit = 20

[chat]
# Attach spoken audio to chat answers
include_audio = true
# Chat topic used before any quiz has been started
default_topic = "general knowledge"

[account]
# Results and topics are saved only when a user id is set
# user_id = "me@example.com"

[logging]
level = "INFO"
verbose = false
"""
