"""Core shared helpers for quizwise commands."""

from __future__ import annotations

from .ai import ClientError, load_async_client
from .config import (
    TomlConfigError,
    load_toml,
    merge_defaults,
    write_toml_template,
)
from .files import (
    MAX_CONTEXT_BYTES,
    ContextFileError,
    compose_topic_prompt,
    read_context_file,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "ClientError",
    "load_async_client",
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
    "MAX_CONTEXT_BYTES",
    "ContextFileError",
    "compose_topic_prompt",
    "read_context_file",
    "JsonLogFormatter",
    "configure_logger",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]
