"""Loading of optional ``.txt`` context that accompanies a quiz topic."""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "MAX_CONTEXT_BYTES",
    "ContextFileError",
    "compose_topic_prompt",
    "read_context_file",
]

MAX_CONTEXT_BYTES = 1024 * 1024
_ALLOWED_SUFFIXES = {".txt"}


class ContextFileError(ValueError):
    """Raised when a context file is rejected."""


def read_context_file(
    path: Path, *, max_bytes: int = MAX_CONTEXT_BYTES
) -> str:
    """Read ``path`` as UTF-8 text after checking its type and size.

    Only ``.txt`` files up to ``max_bytes`` are accepted. Undecodable bytes
    are replaced rather than rejected.
    """
    path = Path(path)
    if path.suffix.lower() not in _ALLOWED_SUFFIXES:
        raise ContextFileError(
            f"Only .txt files can be used as context: {path.name}"
        )
    if not path.is_file():
        raise ContextFileError(f"Context file not found: {path}")
    size = path.stat().st_size
    if size > max_bytes:
        raise ContextFileError(
            f"Context file is {size} bytes; the limit is {max_bytes} bytes."
        )
    with path.open("r", encoding="utf-8", errors="replace") as fh:
        return fh.read()


def compose_topic_prompt(topic: str, context: str | None = None) -> str:
    """Return the topic text sent to the model, with any context appended."""
    topic = topic.strip()
    if not context or not context.strip():
        return topic
    return f"{topic}\n\nContext:\n{context}"
