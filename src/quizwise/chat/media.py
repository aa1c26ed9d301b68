"""Write chat media attachments and transcripts to disk."""

from __future__ import annotations

import json
from pathlib import Path

from quizwise.gateway.audio import decode_data_uri

from .session import ChatSession

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "audio/wav": ".wav",
}


def save_data_uri(uri: str, directory: Path, stem: str) -> Path:
    """Decode ``uri`` into ``directory/<stem><ext>`` and return the path."""
    mime, payload = decode_data_uri(uri)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / f"{stem}{_EXTENSIONS.get(mime, '.bin')}"
    target.write_bytes(payload)
    return target


def save_transcript(chat: ChatSession, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(chat.to_dict(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return path


def load_transcript(path: Path) -> ChatSession:
    """Rebuild a chat session from a file written by :func:`save_transcript`."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Transcript is not valid JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Transcript must be a JSON object: {path}")
    return ChatSession.from_dict(payload)
