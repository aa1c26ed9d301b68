"""Topic chat: transcript, console loop and media files."""

from __future__ import annotations

from .media import load_transcript, save_data_uri, save_transcript
from .session import ChatBusyError, ChatMessage, ChatSession, greeting_for

__all__ = [
    "ChatBusyError",
    "ChatMessage",
    "ChatSession",
    "greeting_for",
    "load_transcript",
    "save_data_uri",
    "save_transcript",
]
