"""OpenAI client construction shared by quizwise commands."""

from __future__ import annotations

import os
from typing import Any

from dotenv import load_dotenv
from openai import AsyncOpenAI

__all__ = ["ClientError", "load_async_client"]


class ClientError(RuntimeError):
    """Raised when an OpenAI client cannot be constructed."""


def load_async_client(
    *,
    api_base: str | None = None,
    timeout: float | None = None,
) -> Any:
    """Initialize an ``AsyncOpenAI`` client from environment credentials."""
    load_dotenv()
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ClientError(
            "OPENAI_API_KEY not found in environment. Set it or add to .env"
        )
    kwargs: dict[str, Any] = {"api_key": api_key}
    if api_base:
        kwargs["base_url"] = api_base
    if timeout is not None:
        kwargs["timeout"] = timeout
    return AsyncOpenAI(**kwargs)
