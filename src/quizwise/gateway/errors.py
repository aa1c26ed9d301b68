"""Failure types raised by the generation gateway."""

from __future__ import annotations

__all__ = [
    "GatewayError",
    "GenerationError",
    "EvaluationError",
    "ChatTextError",
    "ChatMediaError",
]


class GatewayError(RuntimeError):
    """Base class for model call failures."""


class GenerationError(GatewayError):
    """Question generation failed or returned unusable output."""


class EvaluationError(GatewayError):
    """Answer evaluation failed or returned unusable output."""


class ChatTextError(GatewayError):
    """The text stage of a chat turn failed; the whole turn fails."""


class ChatMediaError(GatewayError):
    """Image or speech synthesis failed; the turn continues without it."""
