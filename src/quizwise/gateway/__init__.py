"""AI generation gateway: question generation, answer evaluation and chat."""

from __future__ import annotations

from .client import GatewaySettings, GenerationGateway
from .errors import (
    ChatMediaError,
    ChatTextError,
    EvaluationError,
    GatewayError,
    GenerationError,
)
from .models import ChatReply, Evaluation, Question, validate_question

__all__ = [
    "GatewaySettings",
    "GenerationGateway",
    "GatewayError",
    "GenerationError",
    "EvaluationError",
    "ChatTextError",
    "ChatMediaError",
    "ChatReply",
    "Evaluation",
    "Question",
    "validate_question",
]
