"""Typed records exchanged with the model plus strict payload validation."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping, Optional

__all__ = [
    "Question",
    "Evaluation",
    "ChatReply",
    "extract_json_object",
    "validate_question",
    "parse_evaluation",
    "parse_chat_text",
]

_FENCED_JSON = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL)


@dataclass(frozen=True)
class Question:
    """A generated multiple-choice question."""

    question: str
    options: tuple[str, ...]
    correct_answer: str
    explanation: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, Any],
        *,
        expected_options: int = 0,
    ) -> "Question":
        """Build a question from its wire form, validating it first."""
        validate_question(payload, expected_options=expected_options)
        return cls(
            question=payload["question"].strip(),
            options=tuple(payload["options"]),
            correct_answer=payload["correctAnswer"],
            explanation=payload["explanation"].strip(),
        )


@dataclass(frozen=True)
class Evaluation:
    is_correct: bool
    feedback: str


@dataclass(frozen=True)
class ChatReply:
    """Assistant answer with optional ``data:`` URIs for media."""

    response: str
    image: Optional[str] = None
    audio: Optional[str] = None

    def to_dict(self) -> MutableMapping[str, Any]:
        payload: MutableMapping[str, Any] = {"response": self.response}
        if self.image:
            payload["image"] = self.image
        if self.audio:
            payload["audio"] = self.audio
        return payload


def validate_question(
    payload: Mapping[str, Any], *, expected_options: int = 0
) -> None:
    """Validate one question in wire form.

    Requires non-empty question text, unique non-empty string options, a
    ``correctAnswer`` that matches one option exactly (case-sensitive) and a
    string explanation. ``expected_options`` enforces the option count when
    positive. Raises ValueError with a readable message otherwise.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("question must be an object")
    text = payload.get("question")
    if not isinstance(text, str) or not text.strip():
        raise ValueError("question text is required")
    options = payload.get("options")
    if not isinstance(options, list) or not options:
        raise ValueError("options must be a non-empty list")
    if not all(isinstance(opt, str) and opt.strip() for opt in options):
        raise ValueError("options must be non-empty strings")
    if len(set(options)) != len(options):
        raise ValueError("duplicate options detected")
    if expected_options and len(options) != expected_options:
        raise ValueError(
            f"expected {expected_options} options, got {len(options)}"
        )
    answer = payload.get("correctAnswer")
    if not isinstance(answer, str) or not answer:
        raise ValueError("correctAnswer is required")
    if answer not in options:
        raise ValueError("correctAnswer must match one of the options")
    if not isinstance(payload.get("explanation"), str):
        raise ValueError("explanation must be a string")


def extract_json_object(content: Optional[str]) -> Mapping[str, Any]:
    """Parse a JSON object from model output, tolerating a fenced block."""
    if not content or not content.strip():
        raise ValueError("model returned an empty response")
    fenced = _FENCED_JSON.search(content)
    payload = fenced.group(1) if fenced else content
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValueError(f"model response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("model response must be a JSON object")
    return data


def parse_evaluation(content: Optional[str]) -> Evaluation:
    data = extract_json_object(content)
    is_correct = data.get("isCorrect")
    feedback = data.get("feedback")
    if not isinstance(is_correct, bool):
        raise ValueError("isCorrect must be a boolean")
    if not isinstance(feedback, str) or not feedback.strip():
        raise ValueError("feedback is required")
    return Evaluation(is_correct=is_correct, feedback=feedback.strip())


def parse_chat_text(content: Optional[str]) -> tuple[str, bool]:
    """Return ``(response, image_required)`` from the text stage output."""
    data = extract_json_object(content)
    response = data.get("response")
    if not isinstance(response, str) or not response.strip():
        raise ValueError("response is required")
    image_required = data.get("imageRequired", False)
    if not isinstance(image_required, bool):
        raise ValueError("imageRequired must be a boolean")
    return response.strip(), image_required
