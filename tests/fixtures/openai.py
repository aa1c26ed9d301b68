"""Fake ``AsyncOpenAI`` client shared across tests.

The gateway only touches ``chat.completions.create``, ``images.generate`` and
``audio.speech.create``. The fake mirrors that surface with coroutines, records
every request and replays queued responses. Queue an exception instance to
make the next call raise it.
"""

from __future__ import annotations

import base64
import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional


def question_payload(
    index: int, *, options: int = 4, answer: int = 0
) -> Dict[str, Any]:
    choices = [f"Option {index}-{letter}" for letter in "ABCDEFGH"[:options]]
    return {
        "question": f"Question {index}?",
        "options": choices,
        "correctAnswer": choices[answer],
        "explanation": f"Because of fact {index}.",
    }


def questions_json(count: int, **kwargs: Any) -> str:
    return json.dumps(
        {"questions": [question_payload(i, **kwargs) for i in range(1, count + 1)]}
    )


class FakeAsyncOpenAI:
    def __init__(self) -> None:
        self.completion_calls: List[Dict[str, Any]] = []
        self.image_calls: List[Dict[str, Any]] = []
        self.speech_calls: List[Dict[str, Any]] = []
        self._completions: List[Any] = []
        self._images: List[Any] = []
        self._speech: List[Any] = []
        self.chat = SimpleNamespace(
            completions=SimpleNamespace(create=self._create_completion)
        )
        self.images = SimpleNamespace(generate=self._generate_image)
        self.audio = SimpleNamespace(
            speech=SimpleNamespace(create=self._create_speech)
        )

    def queue_completion(self, content: Any) -> None:
        self._completions.append(content)

    def queue_json(self, payload: Any) -> None:
        self.queue_completion(json.dumps(payload))

    def queue_image(self, raw: Any = b"\x89PNG fake") -> None:
        if isinstance(raw, bytes):
            raw = base64.b64encode(raw).decode("ascii")
        self._images.append(raw)

    def queue_speech(self, pcm: Any = b"\x00\x01" * 240) -> None:
        self._speech.append(pcm)

    @property
    def last_messages(self) -> Optional[List[Dict[str, Any]]]:
        if not self.completion_calls:
            return None
        return self.completion_calls[-1]["messages"]

    async def _create_completion(self, **kwargs: Any) -> SimpleNamespace:
        self.completion_calls.append(kwargs)
        item = self._completions.pop(0) if self._completions else ""
        if isinstance(item, BaseException):
            raise item
        message = SimpleNamespace(content=item)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def _generate_image(self, **kwargs: Any) -> SimpleNamespace:
        self.image_calls.append(kwargs)
        item = self._images.pop(0) if self._images else None
        if isinstance(item, BaseException):
            raise item
        return SimpleNamespace(data=[SimpleNamespace(b64_json=item)])

    async def _create_speech(self, **kwargs: Any) -> SimpleNamespace:
        self.speech_calls.append(kwargs)
        item = self._speech.pop(0) if self._speech else b""
        if isinstance(item, BaseException):
            raise item
        return SimpleNamespace(content=item)
