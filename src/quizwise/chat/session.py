"""Topic-scoped chat transcript with serialized turns."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, MutableMapping, Optional, Protocol

from quizwise.gateway.models import ChatReply

__all__ = [
    "ChatBusyError",
    "ChatMessage",
    "ChatSession",
    "greeting_for",
]

Role = Literal["user", "assistant"]


class ChatBusyError(RuntimeError):
    """Raised when a message is sent while another turn is in flight."""


class ChatGateway(Protocol):
    async def chat(
        self, topic: str, query: str, *, include_audio: bool = False
    ) -> ChatReply:
        """Return the assistant reply for ``query``."""


@dataclass(frozen=True)
class ChatMessage:
    """A single transcript entry; media are ``data:`` URIs."""

    role: Role
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    image: Optional[str] = None
    audio: Optional[str] = None
    created_at: str = field(default_factory=lambda: _timestamp())

    def to_dict(self) -> MutableMapping[str, Any]:
        payload: MutableMapping[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "created_at": self.created_at,
        }
        if self.image:
            payload["image"] = self.image
        if self.audio:
            payload["audio"] = self.audio
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ChatMessage":
        role = payload.get("role")
        if role not in ("user", "assistant"):
            raise ValueError(f"Unknown chat role: {role!r}")
        return cls(
            id=str(payload.get("id") or uuid.uuid4().hex),
            role=role,
            content=str(payload.get("content", "")),
            image=payload.get("image") or None,
            audio=payload.get("audio") or None,
            created_at=str(payload.get("created_at") or _timestamp()),
        )


def greeting_for(topic: str) -> str:
    return f"Hello! How can I help you with {topic}?"


class ChatSession:
    """Running conversation about one topic.

    The transcript opens with an assistant greeting. Each turn appends the
    user message, awaits the gateway, then appends the reply. If the turn
    fails or is cancelled the user message is taken back out, so every
    question in the transcript has an answer.
    """

    def __init__(
        self,
        topic: str,
        *,
        messages: Optional[list[ChatMessage]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.topic = topic
        self._messages: list[ChatMessage] = list(messages or [])
        if not self._messages:
            self._messages.append(
                ChatMessage(role="assistant", content=greeting_for(topic))
            )
        self._busy = False
        self._logger = logger or logging.getLogger(__name__)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def busy(self) -> bool:
        return self._busy

    async def send(
        self,
        gateway: ChatGateway,
        text: str,
        *,
        include_audio: bool = False,
    ) -> Optional[ChatMessage]:
        """Run one turn and return the assistant message.

        Blank input is ignored and returns ``None``. Gateway errors propagate
        after the rollback.
        """
        query = (text or "").strip()
        if not query:
            return None
        if self._busy:
            raise ChatBusyError("Wait for the current reply before sending.")
        self._busy = True
        user_message = ChatMessage(role="user", content=query)
        self._messages.append(user_message)
        try:
            reply = await gateway.chat(
                self.topic, query, include_audio=include_audio
            )
        except BaseException:
            self._messages.remove(user_message)
            self._logger.warning(
                "Chat turn failed; message rolled back",
                extra={"topic": self.topic},
            )
            raise
        finally:
            self._busy = False
        answer = ChatMessage(
            role="assistant",
            content=reply.response,
            image=reply.image,
            audio=reply.audio,
        )
        self._messages.append(answer)
        return answer

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "topic": self.topic,
            "messages": [message.to_dict() for message in self._messages],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ChatSession":
        topic = payload.get("topic")
        if not isinstance(topic, str) or not topic:
            raise ValueError("Chat transcript is missing its topic.")
        messages = [
            ChatMessage.from_dict(item) for item in payload.get("messages", [])
        ]
        return cls(topic, messages=messages)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
