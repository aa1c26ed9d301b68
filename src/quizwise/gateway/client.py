"""Async gateway over the OpenAI API for quiz generation, grading and chat."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Type

from . import prompts
from .audio import pcm_to_wav, to_data_uri
from .errors import (
    ChatMediaError,
    ChatTextError,
    EvaluationError,
    GatewayError,
    GenerationError,
)
from .models import (
    ChatReply,
    Evaluation,
    Question,
    extract_json_object,
    parse_chat_text,
    parse_evaluation,
)

__all__ = ["GatewaySettings", "GenerationGateway"]


@dataclass(frozen=True)
class GatewaySettings:
    chat_model: str = "gpt-4o-mini"
    image_model: str = "gpt-image-1"
    speech_model: str = "gpt-4o-mini-tts"
    voice: str = "alloy"
    temperature: float = 0.7
    max_output_tokens: int = 4000
    options_per_question: int = 4
    history_window: int = prompts.HISTORY_LIMIT

    @classmethod
    def from_config(cls, config: Any) -> "GatewaySettings":
        """Build settings from a loaded :class:`QuizwiseConfig`."""
        provider = config.openai
        return cls(
            chat_model=provider.chat_model,
            image_model=provider.image_model,
            speech_model=provider.speech_model,
            voice=provider.voice,
            temperature=provider.temperature,
            max_output_tokens=provider.max_output_tokens,
            options_per_question=config.quiz.options_per_question,
            history_window=min(
                config.quiz.history_window, prompts.HISTORY_LIMIT
            ),
        )


class GenerationGateway:
    """Wrap an ``AsyncOpenAI``-compatible client.

    Every reply is validated before it leaves the gateway. Failures surface
    as the typed errors in :mod:`quizwise.gateway.errors`; raw client
    exceptions never escape.
    """

    def __init__(
        self,
        client: Any,
        *,
        settings: GatewaySettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or GatewaySettings()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def settings(self) -> GatewaySettings:
        return self._settings

    async def generate_questions(
        self,
        topic: str,
        count: int,
        previous_questions: Sequence[str] = (),
    ) -> list[Question]:
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise ValueError("count must be a positive integer")
        window = self._settings.history_window
        history = list(previous_questions)[-window:] if window else []
        system_prompt, user_prompt = prompts.build_generation_prompts(
            topic,
            count,
            history,
            options_per_question=self._settings.options_per_question,
        )
        self._logger.info(
            "Generating questions",
            extra={"count": count, "history_size": len(history)},
        )
        content = await self._complete_json(
            system_prompt, user_prompt, error_cls=GenerationError
        )
        try:
            questions = self._parse_questions(content, count)
        except ValueError as exc:
            self._logger.warning(
                "Rejected generated questions", extra={"reason": str(exc)}
            )
            raise GenerationError(f"Invalid questions from model: {exc}") from exc
        self._logger.info(
            "Generated questions", extra={"count": len(questions)}
        )
        return questions

    async def evaluate_answer(
        self,
        question: str,
        answer: str,
        correct_answer: str,
        topic: str,
        *,
        image: Optional[str] = None,
        video: Optional[str] = None,
    ) -> Evaluation:
        system_prompt, user_prompt = prompts.build_evaluation_prompts(
            question, answer, correct_answer, topic, video=video
        )
        user_content: Any = user_prompt
        if image:
            user_content = [
                {"type": "text", "text": user_prompt},
                {"type": "image_url", "image_url": {"url": image}},
            ]
        content = await self._complete_json(
            system_prompt, user_content, error_cls=EvaluationError
        )
        try:
            return parse_evaluation(content)
        except ValueError as exc:
            raise EvaluationError(f"Invalid evaluation from model: {exc}") from exc

    async def chat(
        self,
        topic: str,
        query: str,
        *,
        include_audio: bool = False,
    ) -> ChatReply:
        system_prompt, user_prompt = prompts.build_chat_prompts(topic, query)
        content = await self._complete_json(
            system_prompt, user_prompt, error_cls=ChatTextError
        )
        try:
            response, image_required = parse_chat_text(content)
        except ValueError as exc:
            raise ChatTextError(f"Invalid chat reply from model: {exc}") from exc

        image = None
        if image_required:
            try:
                image = await self._generate_image(topic, query)
            except ChatMediaError as exc:
                self._logger.warning(
                    "Image generation failed", extra={"reason": str(exc)}
                )
        audio = None
        if include_audio:
            try:
                audio = await self._synthesize_speech(response)
            except ChatMediaError as exc:
                self._logger.warning(
                    "Speech synthesis failed", extra={"reason": str(exc)}
                )
        return ChatReply(response=response, image=image, audio=audio)

    async def _complete_json(
        self,
        system_prompt: str,
        user_content: Any,
        *,
        error_cls: Type[GatewayError],
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._settings.chat_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                temperature=self._settings.temperature,
                max_tokens=self._settings.max_output_tokens,
                response_format={"type": "json_object"},
            )
        except Exception as exc:
            self._logger.error(
                "Model request failed",
                extra={"error": type(exc).__name__, "reason": str(exc)},
            )
            raise error_cls(f"Model request failed: {exc}") from exc
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise error_cls("Model returned no choices.")
        return (choices[0].message.content or "").strip()

    def _parse_questions(self, content: str, count: int) -> list[Question]:
        payload = extract_json_object(content)
        items = payload.get("questions")
        if not isinstance(items, list):
            raise ValueError("questions must be a list")
        if len(items) < count:
            raise ValueError(f"expected {count} questions, got {len(items)}")
        expected = self._settings.options_per_question
        return [
            Question.from_dict(_as_mapping(item), expected_options=expected)
            for item in items[:count]
        ]

    async def _generate_image(self, topic: str, query: str) -> str:
        try:
            result = await self._client.images.generate(
                model=self._settings.image_model,
                prompt=prompts.build_image_prompt(topic, query),
                n=1,
            )
        except Exception as exc:
            raise ChatMediaError(f"Image request failed: {exc}") from exc
        data = getattr(result, "data", None) or []
        encoded = getattr(data[0], "b64_json", None) if data else None
        if not encoded:
            raise ChatMediaError("Image response carried no image data.")
        try:
            raw = base64.b64decode(encoded, validate=True)
        except ValueError as exc:
            raise ChatMediaError("Image response was not valid base64.") from exc
        return to_data_uri(raw, "image/png")

    async def _synthesize_speech(self, text: str) -> str:
        try:
            result = await self._client.audio.speech.create(
                model=self._settings.speech_model,
                voice=self._settings.voice,
                input=text,
                response_format="pcm",
            )
        except Exception as exc:
            raise ChatMediaError(f"Speech request failed: {exc}") from exc
        try:
            wav = pcm_to_wav(result.content)
        except Exception as exc:
            raise ChatMediaError(f"Could not encode speech: {exc}") from exc
        return to_data_uri(wav, "audio/wav")


def _as_mapping(item: Any) -> Mapping[str, Any]:
    if not isinstance(item, Mapping):
        raise ValueError("question must be an object")
    return item
