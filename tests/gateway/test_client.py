from __future__ import annotations

import asyncio
import base64
import json

import pytest
from openai import OpenAIError

from fixtures import question_payload, questions_json

from quizwise.gateway import (
    ChatTextError,
    EvaluationError,
    GatewaySettings,
    GenerationError,
    GenerationGateway,
)
from quizwise.gateway.audio import decode_data_uri


def _run(coro):
    return asyncio.run(coro)


def test_generate_questions_returns_validated_questions(fake_client):
    fake_client.queue_completion(questions_json(5))
    gateway = GenerationGateway(fake_client)

    questions = _run(gateway.generate_questions("Roman Empire", 5))

    assert len(questions) == 5
    assert questions[0].question == "Question 1?"
    assert questions[0].correct_answer == questions[0].options[0]
    call = fake_client.completion_calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["response_format"] == {"type": "json_object"}
    assert "Topic: Roman Empire" in call["messages"][1]["content"]


def test_generate_questions_truncates_extra_items(fake_client):
    fake_client.queue_completion(questions_json(7))
    gateway = GenerationGateway(fake_client)

    questions = _run(gateway.generate_questions("Roman Empire", 5))

    assert [q.question for q in questions] == [f"Question {i}?" for i in range(1, 6)]


def test_generate_questions_rejects_short_batches(fake_client):
    fake_client.queue_completion(questions_json(3))
    gateway = GenerationGateway(fake_client)

    with pytest.raises(GenerationError, match="expected 5 questions"):
        _run(gateway.generate_questions("Roman Empire", 5))


@pytest.mark.parametrize(
    "mutate",
    [
        lambda item: item.update(correctAnswer="Not an option"),
        lambda item: item.update(options=item["options"][:3]),
        lambda item: item.update(options=["A", "A", "B", "C"], correctAnswer="A"),
        lambda item: item.pop("explanation"),
        lambda item: item.update(question="   "),
    ],
)
def test_generate_questions_rejects_invalid_items(fake_client, mutate):
    items = [question_payload(i) for i in range(1, 6)]
    mutate(items[2])
    fake_client.queue_json({"questions": items})
    gateway = GenerationGateway(fake_client)

    with pytest.raises(GenerationError, match="Invalid questions"):
        _run(gateway.generate_questions("Roman Empire", 5))


def test_generate_questions_accepts_fenced_json(fake_client):
    fake_client.queue_completion("```json\n" + questions_json(5) + "\n```")
    gateway = GenerationGateway(fake_client)

    assert len(_run(gateway.generate_questions("Roman Empire", 5))) == 5


def test_generate_questions_maps_client_errors(fake_client):
    fake_client.queue_completion(OpenAIError("rate limited"))
    gateway = GenerationGateway(fake_client)

    with pytest.raises(GenerationError, match="rate limited"):
        _run(gateway.generate_questions("Roman Empire", 5))


def test_generate_questions_maps_unexpected_transport_errors(fake_client):
    fake_client.queue_completion(RuntimeError("transport"))
    gateway = GenerationGateway(fake_client)

    with pytest.raises(GenerationError, match="transport"):
        _run(gateway.generate_questions("Roman Empire", 5))


def test_generate_questions_rejects_non_json(fake_client):
    fake_client.queue_completion("Sorry, I cannot do that.")
    gateway = GenerationGateway(fake_client)

    with pytest.raises(GenerationError):
        _run(gateway.generate_questions("Roman Empire", 5))


def test_generate_questions_requires_positive_count(fake_client):
    gateway = GenerationGateway(fake_client)
    with pytest.raises(ValueError):
        _run(gateway.generate_questions("Roman Empire", 0))
    assert fake_client.completion_calls == []


def test_history_is_clipped_to_the_window(fake_client):
    fake_client.queue_completion(questions_json(5))
    gateway = GenerationGateway(
        fake_client, settings=GatewaySettings(history_window=3)
    )
    history = [f"Old question {i}" for i in range(10)]

    _run(gateway.generate_questions("Roman Empire", 5, history))

    prompt = fake_client.last_messages[1]["content"]
    assert "Old question 9" in prompt
    assert "Old question 7" in prompt
    assert "Old question 6" not in prompt


def test_option_count_check_can_be_disabled(fake_client):
    fake_client.queue_completion(questions_json(5, options=3))
    gateway = GenerationGateway(
        fake_client, settings=GatewaySettings(options_per_question=0)
    )

    questions = _run(gateway.generate_questions("Roman Empire", 5))
    assert all(len(q.options) == 3 for q in questions)


def test_evaluate_answer_parses_reply(fake_client):
    fake_client.queue_json({"isCorrect": False, "feedback": "Augustus was first."})
    gateway = GenerationGateway(fake_client)

    evaluation = _run(
        gateway.evaluate_answer(
            "Who was the first emperor?", "Nero", "Augustus", "Roman Empire"
        )
    )

    assert evaluation.is_correct is False
    assert evaluation.feedback == "Augustus was first."
    prompt = fake_client.last_messages[1]["content"]
    assert "User's Answer: Nero" in prompt
    assert "Correct Answer: Augustus" in prompt


def test_evaluate_answer_sends_image_part(fake_client):
    fake_client.queue_json({"isCorrect": True, "feedback": "Yes."})
    gateway = GenerationGateway(fake_client)

    _run(
        gateway.evaluate_answer(
            "Q?", "A", "A", "Topic", image="data:image/png;base64,AAAA"
        )
    )

    content = fake_client.last_messages[1]["content"]
    assert content[0]["type"] == "text"
    assert content[1] == {
        "type": "image_url",
        "image_url": {"url": "data:image/png;base64,AAAA"},
    }


def test_evaluate_answer_requires_boolean(fake_client):
    fake_client.queue_json({"isCorrect": "yes", "feedback": "Yes."})
    gateway = GenerationGateway(fake_client)

    with pytest.raises(EvaluationError):
        _run(gateway.evaluate_answer("Q?", "A", "A", "Topic"))


def test_chat_text_only(fake_client):
    fake_client.queue_json({"response": "Rome was founded in 753 BC.", "imageRequired": False})
    gateway = GenerationGateway(fake_client)

    reply = _run(gateway.chat("Roman Empire", "When was Rome founded?"))

    assert reply.response == "Rome was founded in 753 BC."
    assert reply.image is None
    assert reply.audio is None
    assert fake_client.image_calls == []
    assert fake_client.speech_calls == []


def test_chat_with_image_and_audio(fake_client):
    fake_client.queue_json({"response": "Here is a map.", "imageRequired": True})
    fake_client.queue_image(b"\x89PNG map")
    fake_client.queue_speech(b"\x00\x01" * 480)
    gateway = GenerationGateway(fake_client)

    reply = _run(
        gateway.chat("Roman Empire", "Show me a map", include_audio=True)
    )

    mime, payload = decode_data_uri(reply.image)
    assert mime == "image/png"
    assert payload == b"\x89PNG map"
    mime, wav = decode_data_uri(reply.audio)
    assert mime == "audio/wav"
    assert wav[:4] == b"RIFF"
    assert fake_client.image_calls[0]["model"] == "gpt-image-1"
    speech = fake_client.speech_calls[0]
    assert speech["input"] == "Here is a map."
    assert speech["response_format"] == "pcm"


def test_chat_media_failures_degrade(fake_client):
    fake_client.queue_json({"response": "Here is a map.", "imageRequired": True})
    fake_client.queue_image(OpenAIError("image quota"))
    fake_client.queue_speech(OpenAIError("tts down"))
    gateway = GenerationGateway(fake_client)

    reply = _run(
        gateway.chat("Roman Empire", "Show me a map", include_audio=True)
    )

    assert reply.response == "Here is a map."
    assert reply.image is None
    assert reply.audio is None


def test_chat_degrades_on_unexpected_media_errors(fake_client):
    fake_client.queue_json({"response": "Here is a map.", "imageRequired": True})
    fake_client.queue_image(RuntimeError("image backend exploded"))
    fake_client.queue_speech(RuntimeError("speech backend exploded"))
    gateway = GenerationGateway(fake_client)

    reply = _run(
        gateway.chat("Roman Empire", "Show me a map", include_audio=True)
    )

    assert reply.response == "Here is a map."
    assert reply.image is None
    assert reply.audio is None


def test_chat_rejects_invalid_base64_image(fake_client):
    fake_client.queue_json({"response": "Picture.", "imageRequired": True})
    fake_client.queue_image("not base64!!")
    gateway = GenerationGateway(fake_client)

    reply = _run(gateway.chat("Topic", "Draw it"))
    assert reply.image is None


def test_chat_text_failure_is_fatal(fake_client):
    fake_client.queue_completion(OpenAIError("down"))
    gateway = GenerationGateway(fake_client)

    with pytest.raises(ChatTextError):
        _run(gateway.chat("Topic", "Hello"))


def test_settings_from_config():
    from quizwise.config import default_config

    settings = GatewaySettings.from_config(default_config())
    assert settings.chat_model == "gpt-4o-mini"
    assert settings.options_per_question == 4
    assert settings.history_window == 20


def test_reply_payload_shape():
    from quizwise.gateway.models import ChatReply

    image = "data:image/png;base64," + base64.b64encode(b"x").decode()
    assert ChatReply("hi").to_dict() == {"response": "hi"}
    assert json.loads(json.dumps(ChatReply("hi", image=image).to_dict())) == {
        "response": "hi",
        "image": image,
    }
