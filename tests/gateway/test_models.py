from __future__ import annotations

import pytest

from fixtures import question_payload

from quizwise.gateway.audio import decode_data_uri, pcm_to_wav, to_data_uri
from quizwise.gateway.models import (
    Question,
    extract_json_object,
    parse_chat_text,
    validate_question,
)
from quizwise.gateway.prompts import build_generation_prompts


def test_question_round_trips_wire_names():
    payload = question_payload(1)
    question = Question.from_dict(payload, expected_options=4)
    assert question.to_dict() == payload


def test_correct_answer_must_match_exactly():
    payload = question_payload(1)
    payload["correctAnswer"] = payload["correctAnswer"].upper()
    with pytest.raises(ValueError, match="match one of the options"):
        validate_question(payload)


def test_extract_json_object_requires_object():
    with pytest.raises(ValueError, match="empty"):
        extract_json_object("  ")
    with pytest.raises(ValueError, match="JSON object"):
        extract_json_object("[1, 2]")
    assert extract_json_object('Sure!\n```\n{"a": 1}\n```') == {"a": 1}


def test_parse_chat_text_defaults_image_flag():
    assert parse_chat_text('{"response": " Hi "}') == ("Hi", False)
    with pytest.raises(ValueError):
        parse_chat_text('{"response": "Hi", "imageRequired": "no"}')


def test_generation_prompt_lists_history_and_option_rule():
    _, prompt = build_generation_prompts(
        "Roman Empire", 5, ["Who built Hadrian's Wall?"], options_per_question=4
    )
    assert "Generate a 5-question multiple choice quiz" in prompt
    assert "exactly 4 distinct options" in prompt
    assert "- Who built Hadrian's Wall?" in prompt


def test_pcm_to_wav_and_data_uri():
    wav = pcm_to_wav(b"\x00\x00" * 100)
    assert wav[:4] == b"RIFF"
    assert wav[8:12] == b"WAVE"

    uri = to_data_uri(wav, "audio/wav")
    assert uri.startswith("data:audio/wav;base64,")
    assert decode_data_uri(uri) == ("audio/wav", wav)


def test_pcm_to_wav_rejects_empty_input():
    with pytest.raises(ValueError):
        pcm_to_wav(b"")


def test_decode_data_uri_rejects_plain_urls():
    with pytest.raises(ValueError):
        decode_data_uri("https://example.com/image.png")
