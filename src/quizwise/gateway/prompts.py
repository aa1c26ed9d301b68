"""Prompt builders for the three model operations.

Each builder returns ``(system_prompt, user_prompt)``. The user prompt spells
out the JSON shape the reply must follow, since replies are requested in
JSON object mode.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

HISTORY_LIMIT = 20


def build_generation_prompts(
    topic: str,
    count: int,
    previous_questions: Sequence[str] = (),
    *,
    options_per_question: int = 4,
) -> Tuple[str, str]:
    sys_prompt = "You are a quiz generator that writes multiple-choice questions."
    option_rule = (
        f"Each question must have exactly {options_per_question} distinct "
        "options, one of which is the correct answer."
        if options_per_question
        else "Each question must have distinct options, one of which is the "
        "correct answer."
    )
    schema_line = (
        '{"questions": [{"question": str, "options": [str], '
        '"correctAnswer": str, "explanation": str}]}'
    )
    lines = [
        f"Generate a {count}-question multiple choice quiz based on the "
        "given topic.",
        "",
        f"Topic: {topic}",
        "",
        option_rule,
        "correctAnswer must repeat the text of the correct option exactly.",
        "For each question, give a brief explanation of why the correct "
        "answer is correct.",
    ]
    history = list(previous_questions)[-HISTORY_LIMIT:]
    if history:
        lines.append("")
        lines.append(
            "Important: avoid questions similar to these previously asked "
            "questions:"
        )
        lines.extend(f"- {item}" for item in history)
    lines.extend(["", "Reply with a JSON object of this shape:", schema_line])
    return sys_prompt, "\n".join(lines)


def build_evaluation_prompts(
    question: str,
    answer: str,
    correct_answer: str,
    topic: str,
    *,
    video: Optional[str] = None,
) -> Tuple[str, str]:
    sys_prompt = "You are an expert quiz evaluator."
    lines = [
        "You will be given a question, the user's answer and the correct "
        "answer. Decide whether the user's answer is correct and explain why.",
        f"The quiz is on the topic: {topic}.",
        "",
        f"Question: {question}",
        f"User's Answer: {answer}",
        f"Correct Answer: {correct_answer}",
        "",
        "Set isCorrect to true only if the user's answer means the same as "
        "the correct answer. If it is correct, congratulate the user and add "
        "more information about the topic. If it is wrong, explain why the "
        "correct answer is right and where the user went wrong.",
    ]
    if video:
        lines.append("")
        lines.append(f"A video is associated with the question: {video}")
    lines.extend(
        [
            "",
            "Reply with a JSON object of this shape:",
            '{"isCorrect": bool, "feedback": str}',
        ]
    )
    return sys_prompt, "\n".join(lines)


def build_chat_prompts(topic: str, query: str) -> Tuple[str, str]:
    sys_prompt = (
        f"You are an AI assistant helping users understand the topic: {topic}."
    )
    user_prompt = "\n".join(
        [
            f"User Query: {query}",
            "",
            "1. First, give a helpful and informative text answer to the "
            "query.",
            "2. Then decide whether an image is required. Set imageRequired "
            "to true only if the user explicitly asks for a picture or a "
            "visual aid is necessary to understand the answer. For most "
            "questions it should be false.",
            "",
            "Reply with a JSON object of this shape:",
            '{"response": str, "imageRequired": bool}',
        ]
    )
    return sys_prompt, user_prompt


def build_image_prompt(topic: str, query: str) -> str:
    return (
        f'Generate an image that visually explains the following query about '
        f'"{topic}": {query}'
    )
