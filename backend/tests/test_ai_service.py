"""Tests for AI prompt preparation and quiz parsing."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from app.schemas.ai import ChatTurn
from app.services.ai_service import (
    AIServiceError,
    InsufficientTextError,
    QuizFormatError,
    ai_service,
    chat_prompt,
    parse_quiz,
    prepare_document_text,
)

QUIZ_ITEMS = [
    {
        "question": f"Question {i}?",
        "options": ["A", "B", "C", "D"],
        "answer": i % 4,
    }
    for i in range(5)
]


def test_prepare_document_text_truncates():
    text = "x" * 500
    assert prepare_document_text(text, 100) == "x" * 100


def test_prepare_document_text_rejects_short_text():
    with pytest.raises(InsufficientTextError):
        prepare_document_text("   too short   ", 30000)


def test_parse_quiz_plain_json():
    quiz = parse_quiz(json.dumps(QUIZ_ITEMS))
    assert len(quiz) == 5
    assert quiz[2].answer_index == 2
    assert quiz[0].options == ["A", "B", "C", "D"]


def test_parse_quiz_strips_code_fences():
    raw = "```json\n" + json.dumps(QUIZ_ITEMS) + "\n```"
    assert len(parse_quiz(raw)) == 5


def test_parse_quiz_serializes_camel_case():
    quiz = parse_quiz(json.dumps(QUIZ_ITEMS[:1]))
    assert quiz[0].model_dump(by_alias=True)["answerIndex"] == 0


@pytest.mark.parametrize(
    "raw",
    [
        "Here is your quiz: [",
        "[]",
        '{"question": "Not a list"}',
        json.dumps([{"question": "Q?", "options": ["A", "B"], "answer": 0}]),
        json.dumps([{"question": "Q?", "options": ["A", "B", "C", "D"], "answer": 7}]),
        json.dumps([{"options": ["A", "B", "C", "D"], "answer": 1}]),
        json.dumps(["just a string"]),
    ],
)
def test_parse_quiz_rejects_malformed_output(raw):
    with pytest.raises(QuizFormatError):
        parse_quiz(raw)


def test_chat_prompt_includes_recent_turns_in_order():
    turns = [
        ChatTurn(sender="user", text="What is a block?"),
        ChatTurn(sender="ai", text="A batch of transactions."),
        ChatTurn(sender="user", text="And a hash?"),
    ]
    prompt = chat_prompt("document body", turns, "And a hash?")
    assert prompt.index("User: What is a block?") < prompt.index("Assistant: A batch of transactions.")
    assert "document body" in prompt
    assert prompt.rstrip().endswith("Assistant:")


async def test_complete_joins_text_blocks():
    message = SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="Hello "),
            SimpleNamespace(type="text", text="world"),
        ]
    )
    with patch.object(ai_service.client.messages, "create", new=AsyncMock(return_value=message)):
        assert await ai_service.complete("prompt") == "Hello world"


async def test_complete_rejects_empty_reply():
    message = SimpleNamespace(content=[])
    with patch.object(ai_service.client.messages, "create", new=AsyncMock(return_value=message)):
        with pytest.raises(AIServiceError):
            await ai_service.complete("prompt")


async def test_generate_quiz_raises_on_bad_model_output():
    with patch.object(ai_service, "complete", new=AsyncMock(return_value="not json at all")):
        with pytest.raises(QuizFormatError):
            await ai_service.generate_quiz("word " * 100)
