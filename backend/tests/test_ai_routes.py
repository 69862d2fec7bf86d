"""Tests for AI summary, quiz, Q&A and chat routes. The model is always mocked."""

import json
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from conftest import headers_for, make_pdf
from sqlalchemy import func, select

from app.config import get_settings
from app.db.models import ChatHistory, ChatMessage
from app.db.session import AsyncSessionLocal
from app.services import ai_service
from app.services.ai_service import AIServiceError

settings = get_settings()

QUIZ_JSON = json.dumps(
    [
        {"question": f"Q{i}?", "options": ["A", "B", "C", "D"], "answer": i % 4}
        for i in range(5)
    ]
)


def mock_model(reply: str = "model reply"):
    return patch.object(ai_service, "complete", new=AsyncMock(return_value=reply))


# =============================================================================
# ACCESS
# =============================================================================


@pytest.mark.parametrize("path", ["summarize", "quiz", "qa"])
async def test_unsubscribed_student_gets_402(client, student, create_note, path):
    note = await create_note()
    with mock_model() as complete:
        resp = await client.post(f"/api/ai/{path}/{note.id}", headers=headers_for(student))
    assert resp.status_code == 402
    assert resp.json()["message"] == "Payment required. Please subscribe to use this feature."
    complete.assert_not_called()


async def test_unsubscribed_student_cannot_chat(client, student, create_note):
    note = await create_note()
    resp = await client.post(f"/api/ai/chat/{note.id}", headers=headers_for(student), json={"question": "Hi?"})
    assert resp.status_code == 402


async def test_teacher_uses_ai_without_subscription(client, teacher, create_note):
    note = await create_note()
    with mock_model("A short summary."):
        resp = await client.post(f"/api/ai/summarize/{note.id}", headers=headers_for(teacher))
    assert resp.status_code == 200
    assert resp.json() == {"summary": "A short summary."}


# =============================================================================
# ONE-SHOT GENERATION
# =============================================================================


async def test_summary_prompt_contains_document_text(client, subscriber, create_note):
    note = await create_note(pages=2)
    with mock_model("Summary.") as complete:
        resp = await client.post(f"/api/ai/summarize/{note.id}", headers=headers_for(subscriber))
    assert resp.status_code == 200
    prompt = complete.await_args.args[0]
    assert "Page 1:" in prompt
    assert "Page 2:" in prompt


async def test_long_documents_are_truncated(client, subscriber, create_note):
    note = await create_note(pages=40)
    with patch.object(settings, "ai_document_max_chars", 200), mock_model("ok") as complete:
        resp = await client.post(f"/api/ai/summarize/{note.id}", headers=headers_for(subscriber))
    assert resp.status_code == 200
    assert "Page 40:" not in complete.await_args.args[0]


async def test_quiz_with_fenced_json(client, subscriber, create_note):
    note = await create_note()
    with mock_model(f"```json\n{QUIZ_JSON}\n```"):
        resp = await client.post(f"/api/ai/quiz/{note.id}", headers=headers_for(subscriber))
    assert resp.status_code == 200
    quiz = resp.json()["quiz"]
    assert len(quiz) == 5
    assert quiz[1] == {"question": "Q1?", "options": ["A", "B", "C", "D"], "answerIndex": 1}


async def test_quiz_with_malformed_json_is_500(client, subscriber, create_note):
    note = await create_note()
    with mock_model("Sure! Here is a quiz: [{question: Q1"):
        resp = await client.post(f"/api/ai/quiz/{note.id}", headers=headers_for(subscriber))
    assert resp.status_code == 500
    assert resp.json()["message"] == "AI generated an invalid quiz format. Please try again."


async def test_descriptive_qa(client, subscriber, create_note):
    note = await create_note()
    with mock_model("Q1: What?\nA1: That."):
        resp = await client.post(f"/api/ai/qa/{note.id}", headers=headers_for(subscriber))
    assert resp.status_code == 200
    assert resp.json() == {"qaPairs": "Q1: What?\nA1: That."}


async def test_document_without_text_is_400(client, subscriber, create_note):
    note = await create_note(pdf_bytes=make_pdf(1, text="tiny"))
    with mock_model() as complete:
        resp = await client.post(f"/api/ai/summarize/{note.id}", headers=headers_for(subscriber))
    assert resp.status_code == 400
    complete.assert_not_called()


async def test_missing_note_is_404(client, subscriber):
    resp = await client.post(f"/api/ai/summarize/{uuid4()}", headers=headers_for(subscriber))
    assert resp.status_code == 404
    assert resp.json()["message"] == "Note or file not found."


async def test_model_failure_is_generic_500(client, subscriber, create_note):
    note = await create_note()
    with patch.object(ai_service, "complete", new=AsyncMock(side_effect=AIServiceError("rate limited: key sk-..."))):
        resp = await client.post(f"/api/ai/summarize/{note.id}", headers=headers_for(subscriber))
    assert resp.status_code == 500
    assert "sk-" not in resp.json()["message"]


# =============================================================================
# CHAT
# =============================================================================


async def test_chat_history_starts_with_greeting(client, student, create_note):
    note = await create_note()
    resp = await client.get(f"/api/ai/chat/{note.id}", headers=headers_for(student))
    assert resp.status_code == 200
    assert resp.json() == [{"sender": "ai", "text": "Hello! Ask me any question about this document."}]


async def test_chat_appends_turns_to_one_history(client, subscriber, create_note):
    note = await create_note()
    headers = headers_for(subscriber)

    with mock_model("First answer."):
        resp = await client.post(f"/api/ai/chat/{note.id}", headers=headers, json={"question": "First?"})
    assert resp.status_code == 200
    assert resp.json() == {"answer": "First answer."}

    with mock_model("Second answer."):
        await client.post(f"/api/ai/chat/{note.id}", headers=headers, json={"question": "Second?"})

    resp = await client.get(f"/api/ai/chat/{note.id}", headers=headers)
    assert resp.json() == [
        {"sender": "user", "text": "First?"},
        {"sender": "ai", "text": "First answer."},
        {"sender": "user", "text": "Second?"},
        {"sender": "ai", "text": "Second answer."},
    ]

    async with AsyncSessionLocal() as session:
        histories = (await session.execute(select(func.count()).select_from(ChatHistory))).scalar_one()
    assert histories == 1


async def test_chat_context_is_last_six_turns(client, subscriber, create_note):
    note = await create_note()
    headers = headers_for(subscriber)

    for i in range(4):
        with mock_model(f"answer {i}"):
            await client.post(f"/api/ai/chat/{note.id}", headers=headers, json={"question": f"question {i}"})

    with patch.object(ai_service, "answer_question", new=AsyncMock(return_value="answer 4")) as answer:
        await client.post(f"/api/ai/chat/{note.id}", headers=headers, json={"question": "question 4"})

    _, recent, question = answer.await_args.args
    assert question == "question 4"
    assert [t.text for t in recent] == [
        "answer 1",
        "question 2",
        "answer 2",
        "question 3",
        "answer 3",
        "question 4",
    ]


async def test_chat_histories_are_per_user(client, subscriber, teacher, create_note):
    note = await create_note()
    with mock_model("For the student."):
        await client.post(f"/api/ai/chat/{note.id}", headers=headers_for(subscriber), json={"question": "Mine?"})

    resp = await client.get(f"/api/ai/chat/{note.id}", headers=headers_for(teacher))
    assert resp.json()[0]["text"] == "Hello! Ask me any question about this document."


async def test_builtin_admin_chat_is_kept_under_guest_key(client, admin_headers, create_note):
    note = await create_note()
    with mock_model("Admin answer."):
        resp = await client.post(f"/api/ai/chat/{note.id}", headers=admin_headers, json={"question": "Admin?"})
    assert resp.status_code == 200

    async with AsyncSessionLocal() as session:
        keys = (await session.execute(select(ChatHistory.actor_key))).scalars().all()
    assert keys == ["guest"]


async def test_failed_model_call_stores_nothing(client, subscriber, create_note):
    note = await create_note()
    with patch.object(ai_service, "complete", new=AsyncMock(side_effect=AIServiceError("down"))):
        resp = await client.post(f"/api/ai/chat/{note.id}", headers=headers_for(subscriber), json={"question": "Hi?"})
    assert resp.status_code == 500

    async with AsyncSessionLocal() as session:
        messages = (await session.execute(select(func.count()).select_from(ChatMessage))).scalar_one()
    assert messages == 0


async def test_empty_question_is_400(client, subscriber, create_note):
    note = await create_note()
    resp = await client.post(f"/api/ai/chat/{note.id}", headers=headers_for(subscriber), json={"question": ""})
    assert resp.status_code == 400
