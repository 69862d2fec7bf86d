"""Generative-AI service: summaries, quizzes, Q&A and document chat."""

import json
import logging
import re

from anthropic import AsyncAnthropic, APIError
from pydantic import ValidationError

from app.config import get_settings
from app.schemas.ai import ChatTurn, QuizQuestion

logger = logging.getLogger(__name__)
settings = get_settings()

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)

NOT_IN_DOCUMENT_ANSWER = "I cannot find the answer to that in this document."


class AIServiceError(Exception):
    """The external model call failed."""


class InsufficientTextError(ValueError):
    """The document does not contain enough text to work with."""


class QuizFormatError(ValueError):
    """The model's quiz output is not the expected JSON shape."""


def prepare_document_text(text: str, max_chars: int) -> str:
    """
    Validate and truncate extracted document text.

    Raises:
        InsufficientTextError: If fewer than `ai_min_text_chars` non-blank chars remain
    """
    if not text or len(text.strip()) < settings.ai_min_text_chars:
        raise InsufficientTextError("Could not extract sufficient text from the PDF.")
    return text[:max_chars]


def parse_quiz(raw: str) -> list[QuizQuestion]:
    """
    Parse model output into quiz questions.

    Markdown code fences around the JSON are removed first. Each item needs
    "question", four "options" and an "answer" index (0-3).

    Raises:
        QuizFormatError: On invalid JSON or an unexpected shape
    """
    cleaned = _CODE_FENCE.sub("", raw).strip()
    try:
        items = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise QuizFormatError(f"Quiz is not valid JSON: {e}") from e

    if not isinstance(items, list) or not items:
        raise QuizFormatError("Quiz must be a non-empty JSON array")

    questions = []
    for item in items:
        try:
            questions.append(
                QuizQuestion(
                    question=item["question"],
                    options=item["options"],
                    answer_index=item["answer"],
                )
            )
        except (KeyError, TypeError, ValidationError) as e:
            raise QuizFormatError(f"Malformed quiz item: {e}") from e
    return questions


def summary_prompt(text: str) -> str:
    return (
        "Please provide a concise summary of the following academic notes text. "
        "Focus on the main topics and key takeaways:\n\n"
        f"---\n{text}\n---\n\nSummary:"
    )


def quiz_prompt(text: str) -> str:
    return f"""Based on the text below, generate 5 multiple-choice questions.
Return the output as a strictly valid JSON array of objects. Do not include markdown formatting (like ```json).
Each object should have:
- "question": The question string.
- "options": An array of 4 string options (A, B, C, D).
- "answer": The *index* of the correct option (0 for A, 1 for B, 2 for C, 3 for D).

TEXT CONTENT:
{text}"""


def qa_prompt(text: str) -> str:
    return (
        "Based on the following academic notes text, generate 3-5 descriptive questions "
        "that require explanatory answers. For each question, provide a concise answer "
        "derived solely from the text:\n\n"
        f"---\n{text}\n---\n\n"
        "Format the output like this:\nQ1: [Question 1]\nA1: [Answer 1]\n\n"
        "Q2: [Question 2]\nA2: [Answer 2]\n..."
    )


def chat_prompt(text: str, recent_turns: list[ChatTurn], question: str) -> str:
    history = "\n".join(
        f"{'User' if turn.sender == 'user' else 'Assistant'}: {turn.text}"
        for turn in recent_turns
    )
    return (
        "You are a helpful study assistant. Use the following text context to answer "
        "the user's question. If the answer is not in the text, say "
        f'"{NOT_IN_DOCUMENT_ANSWER}"\n\n'
        f"CONTEXT:\n---\n{text}\n---\n\n"
        f"CHAT HISTORY:\n{history}\n\n"
        f"User: {question}\n\nAssistant:"
    )


class AIService:
    """Single-shot prompts against the configured model. No caching, no retries."""

    def __init__(self):
        """Initialize Anthropic client."""
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)

    async def complete(self, prompt: str) -> str:
        """
        Send one prompt and return the text reply.

        Raises:
            AIServiceError: If the API call fails or returns no text
        """
        try:
            message = await self.client.messages.create(
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except APIError as e:
            logger.error("Anthropic API call failed: %s", e)
            raise AIServiceError(str(e)) from e

        text = "".join(block.text for block in message.content if block.type == "text")
        if not text:
            raise AIServiceError("Model returned an empty response")
        return text

    async def summarize(self, document_text: str) -> str:
        text = prepare_document_text(document_text, settings.ai_document_max_chars)
        logger.info("Requesting summary for %d chars", len(text))
        return await self.complete(summary_prompt(text))

    async def generate_quiz(self, document_text: str) -> list[QuizQuestion]:
        text = prepare_document_text(document_text, settings.ai_document_max_chars)
        logger.info("Requesting quiz for %d chars", len(text))
        raw = await self.complete(quiz_prompt(text))
        try:
            return parse_quiz(raw)
        except QuizFormatError:
            logger.error("Failed to parse AI response as quiz JSON: %.500s", raw)
            raise

    async def generate_qa(self, document_text: str) -> str:
        text = prepare_document_text(document_text, settings.ai_document_max_chars)
        logger.info("Requesting descriptive Q&A for %d chars", len(text))
        return await self.complete(qa_prompt(text))

    async def answer_question(
        self,
        document_text: str,
        recent_turns: list[ChatTurn],
        question: str,
    ) -> str:
        """
        Answer a question about a document.

        Args:
            document_text: Full extracted text (truncated here to the chat budget)
            recent_turns: Last turns of the conversation, newest last, including `question`
            question: The user's new question
        """
        text = prepare_document_text(document_text, settings.ai_chat_document_max_chars)
        return await self.complete(chat_prompt(text, recent_turns, question))


# Singleton instance
ai_service = AIService()
