"""Pydantic schemas for AI features."""

from typing import Literal

from pydantic import Field

from app.schemas.base import BaseSchema


class QuizQuestion(BaseSchema):
    """Multiple-choice question with exactly four options."""

    question: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=4, max_length=4)
    answer_index: int = Field(..., ge=0, le=3)


class ChatTurn(BaseSchema):
    """One message in a document chat."""

    sender: Literal["user", "ai"]
    text: str


# Request schemas
class ChatRequest(BaseSchema):
    question: str = Field(..., min_length=1, max_length=10000)


# Response schemas
class SummaryResponse(BaseSchema):
    summary: str


class QuizResponse(BaseSchema):
    quiz: list[QuizQuestion]


class QAResponse(BaseSchema):
    qa_pairs: str


class ChatAnswerResponse(BaseSchema):
    answer: str
