"""Quiz result schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from app.schemas.base import BaseSchema, IDMixin


class QuizSubmitRequest(BaseSchema):
    """
    Record a quiz attempt.

    Either send the client-computed `score` with `total_questions`, or send the
    chosen `answers` with the quiz's `answer_key` and the server counts matches.
    """

    note_id: UUID
    topic_name: str = Field(..., min_length=1, max_length=255)
    score: int | None = Field(None, ge=0)
    total_questions: int | None = Field(None, ge=1)
    answers: list[int] | None = None
    answer_key: list[int] | None = Field(None, min_length=1)

    @model_validator(mode="after")
    def check_scoring_inputs(self) -> "QuizSubmitRequest":
        if self.answer_key is not None:
            if self.answers is None:
                raise ValueError("answers are required with answerKey")
            if len(self.answers) != len(self.answer_key):
                raise ValueError("answers and answerKey must have the same length")
            return self
        if self.score is None or self.total_questions is None:
            raise ValueError("score and totalQuestions are required")
        if self.score > self.total_questions:
            raise ValueError("score cannot exceed totalQuestions")
        return self


class QuizResultRead(BaseSchema, IDMixin):
    user_id: UUID
    note_id: UUID
    topic_name: str
    score: int
    total_questions: int
    percentage: float
    badge: str
    taken_at: datetime


class QuizResultSaved(BaseSchema):
    message: str
    result: QuizResultRead


class LeaderboardEntry(QuizResultRead):
    user_name: str
    user_usn: str | None = None
