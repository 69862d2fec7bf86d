"""Pydantic schemas for API request/response validation."""

from app.schemas.base import MessageResponse
from app.schemas.user import StudentCreate, StudentCreated, TeacherCreate, TeacherCreated, UserRead
from app.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, SessionRead
from app.schemas.notes import (
    NoteRead,
    NoteSaved,
    NoteWithRating,
    ReviewCreate,
    ReviewRead,
    ReviewSaved,
)
from app.schemas.ai import (
    ChatAnswerResponse,
    ChatRequest,
    ChatTurn,
    QAResponse,
    QuizQuestion,
    QuizResponse,
    SummaryResponse,
)
from app.schemas.quiz import LeaderboardEntry, QuizResultRead, QuizResultSaved, QuizSubmitRequest
from app.schemas.payment import CreateOrderResponse, PaymentVerifyRequest, PaymentVerifyResponse

__all__ = [
    "MessageResponse",
    # User
    "StudentCreate",
    "StudentCreated",
    "TeacherCreate",
    "TeacherCreated",
    "UserRead",
    # Auth
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "SessionRead",
    # Notes
    "NoteRead",
    "NoteSaved",
    "NoteWithRating",
    "ReviewCreate",
    "ReviewRead",
    "ReviewSaved",
    # AI
    "ChatAnswerResponse",
    "ChatRequest",
    "ChatTurn",
    "QAResponse",
    "QuizQuestion",
    "QuizResponse",
    "SummaryResponse",
    # Quiz
    "LeaderboardEntry",
    "QuizResultRead",
    "QuizResultSaved",
    "QuizSubmitRequest",
    # Payment
    "CreateOrderResponse",
    "PaymentVerifyRequest",
    "PaymentVerifyResponse",
]
