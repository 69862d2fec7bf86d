"""
SQLAlchemy 2.0 Models for StudyNotes.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys and proper relationship definitions.
Column types are the portable ones (Uuid, DateTime) so the same
metadata runs on PostgreSQL in production and SQLite in tests.
"""

from datetime import date, datetime, timezone
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class ChatSender(str, PyEnum):
    """Author of a chat turn."""

    USER = "user"
    AI = "ai"


class Badge(str, PyEnum):
    """Quiz result tier."""

    GOLD = "Gold"
    SILVER = "Silver"
    BRONZE = "Bronze"
    PARTICIPATION = "Participation"


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Student, teacher or admin account.

    Students log in with USN + date of birth, teachers with name + date of birth.
    The built-in administrator has no row here (see app.policy.GuestActor).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('student', 'teacher', 'admin')", name="valid_role"),
        Index("idx_users_role", "role"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    usn: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)  # upper-case
    date_of_birth: Mapped[Optional[date]] = mapped_column(nullable=True)
    branch: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="student")
    is_subscribed: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    notes: Mapped[list["Note"]] = relationship("Note", back_populates="uploader")
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="user", cascade="all, delete-orphan"
    )
    quiz_results: Mapped[list["QuizResult"]] = relationship(
        "QuizResult", back_populates="user", cascade="all, delete-orphan"
    )


class Note(Base):
    """
    Uploaded PDF study material.

    The file itself lives in the flat uploads directory; `stored_filename`
    is its name there and `file_name` is what the uploader called it.
    """

    __tablename__ = "notes"
    __table_args__ = (
        Index("idx_notes_category", "branch", "semester", "subject", "module"),
        Index("idx_notes_created_at", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    stored_filename: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Categorization
    branch: Mapped[str] = mapped_column(String(100), nullable=False)
    semester: Mapped[str] = mapped_column(String(50), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    module: Mapped[str] = mapped_column(String(100), nullable=False)

    uploader_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    uploader_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    uploader: Mapped[Optional["User"]] = relationship("User", back_populates="notes")
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="note", cascade="all, delete-orphan"
    )
    chat_histories: Mapped[list["ChatHistory"]] = relationship(
        "ChatHistory", back_populates="note", cascade="all, delete-orphan"
    )
    quiz_results: Mapped[list["QuizResult"]] = relationship(
        "QuizResult", back_populates="note", cascade="all, delete-orphan"
    )


class Review(Base):
    """One rating per (note, user)."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("note_id", "user_id", name="unique_note_user_review"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="valid_rating"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    note_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[int] = mapped_column(nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    note: Mapped["Note"] = relationship("Note", back_populates="reviews")
    user: Mapped["User"] = relationship("User", back_populates="reviews")


class ChatHistory(Base):
    """
    Conversation between one actor and one note.

    `actor_key` is the serialized Actor ("guest" or "user:<uuid>"), so the
    built-in administrator and real users share one keyspace.
    """

    __tablename__ = "chat_histories"
    __table_args__ = (
        UniqueConstraint("note_id", "actor_key", name="unique_note_actor_history"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    note_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    actor_key: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    note: Mapped["Note"] = relationship("Note", back_populates="chat_histories")
    messages: Mapped[list["ChatMessage"]] = relationship(
        "ChatMessage",
        back_populates="history",
        cascade="all, delete-orphan",
        order_by="ChatMessage.position",
    )


class ChatMessage(Base):
    """Single turn in a chat history."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        UniqueConstraint("history_id", "position", name="unique_history_position"),
        CheckConstraint("sender IN ('user', 'ai')", name="valid_sender"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    history_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("chat_histories.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(nullable=False)
    sender: Mapped[str] = mapped_column(String(10), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    history: Mapped["ChatHistory"] = relationship("ChatHistory", back_populates="messages")


class QuizResult(Base):
    """One quiz attempt. Percentage and badge are derived at submission."""

    __tablename__ = "quiz_results"
    __table_args__ = (
        Index("idx_quiz_results_ranking", "percentage", "taken_at"),
        CheckConstraint("total_questions > 0", name="valid_total_questions"),
        CheckConstraint("score >= 0 AND score <= total_questions", name="valid_score"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    note_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    topic_name: Mapped[str] = mapped_column(String(255), nullable=False)  # e.g. "Blockchain - Module 1"
    score: Mapped[int] = mapped_column(nullable=False)
    total_questions: Mapped[int] = mapped_column(nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    badge: Mapped[str] = mapped_column(String(20), nullable=False, default=Badge.PARTICIPATION.value)
    # Set client-side so ties on percentage still order by sub-second recency
    taken_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="quiz_results")
    note: Mapped["Note"] = relationship("Note", back_populates="quiz_results")
