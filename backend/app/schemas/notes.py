"""Note and review schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin


class NoteRead(BaseSchema, IDMixin, TimestampMixin):
    """Schema for reading note metadata."""

    title: str
    description: str | None = None
    file_name: str
    branch: str
    semester: str
    subject: str
    module: str
    uploader_id: UUID | None = None
    uploader_name: str | None = None


class NoteWithRating(NoteRead):
    """Note plus its aggregated review stats."""

    average_rating: float = 0
    review_count: int = 0


class NoteSaved(BaseSchema):
    message: str
    note: NoteRead


class ReviewCreate(BaseSchema):
    """Add or replace the caller's review of a note."""

    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=500)


class ReviewRead(BaseSchema, IDMixin, TimestampMixin):
    note_id: UUID
    user_id: UUID
    user_name: str
    rating: int
    comment: str | None = None


class ReviewSaved(BaseSchema):
    message: str
    review: ReviewRead
