"""User schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema


class StudentCreate(BaseSchema):
    """Schema for adding a student (admin use)."""

    name: str = Field(..., min_length=1, max_length=255)
    usn: str = Field(..., min_length=1, max_length=50)
    date_of_birth: date
    branch: str | None = Field(None, max_length=100)


class TeacherCreate(BaseSchema):
    """Teachers log in by name, so no USN."""

    name: str = Field(..., min_length=1, max_length=255)
    date_of_birth: date
    branch: str | None = Field(None, max_length=100)


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: UUID
    name: str
    usn: str | None
    date_of_birth: date | None
    branch: str | None
    role: str
    is_subscribed: bool
    created_at: datetime


class StudentCreated(BaseSchema):
    message: str
    student: UserRead


class TeacherCreated(BaseSchema):
    message: str
    teacher: UserRead
