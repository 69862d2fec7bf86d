"""Authentication schemas."""

from datetime import date
from typing import Literal

from pydantic import Field

from app.policy import Capability
from app.schemas.base import BaseSchema


class RegisterRequest(BaseSchema):
    """Student self-registration."""

    name: str = Field(..., min_length=1, max_length=255)
    usn: str = Field(..., min_length=1, max_length=50)
    date_of_birth: date
    branch: str | None = Field(None, max_length=100)


class LoginRequest(BaseSchema):
    """
    Login with USN + DOB (students, built-in admin) or name + DOB (teachers).

    `login_type` selects the lookup; anything but "teacher" is a USN login.
    """

    usn: str | None = None
    name: str | None = None
    date_of_birth: date
    login_type: Literal["student", "teacher", "admin"] = "student"


class LoginResponse(BaseSchema):
    """Response schema for successful authentication."""

    token: str
    name: str
    role: str
    is_subscribed: bool


class SessionRead(BaseSchema):
    """Who the token belongs to and what they may do."""

    name: str
    role: str
    is_subscribed: bool
    capabilities: list[Capability]
