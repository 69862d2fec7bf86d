"""API routes package."""

from app.api.routes import (
    ai,
    auth,
    notes,
    payment,
    quiz,
    users,
)

__all__ = [
    "ai",
    "auth",
    "notes",
    "payment",
    "quiz",
    "users",
]
