"""
Access policy: who may do what.

Every route asks the same question through `capabilities(role, subscribed)`;
the resulting set is also returned from /api/auth/me so the client renders
from the same rules instead of re-deriving them from the role.
"""

from dataclasses import dataclass
from enum import Enum as PyEnum
from uuid import UUID


class Role(str, PyEnum):
    """Account role."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class Capability(str, PyEnum):
    """Action a principal may perform."""

    BROWSE_NOTES = "browse_notes"
    RATE_NOTES = "rate_notes"
    TAKE_QUIZ = "take_quiz"
    PURCHASE_SUBSCRIPTION = "purchase_subscription"
    VIEW_FULL_DOCUMENT = "view_full_document"
    USE_AI = "use_ai"
    MANAGE_NOTES = "manage_notes"
    MANAGE_USERS = "manage_users"
    RESET_LEADERBOARD = "reset_leaderboard"


STAFF_ROLES = frozenset({Role.TEACHER, Role.ADMIN})

# Missing one of these means "pay first" (402), not "forbidden" (403)
SUBSCRIPTION_CAPABILITIES = frozenset({Capability.VIEW_FULL_DOCUMENT, Capability.USE_AI})

_BASE_CAPABILITIES = frozenset({
    Capability.BROWSE_NOTES,
    Capability.RATE_NOTES,
    Capability.TAKE_QUIZ,
    Capability.PURCHASE_SUBSCRIPTION,
})

_STAFF_CAPABILITIES = frozenset({
    Capability.MANAGE_NOTES,
    Capability.MANAGE_USERS,
    Capability.RESET_LEADERBOARD,
})


def capabilities(role: Role | str, subscribed: bool) -> frozenset[Capability]:
    """
    Return the set of capabilities for a role and subscription state.

    Staff (teacher/admin) bypass the subscription check entirely.
    """
    role = Role(role)
    allowed = set(_BASE_CAPABILITIES)
    if role in STAFF_ROLES:
        allowed |= SUBSCRIPTION_CAPABILITIES
        allowed |= _STAFF_CAPABILITIES
    elif subscribed:
        allowed |= SUBSCRIPTION_CAPABILITIES
    return frozenset(allowed)


# =============================================================================
# ACTORS
# =============================================================================


@dataclass(frozen=True)
class GuestActor:
    """Principal without a user row (the built-in administrator)."""

    @property
    def key(self) -> str:
        return "guest"


@dataclass(frozen=True)
class UserActor:
    """Principal backed by a row in the users table."""

    user_id: UUID

    @property
    def key(self) -> str:
        return f"user:{self.user_id}"


Actor = GuestActor | UserActor


def actor_from_subject(subject: str) -> Actor:
    """Parse a token subject claim back into an actor. Raises ValueError on garbage."""
    if subject == "guest":
        return GuestActor()
    return UserActor(UUID(subject))


def actor_subject(actor: Actor) -> str:
    """Token subject claim for an actor."""
    if isinstance(actor, GuestActor):
        return "guest"
    return str(actor.user_id)
