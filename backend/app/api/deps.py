"""
FastAPI Dependencies for Authentication and Authorization.

Key patterns:
1. get_current_principal: Extracts and validates JWT, returns a Principal
2. require_capability: Route-level gate driven by app.policy.capabilities
3. No global "current user" state - the principal is always passed explicitly

Security model:
- JWT sent in the x-auth-token header (or Authorization: Bearer)
- For registered users the role and subscription flag are re-read from the
  database on every request; the token copy is informational only
- The built-in administrator is a GuestActor with no user row
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated, Callable

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.models import Note, User
from app.db.session import get_db
from app.policy import (
    SUBSCRIPTION_CAPABILITIES,
    Actor,
    Capability,
    GuestActor,
    Role,
    UserActor,
    actor_from_subject,
    actor_subject,
    capabilities,
)

settings = get_settings()


@dataclass(frozen=True)
class Principal:
    """The authenticated caller for one request."""

    actor: Actor
    name: str
    role: Role
    is_subscribed: bool
    user: User | None = None

    @property
    def capabilities(self) -> frozenset[Capability]:
        return capabilities(self.role, self.is_subscribed)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities


# =============================================================================
# JWT UTILITIES
# =============================================================================


def create_access_token(actor: Actor, name: str, role: Role | str, is_subscribed: bool) -> str:
    """
    Create a JWT access token.

    Token payload contains:
    - sub: "guest" or the user id
    - name, role, is_subscribed: session info for the client
    - exp: expiration timestamp
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": actor_subject(actor),
        "name": name,
        "role": Role(role).value,
        "is_subscribed": is_subscribed,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def token_for_user(user: User) -> str:
    return create_access_token(UserActor(user.id), user.name, user.role, user.is_subscribed)


def decode_access_token(token: str) -> dict | None:
    """
    Decode and validate a JWT access token.

    Returns the claims if valid, None if invalid/expired/malformed.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        payload["actor"] = actor_from_subject(payload["sub"])
        payload["role"] = Role(payload["role"])
        return payload
    except (JWTError, KeyError, TypeError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    x_auth_token: Annotated[str | None, Header()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """
    Extract JWT token from request.

    1. x-auth-token header
    2. Authorization header: 'Bearer <token>'
    """
    if x_auth_token:
        return x_auth_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No token, authorization denied.",
    )


async def get_current_principal(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Principal:
    """
    Validate JWT and return the current principal.

    Raises 401 if:
    - Token is invalid or expired
    - The user no longer exists
    - The token claims the built-in admin while it is disabled
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Token is not valid.",
    )

    claims = decode_access_token(token)
    if claims is None:
        raise credentials_exception

    actor = claims["actor"]
    if isinstance(actor, GuestActor):
        if claims["role"] != Role.ADMIN or settings.admin_date_of_birth is None:
            raise credentials_exception
        return Principal(actor=actor, name=settings.admin_name, role=Role.ADMIN, is_subscribed=True)

    result = await db.execute(select(User).where(User.id == actor.user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise credentials_exception

    return Principal(
        actor=actor,
        name=user.name,
        role=Role(user.role),
        is_subscribed=user.is_subscribed,
        user=user,
    )


# Type alias for dependency injection
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# AUTHORIZATION HELPERS
# =============================================================================


def require_capability(capability: Capability) -> Callable:
    """
    Dependency factory gating a route on one capability.

        @router.post("/upload")
        async def upload(principal: Annotated[Principal, Depends(require_capability(Capability.MANAGE_NOTES))]):
            ...

    Missing a subscription capability is 402 Payment Required, anything else 403.
    """

    async def dependency(principal: CurrentPrincipal) -> Principal:
        if principal.can(capability):
            return principal
        if capability in SUBSCRIPTION_CAPABILITIES:
            raise HTTPException(
                status_code=status.HTTP_402_PAYMENT_REQUIRED,
                detail="Payment required. Please subscribe to use this feature.",
            )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin or Teacher role required.",
        )

    return dependency


def require_user(principal: Principal) -> User:
    """
    Return the principal's user row, or 403 for the built-in administrator.

    Reviews, quiz results and payments are always tied to a real account.
    """
    if principal.user is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This action requires a registered user account.",
        )
    return principal.user


Staff = Annotated[Principal, Depends(require_capability(Capability.MANAGE_NOTES))]
UserManager = Annotated[Principal, Depends(require_capability(Capability.MANAGE_USERS))]
Subscriber = Annotated[Principal, Depends(require_capability(Capability.USE_AI))]


# =============================================================================
# QUERY HELPERS
# =============================================================================


async def get_note_or_404(db: AsyncSession, note_id, detail: str = "Note not found.") -> Note:
    """Fetch a note by id or raise 404."""
    result = await db.execute(select(Note).where(Note.id == note_id))
    note = result.scalar_one_or_none()
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return note
