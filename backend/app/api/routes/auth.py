"""
Authentication Routes

Endpoints:
- POST /api/auth/register - Student self-registration
- POST /api/auth/login - Exchange USN/name + date of birth for a session token
- GET /api/auth/me - Current session and its capabilities

Login Flow:
1. Built-in admin: USN equals settings.admin_usn and DOB equals settings.admin_date_of_birth
2. Teacher (loginType == "teacher"): first teacher with that name
3. Everyone else: user with that USN (case-insensitive)
4. Date of birth must match the stored one exactly
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from app.api.deps import CurrentPrincipal, DbSession, create_access_token, token_for_user
from app.config import get_settings
from app.db.models import User
from app.policy import GuestActor, Role
from app.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, SessionRead
from app.schemas.base import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
settings = get_settings()


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, db: DbSession) -> MessageResponse:
    """Register a new student. USNs are stored upper-case and must be unique."""
    usn = data.usn.upper()
    result = await db.execute(select(User).where(User.usn == usn))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A user with this USN already exists.",
        )

    db.add(
        User(
            name=data.name,
            usn=usn,
            date_of_birth=data.date_of_birth,
            branch=data.branch,
            role=Role.STUDENT.value,
        )
    )
    await db.commit()
    logger.info("Registered student %s", usn)
    return MessageResponse(message="User registered successfully!")


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, db: DbSession) -> LoginResponse:
    """Exchange identity + date of birth for a session JWT."""
    # 1. Built-in administrator
    if (
        data.login_type != "teacher"
        and settings.admin_date_of_birth is not None
        and data.usn
        and data.usn.upper() == settings.admin_usn.upper()
        and data.date_of_birth == settings.admin_date_of_birth
    ):
        token = create_access_token(GuestActor(), settings.admin_name, Role.ADMIN, True)
        logger.info("Built-in admin logged in")
        return LoginResponse(token=token, name=settings.admin_name, role=Role.ADMIN.value, is_subscribed=True)

    # 2. Teacher by name
    if data.login_type == "teacher":
        if not data.name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required.")
        result = await db.execute(
            select(User)
            .where(User.name == data.name, User.role == Role.TEACHER.value)
            .order_by(User.created_at)
            .limit(1)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Teacher not found. Check Name.",
            )

    # 3. Student (or staff with a USN) by USN
    else:
        if not data.usn:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="USN is required.")
        result = await db.execute(select(User).where(User.usn == data.usn.upper()))
        user = result.scalar_one_or_none()
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="USN not found. Please check your credentials.",
            )

    if user.date_of_birth != data.date_of_birth:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Date of Birth.")

    return LoginResponse(
        token=token_for_user(user),
        name=user.name,
        role=user.role,
        is_subscribed=user.is_subscribed,
    )


@router.get("/me", response_model=SessionRead)
async def get_me(principal: CurrentPrincipal) -> SessionRead:
    """
    Current session, with the capability set the client should render from.

    Useful after a page reload or a subscription purchase, since role and
    subscription are re-read from the database.
    """
    return SessionRead(
        name=principal.name,
        role=principal.role.value,
        is_subscribed=principal.is_subscribed,
        capabilities=sorted(principal.capabilities, key=lambda c: c.value),
    )
