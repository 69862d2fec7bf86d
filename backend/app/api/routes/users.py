"""User administration routes (staff only)."""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from app.api.deps import DbSession, UserManager
from app.db.models import User
from app.policy import Role
from app.schemas.user import StudentCreate, StudentCreated, TeacherCreate, TeacherCreated, UserRead

router = APIRouter(prefix="/api/users", tags=["users"])


async def _list_users(db, *conditions) -> list[UserRead]:
    result = await db.execute(select(User).where(*conditions).order_by(User.created_at.desc()))
    return [UserRead.model_validate(u) for u in result.scalars()]


@router.get("/", response_model=list[UserRead])
async def list_students(_: UserManager, db: DbSession) -> list[UserRead]:
    """All students."""
    return await _list_users(db, User.role == Role.STUDENT.value)


@router.get("/subscribed", response_model=list[UserRead])
async def list_subscribed_students(_: UserManager, db: DbSession) -> list[UserRead]:
    """Students with an active subscription."""
    return await _list_users(db, User.role == Role.STUDENT.value, User.is_subscribed.is_(True))


@router.get("/teachers", response_model=list[UserRead])
async def list_teachers(_: UserManager, db: DbSession) -> list[UserRead]:
    return await _list_users(db, User.role == Role.TEACHER.value)


@router.post("/add", response_model=StudentCreated, status_code=status.HTTP_201_CREATED)
async def add_student(data: StudentCreate, _: UserManager, db: DbSession) -> StudentCreated:
    """Add a student. USN must be unique."""
    usn = data.usn.upper()
    result = await db.execute(select(User).where(User.usn == usn))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A student with this USN already exists.",
        )

    student = User(
        name=data.name,
        usn=usn,
        date_of_birth=data.date_of_birth,
        branch=data.branch,
        role=Role.STUDENT.value,
    )
    db.add(student)
    await db.commit()
    await db.refresh(student)
    return StudentCreated(message="Student added successfully!", student=UserRead.model_validate(student))


@router.post("/add-teacher", response_model=TeacherCreated, status_code=status.HTTP_201_CREATED)
async def add_teacher(data: TeacherCreate, _: UserManager, db: DbSession) -> TeacherCreated:
    """Add a teacher. Teachers have no USN and log in by name."""
    teacher = User(
        name=data.name,
        date_of_birth=data.date_of_birth,
        branch=data.branch,
        role=Role.TEACHER.value,
    )
    db.add(teacher)
    await db.commit()
    await db.refresh(teacher)
    return TeacherCreated(message="Teacher added successfully!", teacher=UserRead.model_validate(teacher))
