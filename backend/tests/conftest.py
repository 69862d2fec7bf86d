"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import date

# Settings are read once at import time, so the environment must be ready
# before anything under app/ is imported.
_TMP_DIR = tempfile.mkdtemp(prefix="studynotes-tests-")
os.environ.update(
    {
        "ENVIRONMENT": "production",
        "JWT_SECRET_KEY": "test-jwt-secret",
        "ANTHROPIC_API_KEY": "test-anthropic-key",
        "DATABASE_URL_OVERRIDE": f"sqlite+aiosqlite:///{_TMP_DIR}/test.db",
        "UPLOADS_DIR": os.path.join(_TMP_DIR, "uploads"),
        "ADMIN_USN": "ADMIN",
        "ADMIN_NAME": "Admin",
        "ADMIN_DATE_OF_BIRTH": "1990-01-01",
        "RAZORPAY_KEY_ID": "rzp_test_key",
        "RAZORPAY_KEY_SECRET": "rzp_test_secret",
    }
)

import pymupdf  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.api.deps import create_access_token, token_for_user  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.models import Note, User  # noqa: E402
from app.db.session import AsyncSessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.policy import GuestActor, Role  # noqa: E402
from app.services import file_storage  # noqa: E402

ADMIN_DOB = date(1990, 1, 1)


@pytest.fixture(autouse=True)
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# =============================================================================
# PDF HELPERS
# =============================================================================


def make_pdf(pages: int = 3, text: str | None = None) -> bytes:
    """Build a small PDF with one line of text per page."""
    doc = pymupdf.open()
    for i in range(pages):
        page = doc.new_page()
        page.insert_text(
            (72, 72),
            text or f"Page {i + 1}: consensus protocols, hashing and distributed ledgers.",
        )
    data = doc.tobytes()
    doc.close()
    return data


def page_count(pdf_bytes: bytes) -> int:
    with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
        return len(doc)


# =============================================================================
# DATA FIXTURES
# =============================================================================


@pytest.fixture
def create_user():
    """Factory inserting a user row directly."""

    async def _create(
        *,
        name: str = "Asha Rao",
        usn: str | None = "1AB21CS001",
        role: Role = Role.STUDENT,
        is_subscribed: bool = False,
        date_of_birth: date = date(2003, 5, 17),
        branch: str | None = "CSE",
    ) -> User:
        async with AsyncSessionLocal() as session:
            user = User(
                name=name,
                usn=usn,
                role=role.value,
                is_subscribed=is_subscribed,
                date_of_birth=date_of_birth,
                branch=branch,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _create


@pytest.fixture
async def student(create_user) -> User:
    return await create_user()


@pytest.fixture
async def subscriber(create_user) -> User:
    return await create_user(name="Vikram Shetty", usn="1AB21CS002", is_subscribed=True)


@pytest.fixture
async def teacher(create_user) -> User:
    return await create_user(name="Dr. Meera Iyer", usn=None, role=Role.TEACHER, date_of_birth=date(1980, 2, 29))


def headers_for(user: User) -> dict[str, str]:
    return {"x-auth-token": token_for_user(user)}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Headers for the built-in administrator (no user row)."""
    token = create_access_token(GuestActor(), "Admin", Role.ADMIN, True)
    return {"x-auth-token": token}


@pytest.fixture
def create_note():
    """Factory storing a PDF and inserting its note row."""

    async def _create(
        *,
        pages: int = 3,
        pdf_bytes: bytes | None = None,
        title: str = "Blockchain Basics",
        branch: str = "CSE",
        semester: str = "6",
        subject: str = "Blockchain",
        module: str = "Module 1",
        uploader: User | None = None,
    ) -> Note:
        data = pdf_bytes if pdf_bytes is not None else make_pdf(pages)
        stored_filename = await file_storage.save("notes.pdf", data)
        async with AsyncSessionLocal() as session:
            note = Note(
                title=title,
                stored_filename=stored_filename,
                file_name="notes.pdf",
                branch=branch,
                semester=semester,
                subject=subject,
                module=module,
                uploader_id=uploader.id if uploader else None,
                uploader_name=uploader.name if uploader else "Admin",
            )
            session.add(note)
            await session.commit()
            await session.refresh(note)
            return note

    return _create
