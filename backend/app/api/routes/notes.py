"""Notes routes: browsing, gated file view, reviews and staff CRUD."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy import func, select

from app.api.deps import (
    CurrentPrincipal,
    DbSession,
    Principal,
    Staff,
    get_note_or_404,
    require_capability,
    require_user,
)
from app.config import get_settings, sanitize_error
from app.db.models import Note, Review
from app.policy import Capability, UserActor
from app.schemas.base import MessageResponse
from app.schemas.notes import (
    NoteRead,
    NoteSaved,
    NoteWithRating,
    ReviewCreate,
    ReviewRead,
    ReviewSaved,
)
from app.services import file_storage, pdf_processor
from app.services.storage import StorageError

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/notes", tags=["notes"])

Browser = Annotated[Principal, Depends(require_capability(Capability.BROWSE_NOTES))]
Rater = Annotated[Principal, Depends(require_capability(Capability.RATE_NOTES))]


# =============================================================================
# HELPERS
# =============================================================================


async def _read_pdf_upload(file: UploadFile | None) -> bytes:
    """Read and validate an uploaded PDF. Raises 400 on anything unusable."""
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file was uploaded.")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The uploaded file is empty.")
    if len(data) > settings.max_pdf_size_bytes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The uploaded file is too large.")
    if not await pdf_processor.validate_pdf(data):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The uploaded file is not a valid PDF.",
        )
    return data


def _required_field(name: str, value: str) -> str:
    """Strip a required form field. Blank values are a 400."""
    value = value.strip()
    if not value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{name} is required.")
    return value


async def _store(file: UploadFile, data: bytes) -> str:
    try:
        return await file_storage.save(file.filename, data)
    except StorageError as e:
        logger.error("Failed to store upload %s: %s", file.filename, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=sanitize_error(e, generic_message="Failed to upload note."),
        )


async def _discard_file(filename: str) -> None:
    """Remove a file whose note no longer references it. Failures are logged, not raised."""
    try:
        if not await file_storage.delete(filename):
            logger.warning("File %s was already missing", filename)
    except StorageError:
        logger.warning("Could not delete file %s", filename, exc_info=True)


# =============================================================================
# BROWSING
# =============================================================================


@router.get("/", response_model=list[NoteRead])
async def list_notes(_: Browser, db: DbSession) -> list[NoteRead]:
    """All notes, newest first."""
    result = await db.execute(select(Note).order_by(Note.created_at.desc()))
    return [NoteRead.model_validate(n) for n in result.scalars()]


@router.get("/subjects", response_model=list[str])
async def list_subjects(
    _: Browser,
    db: DbSession,
    branch: str | None = None,
    semester: str | None = None,
) -> list[str]:
    """Distinct subjects that have notes for a branch and semester."""
    if not branch or not semester:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Branch and semester are required.",
        )
    result = await db.execute(
        select(Note.subject)
        .where(Note.branch == branch, Note.semester == semester)
        .distinct()
        .order_by(Note.subject)
    )
    return list(result.scalars())


@router.get("/filter", response_model=list[NoteWithRating])
async def filter_notes(
    _: Browser,
    db: DbSession,
    branch: Annotated[str | None, Query()] = None,
    semester: Annotated[str | None, Query()] = None,
    subject: Annotated[str | None, Query()] = None,
    module: Annotated[str | None, Query()] = None,
) -> list[NoteWithRating]:
    """Notes in one category slot with their average rating and review count."""
    if not (branch and semester and subject and module):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All filter criteria are required.",
        )

    query = (
        select(
            Note,
            func.coalesce(func.avg(Review.rating), 0).label("average_rating"),
            func.count(Review.id).label("review_count"),
        )
        .outerjoin(Review, Review.note_id == Note.id)
        .where(
            Note.branch == branch,
            Note.semester == semester,
            Note.subject == subject,
            Note.module == module,
        )
        .group_by(Note.id)
        .order_by(Note.created_at.desc())
    )
    result = await db.execute(query)

    notes = []
    for note, average_rating, review_count in result.all():
        item = NoteWithRating.model_validate(note)
        item.average_rating = float(average_rating or 0)
        item.review_count = review_count
        notes.append(item)
    return notes


@router.get("/view/{note_id}")
async def view_note_file(note_id: UUID, principal: CurrentPrincipal, db: DbSession) -> Response:
    """
    Stream a note's PDF.

    Callers with view_full_document (staff, subscribed students) get the whole
    file; everyone else gets a new PDF holding only the first pages.
    """
    note = await get_note_or_404(db, note_id, detail="File not found.")

    if not file_storage.exists(note.stored_filename):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found on server.")

    if principal.can(Capability.VIEW_FULL_DOCUMENT):
        return FileResponse(
            file_storage.path_for(note.stored_filename),
            media_type="application/pdf",
            filename=note.file_name,
            content_disposition_type="inline",
        )

    try:
        pdf_bytes = await file_storage.read(note.stored_filename)
        preview = await pdf_processor.preview(pdf_bytes, settings.preview_page_count)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found on server.")
    except Exception as e:
        logger.error("Failed to build preview for note %s: %s", note_id, e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=sanitize_error(e, generic_message="Error loading file."),
        )

    return Response(content=preview, media_type="application/pdf")


# =============================================================================
# REVIEWS
# =============================================================================


@router.get("/{note_id}/reviews", response_model=list[ReviewRead])
async def list_reviews(note_id: UUID, _: Browser, db: DbSession) -> list[ReviewRead]:
    result = await db.execute(
        select(Review).where(Review.note_id == note_id).order_by(Review.created_at.desc())
    )
    return [ReviewRead.model_validate(r) for r in result.scalars()]


@router.post("/{note_id}/rate", response_model=ReviewSaved)
async def rate_note(
    note_id: UUID,
    data: ReviewCreate,
    principal: Rater,
    response: Response,
    db: DbSession,
) -> ReviewSaved:
    """
    Add or update the caller's review.

    A second submission by the same user replaces the rating and comment
    (200) instead of creating another review (201).
    """
    user = require_user(principal)
    await get_note_or_404(db, note_id)

    result = await db.execute(
        select(Review).where(Review.note_id == note_id, Review.user_id == user.id)
    )
    review = result.scalar_one_or_none()

    if review is not None:
        review.rating = data.rating
        review.comment = data.comment
        message = "Review updated successfully!"
        response.status_code = status.HTTP_200_OK
    else:
        review = Review(
            note_id=note_id,
            user_id=user.id,
            user_name=user.name,
            rating=data.rating,
            comment=data.comment,
        )
        db.add(review)
        message = "Review added successfully!"
        response.status_code = status.HTTP_201_CREATED

    await db.commit()
    await db.refresh(review)
    return ReviewSaved(message=message, review=ReviewRead.model_validate(review))


# =============================================================================
# STAFF CRUD
# =============================================================================


@router.post("/upload", response_model=NoteSaved, status_code=status.HTTP_201_CREATED)
async def upload_note(
    principal: Staff,
    db: DbSession,
    title: Annotated[str, Form(min_length=1, max_length=255)],
    branch: Annotated[str, Form(min_length=1, max_length=100)],
    semester: Annotated[str, Form(min_length=1, max_length=50)],
    subject: Annotated[str, Form(min_length=1, max_length=255)],
    module: Annotated[str, Form(min_length=1, max_length=100)],
    description: Annotated[str | None, Form()] = None,
    file: Annotated[UploadFile | None, File()] = None,
) -> NoteSaved:
    """Upload a PDF with its categorization (multipart form)."""
    title = _required_field("title", title)
    branch = _required_field("branch", branch)
    semester = _required_field("semester", semester)
    subject = _required_field("subject", subject)
    module = _required_field("module", module)
    data = await _read_pdf_upload(file)
    stored_filename = await _store(file, data)

    note = Note(
        title=title,
        description=description,
        stored_filename=stored_filename,
        file_name=file.filename,
        branch=branch,
        semester=semester,
        subject=subject,
        module=module,
        uploader_id=principal.actor.user_id if isinstance(principal.actor, UserActor) else None,
        uploader_name=principal.name,
    )
    db.add(note)
    try:
        await db.commit()
    except Exception:
        await _discard_file(stored_filename)
        raise
    await db.refresh(note)

    logger.info("Note %s uploaded by %s (%s)", note.id, principal.name, stored_filename)
    return NoteSaved(message="Note uploaded successfully!", note=NoteRead.model_validate(note))


@router.put("/update/{note_id}", response_model=NoteSaved)
async def update_note(
    note_id: UUID,
    _: Staff,
    db: DbSession,
    title: Annotated[str | None, Form(max_length=255)] = None,
    description: Annotated[str | None, Form()] = None,
    branch: Annotated[str | None, Form(max_length=100)] = None,
    semester: Annotated[str | None, Form(max_length=50)] = None,
    subject: Annotated[str | None, Form(max_length=255)] = None,
    module: Annotated[str | None, Form(max_length=100)] = None,
    file: Annotated[UploadFile | None, File()] = None,
) -> NoteSaved:
    """
    Update a note's metadata and optionally replace its file.

    Omitted or blank fields keep their current value. The old file is removed
    after the database update; failure to remove it is only logged. A new
    file is removed again if the update cannot be committed.
    """
    note = await get_note_or_404(db, note_id)

    if description is not None:
        note.description = description
    for field, value in (
        ("title", title),
        ("branch", branch),
        ("semester", semester),
        ("subject", subject),
        ("module", module),
    ):
        if value is not None and value.strip():
            setattr(note, field, value.strip())

    old_filename = new_filename = None
    if file is not None and file.filename:
        data = await _read_pdf_upload(file)
        old_filename = note.stored_filename
        new_filename = await _store(file, data)
        note.stored_filename = new_filename
        note.file_name = file.filename

    try:
        await db.commit()
    except Exception:
        if new_filename:
            await _discard_file(new_filename)
        raise
    await db.refresh(note)

    if old_filename:
        await _discard_file(old_filename)

    return NoteSaved(message="Note updated successfully!", note=NoteRead.model_validate(note))


@router.delete("/delete/{note_id}", response_model=MessageResponse)
async def delete_note(note_id: UUID, _: Staff, db: DbSession) -> MessageResponse:
    """
    Delete a note and its file.

    The database row is authoritative: it is deleted first, and a missing or
    undeletable file is logged without failing the request.
    """
    note = await get_note_or_404(db, note_id)
    stored_filename = note.stored_filename

    await db.delete(note)
    await db.commit()

    await _discard_file(stored_filename)
    logger.info("Deleted note %s", note_id)
    return MessageResponse(message="Note deleted successfully!")
