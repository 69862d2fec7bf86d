"""API routes for AI summaries, quizzes, descriptive Q&A and document chat."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.api.deps import CurrentPrincipal, DbSession, Subscriber, get_note_or_404
from app.config import get_settings, sanitize_error
from app.db.models import ChatHistory, ChatMessage, ChatSender
from app.schemas.ai import (
    ChatAnswerResponse,
    ChatRequest,
    ChatTurn,
    QAResponse,
    QuizResponse,
    SummaryResponse,
)
from app.services import ai_service, file_storage, pdf_processor
from app.services.ai_service import AIServiceError, InsufficientTextError, QuizFormatError
from app.services.storage import StorageError

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/ai", tags=["ai"])

CHAT_GREETING = ChatTurn(sender="ai", text="Hello! Ask me any question about this document.")


# =============================================================================
# HELPERS
# =============================================================================


async def _load_document_text(db, note_id: UUID) -> str:
    """
    Resolve a note to its stored PDF and extract all text.

    Raises 404 when the note or its file is missing and 500 when the PDF
    cannot be parsed.
    """
    note = await get_note_or_404(db, note_id, detail="Note or file not found.")

    try:
        pdf_bytes = await file_storage.read(note.stored_filename)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note or file not found.")
    except StorageError as e:
        logger.error("Failed to read file for note %s: %s", note_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing the PDF file.",
        )

    result = await pdf_processor.extract_text(pdf_bytes)
    if result["status"] == "failed":
        logger.error("PDF text extraction failed for note %s: %s", note_id, result.get("error"))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing the PDF file.",
        )

    logger.info("Extracted %d characters from %s", len(result["text"]), note.file_name)
    return result["text"]


def _insufficient_text() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Could not extract sufficient text from the PDF.",
    )


def _ai_failure(e: Exception, generic_message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=sanitize_error(e, generic_message=generic_message),
    )


# =============================================================================
# ONE-SHOT GENERATION
# =============================================================================


@router.post("/summarize/{note_id}", response_model=SummaryResponse)
async def summarize_note(note_id: UUID, _: Subscriber, db: DbSession) -> SummaryResponse:
    """Concise summary of a note's PDF."""
    text = await _load_document_text(db, note_id)
    try:
        summary = await ai_service.summarize(text)
    except InsufficientTextError:
        raise _insufficient_text()
    except AIServiceError as e:
        raise _ai_failure(e, "An unexpected error occurred while generating the summary.")
    return SummaryResponse(summary=summary)


@router.post("/quiz/{note_id}", response_model=QuizResponse)
async def generate_quiz(note_id: UUID, _: Subscriber, db: DbSession) -> QuizResponse:
    """Five multiple-choice questions generated from a note's PDF."""
    text = await _load_document_text(db, note_id)
    try:
        quiz = await ai_service.generate_quiz(text)
    except InsufficientTextError:
        raise _insufficient_text()
    except QuizFormatError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="AI generated an invalid quiz format. Please try again.",
        )
    except AIServiceError as e:
        raise _ai_failure(e, "An unexpected error occurred while generating quiz.")
    return QuizResponse(quiz=quiz)


@router.post("/qa/{note_id}", response_model=QAResponse)
async def generate_descriptive_qa(note_id: UUID, _: Subscriber, db: DbSession) -> QAResponse:
    """Descriptive questions with short answers drawn from a note's PDF."""
    text = await _load_document_text(db, note_id)
    try:
        qa_pairs = await ai_service.generate_qa(text)
    except InsufficientTextError:
        raise _insufficient_text()
    except AIServiceError as e:
        raise _ai_failure(e, "An unexpected error occurred while generating Q&A.")
    return QAResponse(qa_pairs=qa_pairs)


# =============================================================================
# CHAT
# =============================================================================


async def _get_history(db, note_id: UUID, actor_key: str) -> ChatHistory | None:
    result = await db.execute(
        select(ChatHistory)
        .options(selectinload(ChatHistory.messages))
        .where(ChatHistory.note_id == note_id, ChatHistory.actor_key == actor_key)
    )
    return result.scalar_one_or_none()


@router.get("/chat/{note_id}", response_model=list[ChatTurn])
async def get_chat_history(note_id: UUID, principal: CurrentPrincipal, db: DbSession) -> list[ChatTurn]:
    """The caller's conversation about a note, or a greeting if there is none yet."""
    history = await _get_history(db, note_id, principal.actor.key)
    if history is None or not history.messages:
        return [CHAT_GREETING]
    return [ChatTurn.model_validate(m) for m in history.messages]


@router.post("/chat/{note_id}", response_model=ChatAnswerResponse)
async def chat_with_note(
    note_id: UUID,
    data: ChatRequest,
    principal: Subscriber,
    db: DbSession,
) -> ChatAnswerResponse:
    """
    Ask a question about a note.

    The last few turns (including this question) are sent as conversation
    context. Both turns are stored only once the model has answered.
    """
    text = await _load_document_text(db, note_id)
    actor_key = principal.actor.key

    history = await _get_history(db, note_id, actor_key)
    turns = [ChatTurn.model_validate(m) for m in history.messages] if history else []
    turns.append(ChatTurn(sender="user", text=data.question))
    recent = turns[-settings.chat_history_window:]

    try:
        answer = await ai_service.answer_question(text, recent, data.question)
    except InsufficientTextError:
        raise _insufficient_text()
    except AIServiceError as e:
        raise _ai_failure(e, "An unexpected error occurred while generating an answer.")

    if history is None:
        history = ChatHistory(note_id=note_id, actor_key=actor_key, messages=[])
        db.add(history)

    next_position = len(history.messages)
    history.messages.append(
        ChatMessage(position=next_position, sender=ChatSender.USER.value, text=data.question)
    )
    history.messages.append(
        ChatMessage(position=next_position + 1, sender=ChatSender.AI.value, text=answer)
    )
    await db.commit()

    return ChatAnswerResponse(answer=answer)
