"""Quiz results and the leaderboard."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, select

from app.api.deps import DbSession, Principal, get_note_or_404, require_capability, require_user
from app.db.models import QuizResult, User
from app.policy import Capability
from app.schemas.base import MessageResponse
from app.schemas.quiz import LeaderboardEntry, QuizResultRead, QuizResultSaved, QuizSubmitRequest
from app.services.quiz_scoring import badge_for, grade_answers, percentage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quiz", tags=["quiz"])

QuizTaker = Annotated[Principal, Depends(require_capability(Capability.TAKE_QUIZ))]
LeaderboardAdmin = Annotated[Principal, Depends(require_capability(Capability.RESET_LEADERBOARD))]


@router.post("/submit", response_model=QuizResultSaved, status_code=status.HTTP_201_CREATED)
async def submit_quiz(data: QuizSubmitRequest, principal: QuizTaker, db: DbSession) -> QuizResultSaved:
    """
    Record a quiz attempt and award a badge.

    Badge tiers: Gold >= 90%, Silver >= 75%, Bronze >= 50%, otherwise
    Participation.
    """
    user = require_user(principal)
    await get_note_or_404(db, data.note_id)

    if data.answer_key is not None:
        score = grade_answers(data.answers, data.answer_key)
        total = len(data.answer_key)
    else:
        score = data.score
        total = data.total_questions

    percent = percentage(score, total)
    badge = badge_for(percent)

    result = QuizResult(
        user_id=user.id,
        note_id=data.note_id,
        topic_name=data.topic_name,
        score=score,
        total_questions=total,
        percentage=percent,
        badge=badge.value,
    )
    db.add(result)
    await db.commit()
    await db.refresh(result)

    logger.info("Quiz result %s/%s (%s) for %s", score, total, badge.value, user.id)
    return QuizResultSaved(message="Result saved!", result=QuizResultRead.model_validate(result))


@router.get("/my-results", response_model=list[QuizResultRead])
async def my_results(principal: QuizTaker, db: DbSession) -> list[QuizResultRead]:
    """The caller's attempts, newest first."""
    user = require_user(principal)
    result = await db.execute(
        select(QuizResult).where(QuizResult.user_id == user.id).order_by(QuizResult.taken_at.desc())
    )
    return [QuizResultRead.model_validate(r) for r in result.scalars()]


@router.get("/all-results", response_model=list[LeaderboardEntry])
async def leaderboard(_: QuizTaker, db: DbSession) -> list[LeaderboardEntry]:
    """Every attempt, best percentage first, ties broken by most recent."""
    result = await db.execute(
        select(QuizResult, User.name, User.usn)
        .join(User, QuizResult.user_id == User.id)
        .order_by(QuizResult.percentage.desc(), QuizResult.taken_at.desc())
    )
    entries = []
    for quiz_result, user_name, user_usn in result.all():
        entries.append(
            LeaderboardEntry(
                **QuizResultRead.model_validate(quiz_result).model_dump(),
                user_name=user_name,
                user_usn=user_usn,
            )
        )
    return entries


@router.delete("/reset", response_model=MessageResponse)
async def reset_leaderboard(principal: LeaderboardAdmin, db: DbSession) -> MessageResponse:
    """Delete every quiz result."""
    result = await db.execute(delete(QuizResult))
    await db.commit()
    logger.warning("Leaderboard reset by %s (%d results removed)", principal.name, result.rowcount)
    return MessageResponse(message="Leaderboard has been reset successfully.")
