"""Quiz API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storra.auth.dependencies import get_current_user
from storra.database import get_session
from storra.db.models import User
from storra.quizzes.schemas import (
    CourseProgressResponse,
    QuizDetailResponse,
    QuizProgressSummary,
    QuizStatsResponse,
    QuizSubmitRequest,
    QuizSubmitResponse,
)
from storra.quizzes.scoring import SubmittedAnswer
from storra.quizzes.service import QuizService
from storra.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/quizzes", tags=["Quizzes"])


# Static paths first so they are not captured by /{course_id}/{quiz_id}


@router.get("/stats", response_model=QuizStatsResponse)
async def quiz_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Aggregate quiz statistics for the current user."""
    return QuizStatsResponse.model_validate(await QuizService(db).stats(user.id))


@router.get("/progress/{course_id}", response_model=CourseProgressResponse)
async def course_progress(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    rows = await QuizService(db).course_progress(user.id, course_id)
    return CourseProgressResponse(
        course_id=course_id,
        quizzes=[QuizProgressSummary.model_validate(r) for r in rows],
    )


@router.get("/{course_id}/{quiz_id}", response_model=QuizDetailResponse)
async def get_quiz(
    course_id: str,
    quiz_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Quiz content without answers, plus the user's progress."""
    return QuizDetailResponse.model_validate(await QuizService(db).get_quiz_for_user(user.id, course_id, quiz_id))


@router.post("/{course_id}/{quiz_id}/submit", response_model=QuizSubmitResponse)
async def submit_quiz(
    course_id: str,
    quiz_id: str,
    body: QuizSubmitRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Grade a submission and record the attempt."""
    service = QuizService(db, redis)
    result = await service.submit_attempt(
        user.id,
        course_id,
        quiz_id,
        [SubmittedAnswer(a.question_id, a.selected_answer) for a in body.answers],
        time_spent=body.time_spent,
    )
    return QuizSubmitResponse.model_validate(result)
