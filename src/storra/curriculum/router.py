"""Lesson progress endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storra.auth.dependencies import get_current_user
from storra.curriculum.lesson_service import course_overview, learning_stats, mark_lesson_completed
from storra.curriculum.schemas import (
    CourseOverviewResponse,
    LearningStatsResponse,
    LessonCompleteRequest,
    LessonCompletionWithCourse,
)
from storra.database import get_session
from storra.db.models import User
from storra.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/lessons", tags=["Lessons"])


@router.get("/stats", response_model=LearningStatsResponse)
async def get_learning_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Lesson, quiz and course totals for the current user."""
    return LearningStatsResponse.model_validate(await learning_stats(db, user.id))


@router.get("/courses/{course_id}", response_model=CourseOverviewResponse)
async def get_course_overview(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return CourseOverviewResponse.model_validate(await course_overview(db, user.id, course_id))


@router.post("/{lesson_id}/complete", response_model=LessonCompletionWithCourse)
async def complete_lesson(
    lesson_id: str,
    body: LessonCompleteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Mark a lesson completed. Idempotent."""
    result = await mark_lesson_completed(db, redis, user.id, body.course_id, lesson_id)
    return LessonCompletionWithCourse.model_validate(result)
