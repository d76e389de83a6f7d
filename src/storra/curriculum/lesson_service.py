"""Lesson completion and course progress.

Course progress is derived on read from ``lesson_completions`` against the
course's lesson catalog, plus ``quiz_progress`` for the course's quizzes.
A course is completed once every catalog lesson is done and every quiz of
the course has reached the complete status.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storra.curriculum.store import lesson_totals, list_course_lessons, quiz_totals
from storra.db.models import LessonCompletion, QuizProgress
from storra.exceptions import ConcurrentUpdate, NotFound
from storra.quizzes.scoring import QuizStatus
from storra.rewards.achievements import unlock_for_event
from storra.rewards.catalog import AchievementTrigger
from storra.rewards.day_utils import utc_now
from storra.rewards.events import publish_unlocks
from storra.rewards.ledger import atomic_update, ensure_profile

logger = structlog.get_logger()


class CourseStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def lesson_percentage(completed: int, total: int) -> int:
    """Whole-number share of catalog lessons done, rounded half up."""
    if total <= 0:
        return 0
    return min(100, math.floor(completed * 100 / total + 0.5))


def course_status(completed_lessons: int, total_lessons: int, completed_quizzes: int, total_quizzes: int) -> CourseStatus:
    if completed_lessons == 0:
        return CourseStatus.NOT_STARTED
    if total_lessons > 0 and completed_lessons >= total_lessons and completed_quizzes >= total_quizzes:
        return CourseStatus.COMPLETED
    return CourseStatus.IN_PROGRESS


def summarize_course(
    course_id: str,
    total_lessons: int,
    completed_lessons: int,
    total_quizzes: int = 0,
    completed_quizzes: int = 0,
) -> dict:
    return {
        "course_id": course_id,
        "total_lessons": total_lessons,
        "completed_lessons": completed_lessons,
        "progress": lesson_percentage(completed_lessons, total_lessons),
        "total_quizzes": total_quizzes,
        "completed_quizzes": completed_quizzes,
        "status": course_status(completed_lessons, total_lessons, completed_quizzes, total_quizzes).value,
    }


async def count_completed_lessons(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(LessonCompletion).where(LessonCompletion.user_id == user_id)
    )
    return result.scalar_one()


async def _lessons_done_by_course(db: AsyncSession, user_id: int) -> dict[str, int]:
    result = await db.execute(
        select(LessonCompletion.course_id, func.count())
        .where(LessonCompletion.user_id == user_id)
        .group_by(LessonCompletion.course_id)
    )
    return {course_id: count for course_id, count in result}


async def _quizzes_by_course(db: AsyncSession, user_id: int) -> tuple[dict[str, int], dict[str, int]]:
    """Quizzes touched and quizzes completed per course."""
    result = await db.execute(
        select(QuizProgress.course_id, QuizProgress.status).where(QuizProgress.user_id == user_id)
    )
    touched: dict[str, int] = {}
    completed: dict[str, int] = {}
    for course_id, status in result:
        touched[course_id] = touched.get(course_id, 0) + 1
        if status == QuizStatus.COMPLETE.value:
            completed[course_id] = completed.get(course_id, 0) + 1
    return touched, completed


async def _summaries(db: AsyncSession, user_id: int, course_ids: list[str]) -> list[dict]:
    lessons_done = await _lessons_done_by_course(db, user_id)
    _, quizzes_done = await _quizzes_by_course(db, user_id)
    lesson_counts = await lesson_totals(db, course_ids)
    quiz_counts = await quiz_totals(db, course_ids)
    return [
        summarize_course(
            course_id,
            total_lessons=lesson_counts.get(course_id, 0),
            completed_lessons=lessons_done.get(course_id, 0),
            total_quizzes=quiz_counts.get(course_id, 0),
            completed_quizzes=quizzes_done.get(course_id, 0),
        )
        for course_id in course_ids
    ]


async def course_progress(db: AsyncSession, user_id: int, course_id: str) -> dict:
    """Progress summary for one course."""
    return (await _summaries(db, user_id, [course_id]))[0]


async def course_overview(db: AsyncSession, user_id: int, course_id: str) -> dict:
    """Course summary plus every catalog lesson with the user's completion state."""
    lessons = await list_course_lessons(db, course_id)
    if not lessons:
        raise NotFound("Course not found")

    result = await db.execute(
        select(LessonCompletion).where(
            LessonCompletion.user_id == user_id,
            LessonCompletion.course_id == course_id,
        )
    )
    done = {c.lesson_id: c for c in result.scalars().all()}

    return {
        "course": await course_progress(db, user_id, course_id),
        "lessons": [
            {
                "lesson_id": lesson.lesson_id,
                "title": lesson.title,
                "position": lesson.position,
                "completed": lesson.lesson_id in done,
                "completed_at": done[lesson.lesson_id].completed_at if lesson.lesson_id in done else None,
            }
            for lesson in lessons
        ],
    }


async def learning_stats(db: AsyncSession, user_id: int) -> dict:
    """Totals across every course the user has started a lesson or quiz in."""
    lessons_done = await _lessons_done_by_course(db, user_id)
    quizzes_touched, quizzes_done = await _quizzes_by_course(db, user_id)
    course_ids = sorted(set(lessons_done) | set(quizzes_touched))
    summaries = await _summaries(db, user_id, course_ids)

    statuses = [s["status"] for s in summaries]
    average = sum(s["progress"] for s in summaries) / len(summaries) if summaries else 0.0
    return {
        "courses": {
            "total": len(summaries),
            "completed": statuses.count(CourseStatus.COMPLETED.value),
            "in_progress": statuses.count(CourseStatus.IN_PROGRESS.value),
            "average_progress": math.floor(average + 0.5),
        },
        "lessons": {"completed": sum(lessons_done.values())},
        "quizzes": {
            "started": sum(quizzes_touched.values()),
            "completed": sum(quizzes_done.values()),
        },
        "course_breakdown": summaries,
    }


async def mark_lesson_completed(
    db: AsyncSession,
    redis: object,
    user_id: int,
    course_id: str,
    lesson_id: str,
    now: datetime | None = None,
) -> dict:
    """Record a lesson as completed. Repeating the call changes nothing."""
    now = now or utc_now()
    unlocked: list[str] = []

    await ensure_profile(db, user_id, now)
    async with atomic_update(db, on_integrity_error=ConcurrentUpdate()):
        existing = await db.execute(
            select(LessonCompletion).where(
                LessonCompletion.user_id == user_id,
                LessonCompletion.lesson_id == lesson_id,
            )
        )
        completion = existing.scalar_one_or_none()
        newly_completed = completion is None

        if newly_completed:
            completion = LessonCompletion(
                user_id=user_id, course_id=course_id, lesson_id=lesson_id, completed_at=now,
            )
            db.add(completion)
            await db.flush()
            completed = await count_completed_lessons(db, user_id)
            unlocked = await unlock_for_event(db, user_id, AchievementTrigger.LESSONS_COMPLETED, completed, now)
        else:
            completed = await count_completed_lessons(db, user_id)

        await db.flush()
        summary = await course_progress(db, user_id, completion.course_id)

    if newly_completed:
        logger.info(
            "lesson_completed",
            user_id=user_id,
            course_id=course_id,
            lesson_id=lesson_id,
            completed_lessons=completed,
            course_progress=summary["progress"],
        )
        await publish_unlocks(redis, user_id, unlocked)

    return {
        "lesson_id": lesson_id,
        "course_id": completion.course_id,
        "completed_at": completion.completed_at,
        "completed_lessons": completed,
        "newly_completed": newly_completed,
        "unlocked_achievements": unlocked,
        "course_progress": summary,
    }
