"""Read-only access to curriculum quiz definitions and lesson catalogs."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storra.db.models import CourseLesson, Quiz
from storra.quizzes.scoring import QuestionKey


async def get_quiz(db: AsyncSession, course_id: str, quiz_id: str) -> Quiz | None:
    """Fetch a quiz (questions eagerly loaded) that belongs to the given course."""
    result = await db.execute(
        select(Quiz).where(Quiz.id == quiz_id, Quiz.course_id == course_id)
    )
    return result.scalar_one_or_none()


def answer_key(quiz: Quiz) -> list[QuestionKey]:
    """Server-side answer key in question order."""
    return [QuestionKey(q.question_id, q.correct_answer) for q in quiz.questions]


def public_quiz(quiz: Quiz) -> dict:
    """Quiz payload safe to send to clients: no correct answers."""
    return {
        "quiz_id": quiz.id,
        "title": quiz.title,
        "image_url": quiz.image_url,
        "total_questions": len(quiz.questions),
        "passing_score": quiz.passing_score,
        "time_limit": quiz.time_limit,
        "questions": [
            {
                "question_id": q.question_id,
                "text": q.text,
                "options": list(q.options or []),
                "visuals": list(q.visuals or []),
            }
            for q in quiz.questions
        ],
    }


async def list_course_lessons(db: AsyncSession, course_id: str) -> list[CourseLesson]:
    result = await db.execute(
        select(CourseLesson).where(CourseLesson.course_id == course_id).order_by(CourseLesson.position)
    )
    return list(result.scalars().all())


async def _counts_by_course(db: AsyncSession, column, course_column, course_ids: Iterable[str]) -> dict[str, int]:
    ids = list(course_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(course_column, func.count(column)).where(course_column.in_(ids)).group_by(course_column)
    )
    return {course_id: count for course_id, count in result}


async def lesson_totals(db: AsyncSession, course_ids: Iterable[str]) -> dict[str, int]:
    """Catalog lesson count per course; courses without a catalog are absent."""
    return await _counts_by_course(db, CourseLesson.id, CourseLesson.course_id, course_ids)


async def quiz_totals(db: AsyncSession, course_ids: Iterable[str]) -> dict[str, int]:
    """Number of quizzes defined per course."""
    return await _counts_by_course(db, Quiz.id, Quiz.course_id, course_ids)
