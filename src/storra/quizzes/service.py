"""Quiz service: attempt submission, progress tracking and point awards."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storra.config import get_settings
from storra.curriculum.store import answer_key, get_quiz, public_quiz
from storra.db.models import Quiz, QuizAttempt, QuizProgress
from storra.exceptions import ConcurrentUpdate, NotFound
from storra.quizzes.scoring import QuizStatus, SubmittedAnswer, grade, result_message
from storra.rewards.achievements import evaluate_achievements
from storra.rewards.catalog import AchievementTrigger
from storra.rewards.day_utils import utc_now
from storra.rewards.events import publish_reward_event, publish_unlocks
from storra.rewards.ledger import atomic_update, credit, ensure_profile, get_or_create_profile
from storra.rewards.reward_types import CurrencyReward, RewardType, TransactionSource

logger = structlog.get_logger()


def progress_summary(progress: QuizProgress) -> dict:
    return {
        "quiz_id": progress.quiz_id,
        "status": progress.status,
        "attempts": len(progress.attempts),
        "best_score": progress.best_score,
        "best_percentage": progress.best_percentage,
        "points_earned": progress.points_earned,
        "completed_at": progress.completed_at,
    }


class QuizService:
    """Grades submissions and keeps per-user quiz progress."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis

    async def _require_quiz(self, course_id: str, quiz_id: str) -> Quiz:
        quiz = await get_quiz(self.db, course_id, quiz_id)
        if quiz is None:
            raise NotFound("Quiz not found")
        return quiz

    async def get_progress(self, user_id: int, quiz_id: str) -> QuizProgress | None:
        result = await self.db.execute(
            select(QuizProgress).where(
                QuizProgress.user_id == user_id,
                QuizProgress.quiz_id == quiz_id,
            )
        )
        return result.scalar_one_or_none()

    async def _get_or_create_progress(self, user_id: int, quiz: Quiz, now: datetime) -> QuizProgress:
        progress = await self.get_progress(user_id, quiz.id)
        if progress is None:
            progress = QuizProgress(
                user_id=user_id,
                class_id=quiz.class_id,
                course_id=quiz.course_id,
                quiz_id=quiz.id,
                status=QuizStatus.NEW.value,
                best_score=0,
                best_percentage=0.0,
                points_earned=0,
                created_at=now,
                updated_at=now,
            )
            progress.attempts = []
            self.db.add(progress)
            await self.db.flush()
        return progress

    async def get_quiz_for_user(self, user_id: int, course_id: str, quiz_id: str) -> dict:
        """Quiz without answers plus the user's progress (created as 'new' on first view)."""
        now = utc_now()
        quiz = await self._require_quiz(course_id, quiz_id)
        async with atomic_update(self.db, on_integrity_error=ConcurrentUpdate()):
            progress = await self._get_or_create_progress(user_id, quiz, now)
        return {"quiz": public_quiz(quiz), "progress": progress_summary(progress)}

    async def submit_attempt(
        self,
        user_id: int,
        course_id: str,
        quiz_id: str,
        answers: list[SubmittedAnswer],
        time_spent: int = 0,
        now: datetime | None = None,
    ) -> dict:
        """Grade and record one attempt.

        The 100% bonus is credited only while ``points_earned`` is still 0,
        so it lands at most once per quiz. ``completed_at`` and the
        completed-quiz counter move only on the first completion.
        """
        now = now or utc_now()
        bonus = get_settings().quiz_perfect_bonus_points

        await ensure_profile(self.db, user_id, now)
        quiz = await self._require_quiz(course_id, quiz_id)
        result = grade(answer_key(quiz), answers)
        status = result.status
        points_awarded = 0
        unlocked: list[str] = []

        async with atomic_update(self.db, on_integrity_error=ConcurrentUpdate()):
            progress = await self._get_or_create_progress(user_id, quiz, now)
            attempt_number = len(progress.attempts) + 1
            progress.attempts.append(QuizAttempt(
                attempt_number=attempt_number,
                score=result.correct_count,
                total_questions=result.total_questions,
                percentage=result.percentage,
                answers=result.answers,
                time_spent=time_spent,
                attempted_at=now,
            ))

            if result.percentage > progress.best_percentage:
                progress.best_score = result.correct_count
                progress.best_percentage = result.percentage

            progress.status = status.value
            progress.updated_at = now

            first_completion = status is QuizStatus.COMPLETE and progress.completed_at is None
            first_perfect = result.is_perfect and progress.points_earned == 0

            if first_completion:
                progress.completed_at = now

            if first_completion or first_perfect:
                profile = await get_or_create_profile(self.db, user_id, now)
                if first_perfect:
                    points_awarded = bonus
                    progress.points_earned = bonus
                    profile.perfect_scores += 1
                    credit(
                        self.db, profile,
                        CurrencyReward(RewardType.POINTS, bonus, f"Perfect score on {quiz.title}"),
                        TransactionSource.QUIZ_PERFECT_SCORE, now,
                    )
                    unlocked += evaluate_achievements(profile, AchievementTrigger.QUIZ_PERCENTAGE, result.percentage, now)
                if first_completion:
                    profile.quizzes_completed += 1
                    profile.updated_at = now
                    unlocked += evaluate_achievements(
                        profile, AchievementTrigger.QUIZZES_COMPLETED, profile.quizzes_completed, now
                    )

            await self.db.flush()

        logger.info(
            "quiz_attempt_graded",
            user_id=user_id,
            quiz_id=quiz_id,
            attempt=attempt_number,
            percentage=result.percentage,
            status=status.value,
            points_awarded=points_awarded,
        )
        if status is QuizStatus.COMPLETE:
            await publish_reward_event(
                self.redis, "quiz_completed", user_id,
                quiz_id=quiz_id, percentage=result.percentage, points_awarded=points_awarded,
            )
        await publish_unlocks(self.redis, user_id, unlocked)

        return {
            "attempt_number": attempt_number,
            "score": result.correct_count,
            "total_questions": result.total_questions,
            "percentage": result.percentage,
            "status": status.value,
            "points_earned": points_awarded,
            "passed": result.percentage >= quiz.passing_score,
            "passing_score": quiz.passing_score,
            "answers": result.answers,
            "message": result_message(result.percentage, bonus),
            "unlocked_achievements": unlocked,
        }

    async def course_progress(self, user_id: int, course_id: str) -> list[dict]:
        result = await self.db.execute(
            select(QuizProgress)
            .where(QuizProgress.user_id == user_id, QuizProgress.course_id == course_id)
            .order_by(QuizProgress.id)
        )
        return [progress_summary(p) for p in result.scalars().all()]

    async def stats(self, user_id: int) -> dict:
        result = await self.db.execute(select(QuizProgress).where(QuizProgress.user_id == user_id))
        rows = list(result.scalars().all())
        return {
            "total_quizzes": len(rows),
            "completed": sum(1 for p in rows if p.status == QuizStatus.COMPLETE.value),
            "incomplete": sum(1 for p in rows if p.status == QuizStatus.INCOMPLETE.value),
            "new": sum(1 for p in rows if p.status == QuizStatus.NEW.value),
            "total_points": sum(p.points_earned for p in rows),
            "perfect_scores": sum(1 for p in rows if p.best_percentage == 100),
            "average_score": sum(p.best_percentage for p in rows) / len(rows) if rows else 0.0,
        }
