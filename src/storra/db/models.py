"""ORM models for users, reward profiles, quiz progress and the curriculum read side.

Reward profiles and quiz progress rows carry a ``version`` column wired to
SQLAlchemy's ``version_id_col``: every UPDATE is conditional on the version
that was read, so two requests racing through the same check-then-act
sequence cannot both commit.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storra.db.base import Base, BigIntId, JSONType


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Local mirror of an identity-provider account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    reward_profile: Mapped[RewardProfile | None] = relationship(
        "RewardProfile", back_populates="user", uselist=False
    )


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


class RewardProfile(Base):
    """Per-user balances, streak state and spin allowance."""

    __tablename__ = "reward_profiles"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    diamonds: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    spin_chances: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    trial_days_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_login_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_spin_reset_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    quizzes_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    perfect_scores: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user: Mapped[User] = relationship("User", back_populates="reward_profile")
    achievements: Mapped[list[ProfileAchievement]] = relationship(
        "ProfileAchievement",
        back_populates="profile",
        order_by="ProfileAchievement.id",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012


class DailyRewardClaim(Base):
    """One calendar-scheme claim; UNIQUE(profile_id, claim_date) blocks double claims."""

    __tablename__ = "daily_reward_claims"
    __table_args__ = (
        UniqueConstraint("profile_id", "claim_date", name="uq_daily_claim_profile_date"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("reward_profiles.id", ondelete="CASCADE"), nullable=False
    )
    claim_date: Mapped[date] = mapped_column(Date, nullable=False)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rewards: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ProfileAchievement(Base):
    """Per-user unlock/claim state of one catalog achievement."""

    __tablename__ = "profile_achievements"
    __table_args__ = (
        UniqueConstraint("profile_id", "achievement_id", name="uq_profile_achievement"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("reward_profiles.id", ondelete="CASCADE"), nullable=False
    )
    achievement_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unlocked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    profile: Mapped[RewardProfile] = relationship("RewardProfile", back_populates="achievements")


class RewardTransaction(Base):
    """Append-only ledger entry; balances equal the signed sum per reward type."""

    __tablename__ = "reward_transactions"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("reward_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    reward_type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Curriculum (read-only to the reward core)
# ---------------------------------------------------------------------------


class Quiz(Base):
    """Quiz definition attached to a course."""

    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    class_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    passing_score: Mapped[int] = mapped_column(Integer, nullable=False, default=70)
    time_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)

    questions: Mapped[list[QuizQuestion]] = relationship(
        "QuizQuestion",
        back_populates="quiz",
        order_by="QuizQuestion.position",
        lazy="selectin",
    )


class QuizQuestion(Base):
    """One question; ``correct_answer`` never leaves the server."""

    __tablename__ = "quiz_questions"
    __table_args__ = (
        UniqueConstraint("quiz_id", "question_id", name="uq_quiz_question"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    quiz_id: Mapped[str] = mapped_column(String(64), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    visuals: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)

    quiz: Mapped[Quiz] = relationship("Quiz", back_populates="questions")


class CourseLesson(Base):
    """Lesson metadata for a course; totals drive course progress."""

    __tablename__ = "course_lessons"
    __table_args__ = (
        UniqueConstraint("course_id", "lesson_id", name="uq_course_lesson"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    lesson_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)


class LessonCompletion(Base):
    """UNIQUE(user_id, lesson_id) makes completion idempotent."""

    __tablename__ = "lesson_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson"),
        Index("ix_lesson_completions_user_course", "user_id", "course_id"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    lesson_id: Mapped[str] = mapped_column(String(64), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Quiz progress
# ---------------------------------------------------------------------------


class QuizProgress(Base):
    """Per-user per-quiz state; attempts are kept in full."""

    __tablename__ = "quiz_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "quiz_id", name="uq_quiz_progress_user_quiz"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quiz_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="new")
    best_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    attempts: Mapped[list[QuizAttempt]] = relationship(
        "QuizAttempt",
        back_populates="progress",
        order_by="QuizAttempt.attempt_number",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012


class QuizAttempt(Base):
    """One graded submission; percentage is stored unrounded."""

    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("progress_id", "attempt_number", name="uq_quiz_attempt_number"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    progress_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("quiz_progress.id", ondelete="CASCADE"), nullable=False
    )
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    answers: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attempted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    progress: Mapped[QuizProgress] = relationship("QuizProgress", back_populates="attempts")
