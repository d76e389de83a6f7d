"""Reward, quiz progress and curriculum tables.

Creates users, reward_profiles, daily_reward_claims, profile_achievements,
reward_transactions, quizzes, quiz_questions, lesson_completions,
quiz_progress and quiz_attempts.

Revision ID: 001_reward_tables
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_reward_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            external_id VARCHAR(64) UNIQUE NOT NULL,
            email VARCHAR(320),
            full_name VARCHAR(128),
            avatar_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            last_seen TIMESTAMPTZ
        )
    """)

    # --- Reward Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reward_profiles (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            coins INTEGER NOT NULL DEFAULT 0,
            points INTEGER NOT NULL DEFAULT 0,
            diamonds INTEGER NOT NULL DEFAULT 0,
            spin_chances INTEGER NOT NULL DEFAULT 0,
            trial_days_remaining INTEGER NOT NULL DEFAULT 0,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_login_date TIMESTAMPTZ,
            last_spin_reset_date TIMESTAMPTZ,
            quizzes_completed INTEGER NOT NULL DEFAULT 0,
            perfect_scores INTEGER NOT NULL DEFAULT 0,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CHECK (coins >= 0 AND points >= 0 AND diamonds >= 0
                   AND spin_chances >= 0 AND trial_days_remaining >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_reward_profiles_spin_reset
        ON reward_profiles(last_spin_reset_date)
    """)

    # --- Daily Reward Claims ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_reward_claims (
            id BIGSERIAL PRIMARY KEY,
            profile_id BIGINT NOT NULL REFERENCES reward_profiles(id) ON DELETE CASCADE,
            claim_date DATE NOT NULL,
            day INTEGER NOT NULL,
            month INTEGER NOT NULL,
            year INTEGER NOT NULL,
            rewards JSONB NOT NULL DEFAULT '[]',
            claimed BOOLEAN NOT NULL DEFAULT true,
            claimed_at TIMESTAMPTZ,
            CONSTRAINT uq_daily_claim_profile_date UNIQUE(profile_id, claim_date)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_daily_claims_month
        ON daily_reward_claims(profile_id, year, month)
    """)

    # --- Profile Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profile_achievements (
            id BIGSERIAL PRIMARY KEY,
            profile_id BIGINT NOT NULL REFERENCES reward_profiles(id) ON DELETE CASCADE,
            achievement_id VARCHAR(64) NOT NULL,
            unlocked_at TIMESTAMPTZ,
            claimed BOOLEAN NOT NULL DEFAULT false,
            claimed_at TIMESTAMPTZ,
            CONSTRAINT uq_profile_achievement UNIQUE(profile_id, achievement_id)
        )
    """)

    # --- Reward Transactions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reward_transactions (
            id BIGSERIAL PRIMARY KEY,
            profile_id BIGINT NOT NULL REFERENCES reward_profiles(id) ON DELETE CASCADE,
            direction VARCHAR(8) NOT NULL CHECK (direction IN ('earn', 'spend')),
            reward_type VARCHAR(16) NOT NULL,
            amount INTEGER NOT NULL CHECK (amount >= 0),
            source VARCHAR(32) NOT NULL,
            description VARCHAR(256) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_reward_transactions_profile_id
        ON reward_transactions(profile_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_reward_transactions_source
        ON reward_transactions(source)
    """)

    # --- Curriculum ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quizzes (
            id VARCHAR(64) PRIMARY KEY,
            class_id VARCHAR(64) NOT NULL,
            course_id VARCHAR(64) NOT NULL,
            title VARCHAR(200) NOT NULL,
            image_url TEXT,
            passing_score INTEGER NOT NULL DEFAULT 70,
            time_limit INTEGER
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_quizzes_course_id
        ON quizzes(course_id)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_questions (
            id BIGSERIAL PRIMARY KEY,
            quiz_id VARCHAR(64) NOT NULL REFERENCES quizzes(id) ON DELETE CASCADE,
            question_id VARCHAR(64) NOT NULL,
            position INTEGER NOT NULL,
            text TEXT NOT NULL,
            options JSONB NOT NULL DEFAULT '[]',
            visuals JSONB NOT NULL DEFAULT '[]',
            correct_answer TEXT NOT NULL,
            CONSTRAINT uq_quiz_question UNIQUE(quiz_id, question_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS lesson_completions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            course_id VARCHAR(64) NOT NULL,
            lesson_id VARCHAR(64) NOT NULL,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_lesson UNIQUE(user_id, lesson_id)
        )
    """)

    # --- Quiz Progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            class_id VARCHAR(64) NOT NULL,
            course_id VARCHAR(64) NOT NULL,
            quiz_id VARCHAR(64) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'new',
            best_score INTEGER NOT NULL DEFAULT 0,
            best_percentage DOUBLE PRECISION NOT NULL DEFAULT 0,
            points_earned INTEGER NOT NULL DEFAULT 0,
            completed_at TIMESTAMPTZ,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_quiz_progress_user_quiz UNIQUE(user_id, quiz_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_quiz_progress_user_id
        ON quiz_progress(user_id)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_attempts (
            id BIGSERIAL PRIMARY KEY,
            progress_id BIGINT NOT NULL REFERENCES quiz_progress(id) ON DELETE CASCADE,
            attempt_number INTEGER NOT NULL,
            score INTEGER NOT NULL,
            total_questions INTEGER NOT NULL,
            percentage DOUBLE PRECISION NOT NULL,
            answers JSONB NOT NULL DEFAULT '[]',
            time_spent INTEGER NOT NULL DEFAULT 0,
            attempted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_quiz_attempt_number UNIQUE(progress_id, attempt_number)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS quiz_attempts CASCADE")
    op.execute("DROP TABLE IF EXISTS quiz_progress CASCADE")
    op.execute("DROP TABLE IF EXISTS lesson_completions CASCADE")
    op.execute("DROP TABLE IF EXISTS quiz_questions CASCADE")
    op.execute("DROP TABLE IF EXISTS quizzes CASCADE")
    op.execute("DROP TABLE IF EXISTS reward_transactions CASCADE")
    op.execute("DROP TABLE IF EXISTS profile_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_reward_claims CASCADE")
    op.execute("DROP TABLE IF EXISTS reward_profiles CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
