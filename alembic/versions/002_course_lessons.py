"""Course lesson catalog used for course progress.

Revision ID: 002_course_lessons
Revises: 001_reward_tables
Create Date: 2026-10-20
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_course_lessons"
down_revision: str | None = "001_reward_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS course_lessons (
            id BIGSERIAL PRIMARY KEY,
            course_id VARCHAR(64) NOT NULL,
            lesson_id VARCHAR(64) NOT NULL,
            title VARCHAR(200) NOT NULL,
            position INTEGER NOT NULL,
            CONSTRAINT uq_course_lesson UNIQUE(course_id, lesson_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_course_lessons_course_id
        ON course_lessons(course_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_lesson_completions_user_course
        ON lesson_completions(user_id, course_id)
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_lesson_completions_user_course")
    op.execute("DROP TABLE IF EXISTS course_lessons CASCADE")
