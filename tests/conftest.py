"""Shared test fixtures.

Tests run against a fresh in-memory SQLite database per test; Redis is not
initialised, so event publishing and rate limiting are skipped.
"""

from __future__ import annotations

import os
import random
from collections.abc import AsyncGenerator, Awaitable, Callable

os.environ["STORRA_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("STORRA_LOG_FORMAT", "console")
os.environ.setdefault("STORRA_LOG_LEVEL", "WARNING")
os.environ["STORRA_REWARD_TIMEZONE"] = "UTC"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from storra.auth.identity import create_access_token  # noqa: E402
from storra.config import get_settings  # noqa: E402
from storra.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from storra.db.base import Base  # noqa: E402
from storra.db.models import CourseLesson, Quiz, QuizQuestion, User  # noqa: E402
from storra.main import create_app  # noqa: E402

get_settings.cache_clear()

QUIZ_ID = "quiz-fractions"
COURSE_ID = "math-101"
CLASS_ID = "jss1"
QUESTION_COUNT = 10
COURSE_LESSON_IDS = ("lesson-1", "lesson-2", "lesson-3", "lesson-4")


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema and a session bound to it."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_factory()() as session:
        yield session

    await close_db()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, sharing the test database."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory for committed local users."""
    counter = 0

    async def _make(full_name: str | None = None) -> User:
        nonlocal counter
        counter += 1
        user = User(
            external_id=f"ext-user-{counter}",
            email=f"learner{counter}@example.com",
            full_name=full_name,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def user(make_user) -> User:
    return await make_user("Ada Learner")


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client carrying a valid identity-provider token for ``user``."""
    token = create_access_token(user.external_id, user.email)
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest_asyncio.fixture
async def quiz(db_session: AsyncSession) -> Quiz:
    """A ten-question quiz whose correct answer is always "A"."""
    quiz = Quiz(
        id=QUIZ_ID,
        class_id=CLASS_ID,
        course_id=COURSE_ID,
        title="Fractions",
        passing_score=70,
        time_limit=600,
    )
    quiz.questions = [
        QuizQuestion(
            question_id=f"q{i}",
            position=i,
            text=f"Question {i}",
            options=["A", "B", "C", "D"],
            visuals=[],
            correct_answer="A",
        )
        for i in range(1, QUESTION_COUNT + 1)
    ]
    db_session.add(quiz)
    await db_session.commit()
    return quiz


@pytest_asyncio.fixture
async def course_lessons(db_session: AsyncSession) -> list[str]:
    """Four catalog lessons for ``COURSE_ID``."""
    for position, lesson_id in enumerate(COURSE_LESSON_IDS, start=1):
        db_session.add(CourseLesson(
            course_id=COURSE_ID, lesson_id=lesson_id, title=f"Lesson {position}", position=position,
        ))
    await db_session.commit()
    return list(COURSE_LESSON_IDS)


def answers_with(correct: int, total: int = QUESTION_COUNT) -> list[dict]:
    """Request-body answers with exactly ``correct`` right answers."""
    return [
        {"questionId": f"q{i}", "selectedAnswer": "A" if i <= correct else "B"}
        for i in range(1, total + 1)
    ]


class FirstBucketRandom(random.Random):
    """Deterministic RNG whose weighted draws always land on the first wheel entry."""

    def __init__(self) -> None:
        super().__init__(0)

    def uniform(self, a: float, b: float) -> float:
        return 0.0
