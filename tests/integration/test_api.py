"""HTTP surface: auth, error envelope and the main reward/quiz/leaderboard routes."""

from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from storra.auth.identity import create_access_token

from conftest import COURSE_ID, QUIZ_ID, answers_with

pytestmark = pytest.mark.asyncio


class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_version(self, client: AsyncClient):
        response = await client.get("/version")
        assert response.status_code == 200
        assert "version" in response.json()

    async def test_request_id_echoed(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-Id": "req-123"})
        assert response.headers["X-Request-Id"] == "req-123"

    async def test_unsafe_request_id_replaced(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-Id": "bad id with spaces"})
        echoed = response.headers["X-Request-Id"]
        assert echoed != "bad id with spaces"
        assert len(echoed) == 32

    async def test_ready_without_redis(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        body = response.json()
        assert body["checks"]["database"] == "ok"
        assert body["checks"]["redis"] == "not configured"


class TestAuthentication:
    """Every reward route requires a valid identity-provider token."""

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/api/v1/rewards"),
            ("POST", "/api/v1/rewards/daily/claim"),
            ("POST", "/api/v1/spin-wheel/spin"),
            ("GET", "/api/v1/leaderboard"),
            ("GET", "/api/v1/quizzes/stats"),
        ],
    )
    async def test_missing_token(self, client: AsyncClient, method: str, path: str):
        response = await client.request(method, path)
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_required"

    async def test_bad_signature(self, client: AsyncClient):
        response = await client.get("/api/v1/rewards", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_required"

    async def test_expired_token(self, client: AsyncClient):
        token = create_access_token("ext-expired", expires_in=timedelta(seconds=-10))
        response = await client.get("/api/v1/rewards", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired"

    async def test_first_request_creates_local_user(self, client: AsyncClient):
        token = create_access_token("ext-brand-new", "new@example.com")
        response = await client.get("/api/v1/rewards", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["balances"]["coins"] == 0


class TestRewardsApi:
    async def test_dashboard_lists_all_achievements(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/rewards")
        assert response.status_code == 200
        data = response.json()
        assert len(data["achievements"]) == 6
        assert data["recentTransactions"] == []
        assert set(data["balances"]) == {"coins", "points", "diamonds", "spinChances", "trialDaysRemaining"}

    async def test_daily_claim_then_conflict(self, authed_client: AsyncClient):
        first = await authed_client.post("/api/v1/rewards/daily/claim")
        assert first.status_code == 200
        assert first.json()["streak"] == 1
        assert "first_login" in first.json()["unlockedAchievements"]

        second = await authed_client.post("/api/v1/rewards/daily/claim")
        assert second.status_code == 409
        assert second.json() == {
            "detail": "You already claimed today's reward",
            "error": "already_claimed_today",
        }

        info = await authed_client.get("/api/v1/rewards/daily/info")
        assert info.json()["claimedToday"] is True

        history = await authed_client.get("/api/v1/rewards/transactions")
        assert history.json()["total"] == len(first.json()["rewards"])

    async def test_calendar(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/rewards/daily/calendar")
        assert response.status_code == 200
        assert 28 <= len(response.json()["calendar"]) <= 31

    async def test_achievement_claim_flow(self, authed_client: AsyncClient):
        locked = await authed_client.post("/api/v1/rewards/achievements/first_login/claim")
        assert locked.status_code == 409
        assert locked.json()["error"] == "achievement_not_claimable"

        await authed_client.post("/api/v1/rewards/daily/claim")
        claimed = await authed_client.post("/api/v1/rewards/achievements/first_login/claim")
        assert claimed.status_code == 200
        assert claimed.json()["achievement"]["claimed"] is True

        missing = await authed_client.post("/api/v1/rewards/achievements/nope/claim")
        assert missing.status_code == 404
        assert missing.json()["error"] == "not_found"

    async def test_spin_until_exhausted(self, authed_client: AsyncClient):
        preview = await authed_client.get("/api/v1/spin-wheel/preview")
        assert preview.status_code == 200
        assert preview.json()["spinChances"] == 3
        assert len(preview.json()["rewards"]) == 5

        statuses = []
        for _ in range(12):
            response = await authed_client.post("/api/v1/spin-wheel/spin")
            statuses.append(response.status_code)
            if response.status_code == 409:
                assert response.json()["error"] == "allowance_exhausted"
                break

        assert statuses[-1] == 409
        assert statuses.count(200) >= 3

    async def test_transactions_pagination_validation(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/rewards/transactions", params={"page": 0})
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_input"


class TestQuizApi:
    async def test_get_quiz_hides_answers(self, authed_client: AsyncClient, quiz):
        response = await authed_client.get(f"/api/v1/quizzes/{COURSE_ID}/{QUIZ_ID}")
        assert response.status_code == 200
        data = response.json()
        assert data["progress"]["status"] == "new"
        assert "correctAnswer" not in data["quiz"]["questions"][0]

    async def test_submit_perfect(self, authed_client: AsyncClient, quiz):
        response = await authed_client.post(
            f"/api/v1/quizzes/{COURSE_ID}/{QUIZ_ID}/submit",
            json={"answers": answers_with(10), "timeSpent": 120},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["percentage"] == 100.0
        assert data["pointsEarned"] == 5
        assert data["passed"] is True
        assert data["answers"][0]["isCorrect"] is True

        stats = await authed_client.get("/api/v1/quizzes/stats")
        assert stats.json()["totalPoints"] == 5

        progress = await authed_client.get(f"/api/v1/quizzes/progress/{COURSE_ID}")
        assert progress.json()["quizzes"][0]["bestPercentage"] == 100.0

    async def test_unknown_question(self, authed_client: AsyncClient, quiz):
        response = await authed_client.post(
            f"/api/v1/quizzes/{COURSE_ID}/{QUIZ_ID}/submit",
            json={"answers": [{"questionId": "q77", "selectedAnswer": "A"}]},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "unknown_question_reference"

    async def test_missing_answers_is_invalid_input(self, authed_client: AsyncClient, quiz):
        response = await authed_client.post(f"/api/v1/quizzes/{COURSE_ID}/{QUIZ_ID}/submit", json={})
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_input"

    async def test_non_list_answers_is_invalid_input(self, authed_client: AsyncClient, quiz):
        response = await authed_client.post(
            f"/api/v1/quizzes/{COURSE_ID}/{QUIZ_ID}/submit", json={"answers": "A,B,C"},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_input"

    async def test_empty_answers_graded_as_zero(self, authed_client: AsyncClient, quiz):
        response = await authed_client.post(
            f"/api/v1/quizzes/{COURSE_ID}/{QUIZ_ID}/submit", json={"answers": []},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 0
        assert data["percentage"] == 0.0
        assert data["status"] == "incomplete"
        assert data["attemptNumber"] == 1

    async def test_unknown_quiz(self, authed_client: AsyncClient, quiz):
        response = await authed_client.get(f"/api/v1/quizzes/{COURSE_ID}/missing")
        assert response.status_code == 404


class TestLessonsApi:
    async def test_complete_lesson_twice(self, authed_client: AsyncClient):
        first = await authed_client.post("/api/v1/lessons/lesson-1/complete", json={"courseId": COURSE_ID})
        second = await authed_client.post("/api/v1/lessons/lesson-1/complete", json={"courseId": COURSE_ID})

        assert first.status_code == 200
        assert first.json()["unlockedAchievements"] == ["first_course_completed"]
        assert second.json()["newlyCompleted"] is False
        assert second.json()["completedLessons"] == 1

    async def test_completion_includes_course_progress(self, authed_client: AsyncClient, course_lessons):
        response = await authed_client.post("/api/v1/lessons/lesson-3/complete", json={"courseId": COURSE_ID})

        progress = response.json()["courseProgress"]
        assert progress["totalLessons"] == 4
        assert progress["completedLessons"] == 1
        assert progress["progress"] == 25
        assert progress["status"] == "in_progress"

    async def test_course_overview(self, authed_client: AsyncClient, course_lessons):
        await authed_client.post("/api/v1/lessons/lesson-1/complete", json={"courseId": COURSE_ID})

        response = await authed_client.get(f"/api/v1/lessons/courses/{COURSE_ID}")

        assert response.status_code == 200
        lessons = response.json()["lessons"]
        assert [entry["lessonId"] for entry in lessons] == course_lessons
        assert lessons[0]["completed"] is True
        assert lessons[0]["completedAt"] is not None
        assert response.json()["course"]["completedLessons"] == 1

    async def test_unknown_course_overview(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/lessons/courses/no-such-course")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    async def test_learning_stats(self, authed_client: AsyncClient, course_lessons):
        for lesson_id in course_lessons[:3]:
            await authed_client.post(f"/api/v1/lessons/{lesson_id}/complete", json={"courseId": COURSE_ID})

        response = await authed_client.get("/api/v1/lessons/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["courses"] == {"total": 1, "completed": 0, "inProgress": 1, "averageProgress": 75}
        assert data["lessons"] == {"completed": 3}
        assert data["courseBreakdown"][0]["courseId"] == COURSE_ID

    async def test_learning_stats_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/lessons/stats")
        assert response.status_code == 401


class TestLeaderboardApi:
    async def test_read_after_write(self, authed_client: AsyncClient, quiz):
        await authed_client.post(
            f"/api/v1/quizzes/{COURSE_ID}/{QUIZ_ID}/submit", json={"answers": answers_with(10)},
        )

        me = await authed_client.get("/api/v1/leaderboard/me")
        assert me.status_code == 200
        assert me.json()["rank"] == 1
        assert me.json()["totalPoints"] == 5

        board = await authed_client.get("/api/v1/leaderboard", params={"limit": 10})
        assert board.json()["entries"][0]["totalPoints"] == 5
        assert board.json()["meta"]["totalPages"] == 1

    async def test_invalid_limit(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/leaderboard", params={"limit": 0})
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_input"
