"""Pydantic models for quiz endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from storra.schemas import ApiModel


class AnswerSubmission(ApiModel):
    question_id: str = Field(min_length=1)
    selected_answer: str


class QuizSubmitRequest(ApiModel):
    answers: list[AnswerSubmission]
    time_spent: int = Field(0, ge=0)


class GradedAnswer(ApiModel):
    question_id: str
    selected_answer: str
    correct_answer: str
    is_correct: bool


class QuizSubmitResponse(ApiModel):
    attempt_number: int
    score: int
    total_questions: int
    percentage: float
    status: str
    message: str
    points_earned: int
    passed: bool
    passing_score: int
    answers: list[GradedAnswer]
    unlocked_achievements: list[str] = []


class QuestionResponse(ApiModel):
    question_id: str
    text: str
    options: list[str]
    visuals: list[str] = []


class QuizContent(ApiModel):
    quiz_id: str
    title: str
    image_url: str | None = None
    total_questions: int
    passing_score: int
    time_limit: int | None = None
    questions: list[QuestionResponse]


class QuizProgressSummary(ApiModel):
    quiz_id: str
    status: str
    attempts: int
    best_score: int
    best_percentage: float
    points_earned: int
    completed_at: datetime | None = None


class QuizDetailResponse(ApiModel):
    quiz: QuizContent
    progress: QuizProgressSummary


class CourseProgressResponse(ApiModel):
    course_id: str
    quizzes: list[QuizProgressSummary]


class QuizStatsResponse(ApiModel):
    total_quizzes: int
    completed: int
    incomplete: int
    new: int
    total_points: int
    perfect_scores: int
    average_score: float
