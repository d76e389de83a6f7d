"""Pydantic models for lesson endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from storra.schemas import ApiModel


class LessonCompleteRequest(ApiModel):
    course_id: str = Field(min_length=1)


class LessonCompleteResponse(ApiModel):
    lesson_id: str
    course_id: str
    completed_at: datetime
    completed_lessons: int
    newly_completed: bool
    unlocked_achievements: list[str] = []


class CourseSummary(ApiModel):
    course_id: str
    total_lessons: int
    completed_lessons: int
    progress: int
    total_quizzes: int
    completed_quizzes: int
    status: str


class LessonCompletionWithCourse(LessonCompleteResponse):
    course_progress: CourseSummary


class CourseLessonStatus(ApiModel):
    lesson_id: str
    title: str
    position: int
    completed: bool
    completed_at: datetime | None = None


class CourseOverviewResponse(ApiModel):
    course: CourseSummary
    lessons: list[CourseLessonStatus]


class CourseTotals(ApiModel):
    total: int
    completed: int
    in_progress: int
    average_progress: int


class LessonTotals(ApiModel):
    completed: int


class QuizTotals(ApiModel):
    started: int
    completed: int


class LearningStatsResponse(ApiModel):
    courses: CourseTotals
    lessons: LessonTotals
    quizzes: QuizTotals
    course_breakdown: list[CourseSummary]
