"""Quiz grading: exact-match scoring, status tiers and result messages."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from storra.exceptions import InvalidInput, UnknownQuestionReference

COMPLETE_THRESHOLD = 70.0
RETRY_THRESHOLD = 50.0
PERFECT = 100.0


class QuizStatus(str, Enum):
    NEW = "new"
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"


@dataclass(frozen=True)
class QuestionKey:
    question_id: str
    correct_answer: str


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: str
    selected_answer: str


@dataclass(frozen=True)
class GradeResult:
    correct_count: int
    total_questions: int
    percentage: float
    answers: list[dict] = field(default_factory=list)

    @property
    def status(self) -> QuizStatus:
        return status_for(self.percentage)

    @property
    def is_perfect(self) -> bool:
        return self.percentage == PERFECT


def status_for(percentage: float) -> QuizStatus:
    """Below 70% the quiz stays incomplete; 70% and above completes it."""
    if percentage >= COMPLETE_THRESHOLD:
        return QuizStatus.COMPLETE
    return QuizStatus.INCOMPLETE


def result_message(percentage: float, bonus_points: int) -> str:
    if percentage == PERFECT:
        return f"Perfect score! You earned {bonus_points} bonus points!"
    if percentage >= COMPLETE_THRESHOLD:
        return "Quiz completed!"
    if percentage >= RETRY_THRESHOLD:
        return "Nice one, but try to improve your score"
    return "You need to retake this quiz"


def grade(questions: Sequence[QuestionKey], answers: Iterable[SubmittedAnswer]) -> GradeResult:
    """Grade a submission against the answer key.

    The whole submission fails on the first unknown question id; nothing is
    partially graded. Percentage is kept at full float precision.
    """
    key = {q.question_id: q for q in questions}
    seen: set[str] = set()
    graded: list[dict] = []
    correct = 0

    for answer in answers:
        question = key.get(answer.question_id)
        if question is None:
            raise UnknownQuestionReference(f"Question {answer.question_id} not found")
        if answer.question_id in seen:
            raise InvalidInput(f"Question {answer.question_id} answered more than once")
        seen.add(answer.question_id)

        is_correct = answer.selected_answer == question.correct_answer
        if is_correct:
            correct += 1
        graded.append({
            "question_id": answer.question_id,
            "selected_answer": answer.selected_answer,
            "correct_answer": question.correct_answer,
            "is_correct": is_correct,
        })

    total = len(questions)
    # correct * 100 first: a single rounding step keeps 7/10 at exactly 70.0
    percentage = correct * 100 / total if total else 0.0
    return GradeResult(correct_count=correct, total_questions=total, percentage=percentage, answers=graded)
