"""
Quiz auto-grading

Pure functions with no database access. QuizService resolves questions and
decrypts answer keys, then hands plain values to ``grade_answers``.

Grading rule: an answer is correct when it equals the answer key after
trimming surrounding whitespace and case-folding. There is no partial credit.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

DEFAULT_QUESTION_POINTS = 1


@dataclass(frozen=True)
class AnswerKey:
    question_id: int
    correct_answer: str
    points: Optional[int] = DEFAULT_QUESTION_POINTS
    question_text: str = ""


@dataclass
class GradedAnswer:
    question_id: int
    user_answer: str
    is_correct: bool
    points_earned: int
    question_text: str = ""

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "user_answer": self.user_answer,
            "is_correct": self.is_correct,
            "points_earned": self.points_earned,
            "question_text": self.question_text,
        }


@dataclass
class GradingOutcome:
    score: int
    total_points: int
    percentage: float
    passed: bool
    answers: List[GradedAnswer] = field(default_factory=list)


def effective_points(points: Optional[int]) -> int:
    """Points a question is worth; unset means the default of one point."""
    return DEFAULT_QUESTION_POINTS if points is None else int(points)


def compute_total_points(points: Iterable[Optional[int]]) -> int:
    return sum(effective_points(p) for p in points)


def normalize_answer(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().casefold()


def answers_match(user_answer: Any, correct_answer: Any) -> bool:
    return normalize_answer(user_answer) == normalize_answer(correct_answer)


def raw_percentage(score: float, total_points: float) -> float:
    """Unrounded score percentage; 0 when nothing is at stake."""
    if not total_points or total_points <= 0:
        return 0.0
    return score * 100 / total_points


def compute_percentage(score: float, total_points: float) -> float:
    """Score as a percentage rounded to two places, as stored on a result."""
    return round(raw_percentage(score, total_points), 2)


def grade_answers(
    keys: Sequence[AnswerKey],
    submitted: Iterable[Tuple[Any, Any]],
    passing_score: float,
) -> GradingOutcome:
    """
    Grade ``(question_id, user_answer)`` pairs against the quiz answer keys.

    Answers whose question id matches no key are dropped. When the same
    question is answered more than once only the first answer counts.
    Questions left unanswered simply earn nothing.
    """
    by_id = {str(key.question_id): key for key in keys}
    total_points = compute_total_points(key.points for key in keys)

    graded: List[GradedAnswer] = []
    seen = set()
    score = 0
    for question_id, user_answer in submitted:
        key = by_id.get(str(question_id))
        if key is None or key.question_id in seen:
            continue
        seen.add(key.question_id)

        is_correct = answers_match(user_answer, key.correct_answer)
        points_earned = effective_points(key.points) if is_correct else 0
        score += points_earned
        graded.append(
            GradedAnswer(
                question_id=key.question_id,
                user_answer="" if user_answer is None else str(user_answer),
                is_correct=is_correct,
                points_earned=points_earned,
                question_text=key.question_text,
            )
        )

    # Pass/fail is decided on the exact ratio, only the stored figure is rounded
    exact = raw_percentage(score, total_points)
    return GradingOutcome(
        score=score,
        total_points=total_points,
        percentage=round(exact, 2),
        passed=exact >= passing_score,
        answers=graded,
    )


def compute_time_taken(started_at: datetime, submitted_at: datetime) -> int:
    """Whole minutes between start and submission, rounded half up, never negative."""
    elapsed = (submitted_at - started_at).total_seconds()
    return max(0, int(math.floor(elapsed / 60 + 0.5)))
