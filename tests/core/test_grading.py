"""
Tests for the pure grading functions
"""

from datetime import datetime, timedelta

import pytest

from vidyasetu.core.services.grading import (
    AnswerKey,
    answers_match,
    compute_percentage,
    compute_time_taken,
    compute_total_points,
    grade_answers,
)


@pytest.fixture
def keys():
    return [
        AnswerKey(question_id=1, correct_answer="x = 4"),
        AnswerKey(question_id=2, correct_answer="True"),
        AnswerKey(question_id=3, correct_answer="8x"),
    ]


def test_all_correct_answers_score_full_marks(keys):
    outcome = grade_answers(keys, [(1, "x = 4"), (2, "True"), (3, "8x")], 60)

    assert outcome.score == 3
    assert outcome.total_points == 3
    assert outcome.percentage == 100
    assert outcome.passed is True
    assert all(a.is_correct for a in outcome.answers)


def test_comparison_ignores_case_and_surrounding_whitespace():
    assert answers_match(" true ", "True")
    assert answers_match("8X", "8x")
    assert not answers_match("x=4", "x = 4")
    assert answers_match(True, "True")


def test_two_of_three_is_two_thirds(keys):
    outcome = grade_answers(keys, [(1, "x = 4"), (2, "False"), (3, "8x")], 70)

    assert outcome.score == 2
    assert outcome.percentage == pytest.approx(66.67)
    assert outcome.passed is False


def test_zero_point_quiz_yields_zero_percent():
    keys = [AnswerKey(question_id=1, correct_answer="a", points=0)]
    outcome = grade_answers(keys, [(1, "a")], 0)

    assert outcome.total_points == 0
    assert outcome.percentage == 0
    assert outcome.answers[0].is_correct is True
    assert outcome.answers[0].points_earned == 0


def test_unknown_ids_dropped_and_first_duplicate_wins(keys):
    outcome = grade_answers(
        keys, [("99", "x"), ("1", "wrong"), (1, "x = 4"), ("2", "true")], 50
    )

    assert [a.question_id for a in outcome.answers] == [1, 2]
    assert outcome.answers[0].is_correct is False
    assert outcome.score == 1


def test_unanswered_questions_earn_nothing(keys):
    outcome = grade_answers(keys, [], 60)
    assert outcome.score == 0
    assert outcome.total_points == 3
    assert outcome.answers == []


def test_weighted_points_and_unset_points_default_to_one():
    keys = [
        AnswerKey(question_id=1, correct_answer="a", points=2),
        AnswerKey(question_id=2, correct_answer="b", points=None),
    ]
    outcome = grade_answers(keys, [(1, "a"), (2, "x")], 60)

    assert outcome.total_points == 3
    assert outcome.score == 2
    assert outcome.percentage == pytest.approx(66.67)
    assert compute_total_points([2, 2, 1]) == 5
    assert compute_total_points([None, 0]) == 1


def test_percentage_guards_against_zero_total():
    assert compute_percentage(5, 0) == 0.0
    assert compute_percentage(1, 3) == 33.33


def test_pass_mark_uses_unrounded_percentage():
    keys = [
        AnswerKey(question_id=1, correct_answer="a", points=14999),
        AnswerKey(question_id=2, correct_answer="b", points=10001),
    ]
    outcome = grade_answers(keys, [(1, "a")], 60)

    # 59.996% is stored as 60.0 but still falls short of the pass mark
    assert outcome.percentage == 60.0
    assert outcome.passed is False


def test_pass_mark_is_inclusive():
    keys = [
        AnswerKey(question_id=1, correct_answer="a", points=3),
        AnswerKey(question_id=2, correct_answer="b", points=2),
    ]
    outcome = grade_answers(keys, [(1, "a")], 60)

    assert outcome.percentage == 60.0
    assert outcome.passed is True


@pytest.mark.parametrize(
    "seconds, minutes",
    [(0, 0), (29, 0), (30, 1), (89, 1), (90, 2), (600, 10), (-120, 0)],
)
def test_time_taken_rounds_to_whole_minutes(seconds, minutes):
    started = datetime(2024, 1, 1, 12, 0, 0)
    assert compute_time_taken(started, started + timedelta(seconds=seconds)) == minutes
