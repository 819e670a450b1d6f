"""
Mock Test Platform - Scoring Rule Tests
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import uuid

import pytest

from testprep.models.attempt import AnswerStatus
from testprep.services.scoring import (
    duration_taken,
    navigator_counts,
    percentage_of,
    remaining_seconds,
    score_answers,
    toggle_review_status,
)


@dataclass
class Q:
    correct_answer: str
    marks: int = 1
    negative_marks: Decimal = Decimal("0.25")
    id: uuid.UUID = None

    def __post_init__(self):
        if self.id is None:
            self.id = uuid.uuid4()


START = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def test_correct_selection_adds_marks():
    q = Q("A", marks=2, negative_marks=Decimal("0.5"))
    result = score_answers([q], {q.id: "A"}, total_marks=100)
    assert result.raw_score == Decimal("2")
    assert result.questions[0].is_correct is True
    assert result.questions[0].marks_awarded == Decimal("2")


def test_incorrect_selection_subtracts_negative_marks():
    q = Q("A", marks=2, negative_marks=Decimal("0.5"))
    result = score_answers([q], {q.id: "B"}, total_marks=100)
    assert result.raw_score == Decimal("-0.5")
    assert result.questions[0].is_correct is False
    assert result.questions[0].marks_awarded == Decimal("-0.5")


def test_blank_question_is_not_penalised():
    q = Q("A", marks=2, negative_marks=Decimal("0.5"))
    for selections in ({}, {q.id: None}):
        result = score_answers([q], selections, total_marks=100)
        assert result.raw_score == Decimal("0")
        assert result.questions[0].is_correct is None
        assert result.unanswered_count == 1


def test_three_question_scenario():
    questions = [
        Q("A", 2, Decimal("0.5")),
        Q("B", 2, Decimal("0.5")),
        Q("C", 1, Decimal("0.25")),
    ]
    selections = {questions[0].id: "A", questions[1].id: "D"}

    result = score_answers(questions, selections, total_marks=5)

    assert result.raw_score == Decimal("1.5")
    assert result.total_score == Decimal("1.50")
    assert result.percentage == Decimal("30.00")
    assert (result.correct_count, result.incorrect_count, result.unanswered_count) == (1, 1, 1)


def test_negative_total_is_clamped_to_zero():
    questions = [Q("A", 1, Decimal("1")) for _ in range(3)]
    selections = {q.id: "B" for q in questions}

    result = score_answers(questions, selections, total_marks=3)

    assert result.raw_score == Decimal("-3")
    assert result.total_score == Decimal("0.00")
    assert result.percentage == Decimal("0.00")


def test_clamp_happens_after_accumulation():
    # A large early penalty is offset by later correct answers
    questions = [
        Q("A", 1, Decimal("3")),
        Q("A", 2, Decimal("0")),
        Q("A", 2, Decimal("0")),
    ]
    selections = {questions[0].id: "B", questions[1].id: "A", questions[2].id: "A"}

    result = score_answers(questions, selections, total_marks=5)

    # Clamping per step would give 0 + 2 + 2 = 4
    assert result.total_score == Decimal("1.00")
    assert result.percentage == Decimal("20.00")


def test_percentage_guards_zero_total_marks():
    assert percentage_of(Decimal("4"), 0) == Decimal("0.00")


def test_percentage_rounds_half_up_to_two_places():
    assert percentage_of(Decimal("1"), 3) == Decimal("33.33")
    assert percentage_of(Decimal("2"), 3) == Decimal("66.67")


def test_remaining_seconds_is_pure_and_non_increasing():
    samples = [START + timedelta(seconds=s) for s in (0, 1, 59, 300, 599, 600, 601, 3600)]
    values = [remaining_seconds(START, 10, now) for now in samples]

    assert values == [600, 599, 541, 300, 1, 0, 0, 0]
    assert all(a >= b for a, b in zip(values, values[1:]))
    assert remaining_seconds(START, 10, samples[3]) == remaining_seconds(START, 10, samples[3])


def test_remaining_seconds_accepts_naive_stored_timestamps():
    naive = START.replace(tzinfo=None)
    assert remaining_seconds(naive, 10, START + timedelta(minutes=4)) == 360


@pytest.mark.parametrize(
    "remaining, expected",
    [(600, 0), (599, 1), (390, 4), (60, 9), (59, 10), (0, 10)],
)
def test_duration_taken(remaining, expected):
    assert duration_taken(10, remaining) == expected


@pytest.mark.parametrize(
    "status, selected, expected",
    [
        (AnswerStatus.NOT_ATTEMPTED, None, AnswerStatus.MARKED_FOR_REVIEW),
        (AnswerStatus.ANSWERED, "B", AnswerStatus.ANSWERED_AND_MARKED),
        (AnswerStatus.MARKED_FOR_REVIEW, None, AnswerStatus.NOT_ATTEMPTED),
        (AnswerStatus.ANSWERED_AND_MARKED, "B", AnswerStatus.ANSWERED),
        ("MARKED_FOR_REVIEW", None, AnswerStatus.NOT_ATTEMPTED),
    ],
)
def test_toggle_review_status(status, selected, expected):
    assert toggle_review_status(status, selected) == expected


def test_navigator_counts():
    ids = [uuid.uuid4() for _ in range(5)]
    records = {
        ids[0]: ("A", AnswerStatus.ANSWERED),
        ids[1]: ("C", AnswerStatus.ANSWERED_AND_MARKED),
        ids[2]: (None, AnswerStatus.MARKED_FOR_REVIEW),
        ids[3]: (None, AnswerStatus.NOT_ATTEMPTED),
    }

    counts = navigator_counts(ids, records)

    assert counts == {
        "total": 5,
        "answered": 2,
        "marked_for_review": 2,
        "not_attempted": 3,
    }
