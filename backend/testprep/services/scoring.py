"""
Mock Test Platform - Scoring and Timing Rules
Pure functions: no database access, no clock reads.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional, Protocol, Sequence
import uuid

from testprep.models.attempt import AnswerStatus

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


class ScorableQuestion(Protocol):
    id: uuid.UUID
    correct_answer: str
    marks: int
    negative_marks: Decimal


@dataclass
class QuestionScore:
    """Outcome for one question of the test."""
    question_id: uuid.UUID
    selected_answer: Optional[str]
    correct_answer: str
    is_correct: Optional[bool]  # None when left blank
    marks_awarded: Decimal


@dataclass
class ScoreResult:
    """Outcome of scoring a whole attempt."""
    raw_score: Decimal
    total_score: Decimal
    percentage: Decimal
    questions: list[QuestionScore] = field(default_factory=list)

    @property
    def correct_count(self) -> int:
        return sum(1 for q in self.questions if q.is_correct is True)

    @property
    def incorrect_count(self) -> int:
        return sum(1 for q in self.questions if q.is_correct is False)

    @property
    def unanswered_count(self) -> int:
        return sum(1 for q in self.questions if q.is_correct is None)


def round2(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def deadline(started_at: datetime, duration_minutes: int) -> datetime:
    return as_utc(started_at) + timedelta(minutes=duration_minutes)


def remaining_seconds(started_at: datetime, duration_minutes: int, now: datetime) -> int:
    """
    Whole seconds left before the attempt expires.

    A function of the stored start time and the test duration only, so a
    reloaded client recovers the same countdown.
    """
    left = (deadline(started_at, duration_minutes) - as_utc(now)).total_seconds()
    return max(0, int(left))


def duration_taken(duration_minutes: int, remaining: int) -> int:
    """Minutes used, counting a partially used minute as used."""
    return duration_minutes - remaining // 60


def percentage_of(score: Decimal, total_marks: int) -> Decimal:
    if not total_marks:
        return round2(ZERO)
    return round2(Decimal(100) * score / Decimal(total_marks))


def score_answers(
    questions: Sequence[ScorableQuestion],
    selections: Mapping[uuid.UUID, Optional[str]],
    total_marks: int,
) -> ScoreResult:
    """
    Score an attempt with negative marking.

    Correct selections earn the question's marks, wrong selections lose its
    negative marks, blanks are neutral. The running total is clamped at zero
    only once, after every question has been counted.
    """
    raw = ZERO
    outcomes: list[QuestionScore] = []

    for question in questions:
        selected = selections.get(question.id)
        if selected is not None and selected == question.correct_answer:
            awarded = Decimal(question.marks)
            is_correct = True
        elif selected is not None:
            awarded = -Decimal(question.negative_marks)
            is_correct = False
        else:
            awarded = ZERO
            is_correct = None

        raw += awarded
        outcomes.append(QuestionScore(
            question_id=question.id,
            selected_answer=selected,
            correct_answer=question.correct_answer,
            is_correct=is_correct,
            marks_awarded=awarded,
        ))

    total = round2(max(ZERO, raw))
    return ScoreResult(
        raw_score=raw,
        total_score=total,
        percentage=percentage_of(total, total_marks),
        questions=outcomes,
    )


def is_marked(status: AnswerStatus) -> bool:
    return status in (AnswerStatus.MARKED_FOR_REVIEW, AnswerStatus.ANSWERED_AND_MARKED)


def toggle_review_status(status: AnswerStatus, selected_answer: Optional[str]) -> AnswerStatus:
    """Flip the review mark, keeping the answered/unanswered half intact."""
    if is_marked(AnswerStatus(status)):
        return AnswerStatus.ANSWERED if selected_answer else AnswerStatus.NOT_ATTEMPTED
    return AnswerStatus.ANSWERED_AND_MARKED if selected_answer else AnswerStatus.MARKED_FOR_REVIEW


def navigator_counts(
    question_ids: Sequence[uuid.UUID],
    records: Mapping[uuid.UUID, tuple[Optional[str], AnswerStatus]],
) -> dict[str, int]:
    """Palette totals: answered, marked for review and not attempted."""
    answered = 0
    marked = 0
    for question_id in question_ids:
        selected, status = records.get(question_id, (None, AnswerStatus.NOT_ATTEMPTED))
        if selected:
            answered += 1
        if is_marked(AnswerStatus(status)):
            marked += 1
    return {
        "total": len(question_ids),
        "answered": answered,
        "marked_for_review": marked,
        "not_attempted": len(question_ids) - answered,
    }
