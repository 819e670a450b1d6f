"""
Mock Test Platform - Attempt Schemas
Pydantic schemas for the attempt lifecycle API
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from testprep.models.attempt import AnswerStatus, LanguagePreference
from testprep.models.catalog import OptionKey
from testprep.schemas.catalog import OptionText, TestSummary


class AttemptCreate(BaseModel):
    """Request to start an attempt."""
    test_id: uuid.UUID
    language: LanguagePreference = LanguagePreference.ENGLISH
    client_token: str | None = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Client-generated key that makes retries return the same attempt",
    )


class AttemptCreated(BaseModel):
    """Response after starting an attempt."""
    attempt_id: uuid.UUID
    test_id: uuid.UUID
    started_at: datetime
    duration_minutes: int
    remaining_seconds: int


class AnswerUpsert(BaseModel):
    """Latest selection and status for one question."""
    selected_option: OptionKey | None = None
    status: AnswerStatus

    @field_validator("selected_option", mode="before")
    @classmethod
    def normalize_option_case(cls, v):
        # Lowercase keys are accepted, as in the service layer
        if isinstance(v, str):
            return v.strip().upper()
        return v


class AnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: uuid.UUID
    selected_answer: str | None = None
    attempt_status: AnswerStatus


class NavigatorSummary(BaseModel):
    """Question palette totals."""
    total: int
    answered: int
    marked_for_review: int
    not_attempted: int


class AttemptResponse(BaseModel):
    """An attempt joined with its test and live timing."""
    id: uuid.UUID
    user_id: uuid.UUID
    test_id: uuid.UUID
    started_at: datetime
    submitted_at: datetime | None = None
    duration_taken: int | None = None
    total_score: float
    percentage: float
    percentile: float | None = None
    is_completed: bool
    language_used: LanguagePreference
    remaining_seconds: int
    is_expired: bool
    navigator: NavigatorSummary
    test: TestSummary

    @classmethod
    def from_detail(cls, detail) -> "AttemptResponse":
        attempt = detail.attempt
        return cls(
            id=attempt.id,
            user_id=attempt.user_id,
            test_id=attempt.test_id,
            started_at=attempt.started_at,
            submitted_at=attempt.submitted_at,
            duration_taken=attempt.duration_taken,
            total_score=float(attempt.total_score),
            percentage=float(attempt.percentage),
            percentile=float(attempt.percentile) if attempt.percentile is not None else None,
            is_completed=attempt.is_completed,
            language_used=attempt.language_used,
            remaining_seconds=detail.remaining_seconds,
            is_expired=detail.is_expired,
            navigator=NavigatorSummary(**detail.navigator),
            test=TestSummary.model_validate(detail.test),
        )


class AttemptHistoryItem(BaseModel):
    """Summary of an attempt for the history list."""
    id: uuid.UUID
    started_at: datetime
    submitted_at: datetime | None = None
    is_completed: bool
    total_score: float
    percentage: float
    duration_taken: int | None = None
    test: TestSummary

    @classmethod
    def from_attempt(cls, attempt) -> "AttemptHistoryItem":
        return cls(
            id=attempt.id,
            started_at=attempt.started_at,
            submitted_at=attempt.submitted_at,
            is_completed=attempt.is_completed,
            total_score=float(attempt.total_score),
            percentage=float(attempt.percentage),
            duration_taken=attempt.duration_taken,
            test=TestSummary.model_validate(attempt.test),
        )


class SubmitResponse(BaseModel):
    """Stored result of a submitted attempt."""
    attempt_id: uuid.UUID
    total_score: float
    percentage: float
    duration_taken: int
    submitted_at: datetime
    already_submitted: bool

    @classmethod
    def from_result(cls, result) -> "SubmitResponse":
        return cls(
            attempt_id=result.attempt_id,
            total_score=float(result.total_score),
            percentage=float(result.percentage),
            duration_taken=result.duration_taken,
            submitted_at=result.submitted_at,
            already_submitted=result.already_submitted,
        )


class ReviewQuestion(BaseModel):
    """One question of a completed attempt with its answer key."""
    number: int
    question_id: uuid.UUID
    question_text_english: str
    question_text_hindi: str | None = None
    options: dict[str, OptionText]
    selected_answer: str | None = None
    correct_answer: str
    attempt_status: AnswerStatus
    is_correct: bool | None = None
    marks_awarded: float
    explanation_english: str | None = None
    explanation_hindi: str | None = None


class ReviewResponse(BaseModel):
    attempt_id: uuid.UUID
    total_score: float
    percentage: float
    questions: list[ReviewQuestion]

    @classmethod
    def from_review(cls, attempt, items) -> "ReviewResponse":
        questions = []
        for item in items:
            q = item.question
            record = item.record
            questions.append(ReviewQuestion(
                number=item.order,
                question_id=q.id,
                question_text_english=q.question_text_english,
                question_text_hindi=q.question_text_hindi,
                options=q.options(),
                selected_answer=record.selected_answer if record else None,
                correct_answer=q.correct_answer,
                attempt_status=record.attempt_status if record else AnswerStatus.NOT_ATTEMPTED,
                is_correct=record.is_correct if record else None,
                marks_awarded=float(record.marks_awarded) if record else 0.0,
                explanation_english=q.explanation_english,
                explanation_hindi=q.explanation_hindi,
            ))
        return cls(
            attempt_id=attempt.id,
            total_score=float(attempt.total_score),
            percentage=float(attempt.percentage),
            questions=questions,
        )
