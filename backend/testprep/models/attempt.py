"""
Mock Test Platform - Attempt Models
One user's timed attempt at a test and the per-question answer records.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from testprep.core.database import Base

if TYPE_CHECKING:
    from testprep.models.catalog import Test


class AnswerStatus(str, Enum):
    """Navigator status of a question within an attempt."""
    NOT_ATTEMPTED = "NOT_ATTEMPTED"
    ANSWERED = "ANSWERED"
    MARKED_FOR_REVIEW = "MARKED_FOR_REVIEW"
    ANSWERED_AND_MARKED = "ANSWERED_AND_MARKED"


class LanguagePreference(str, Enum):
    ENGLISH = "ENGLISH"
    HINDI = "HINDI"


class TestAttempt(Base):
    """
    A user's attempt at a test.

    Mutable only while ``is_completed`` is false; completion is one-way and
    written exactly once by the scoring transaction.
    """

    __tablename__ = "test_attempts"
    __test__ = False
    __table_args__ = (
        UniqueConstraint("user_id", "client_token", name="uq_attempt_client_token"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Owned by the external auth service, so no foreign key
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    test_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tests.id", ondelete="CASCADE"),
        index=True
    )

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_taken: Mapped[int | None] = mapped_column(Integer, nullable=True)  # minutes

    total_score: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))
    percentile: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    language_used: Mapped[LanguagePreference] = mapped_column(
        String(20),
        default=LanguagePreference.ENGLISH
    )
    client_token: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Relationships
    test: Mapped["Test"] = relationship("Test", lazy="joined")
    answers: Mapped[list["AnswerRecord"]] = relationship(
        "AnswerRecord",
        back_populates="attempt",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<TestAttempt {self.id} completed={self.is_completed}>"


class AnswerRecord(Base):
    """The latest state of one question within one attempt."""

    __tablename__ = "question_attempts"
    __table_args__ = (
        UniqueConstraint("test_attempt_id", "question_id", name="uq_attempt_question"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    test_attempt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("test_attempts.id", ondelete="CASCADE"),
        index=True
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("questions.id", ondelete="CASCADE"),
        index=True
    )

    selected_answer: Mapped[str | None] = mapped_column(String(1), nullable=True)
    attempt_status: Mapped[AnswerStatus] = mapped_column(
        String(30),
        default=AnswerStatus.NOT_ATTEMPTED
    )

    # Filled in at scoring time only
    is_correct: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    marks_awarded: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0"))

    # Reserved; never populated by the attempt engine
    time_spent: Mapped[int] = mapped_column(Integer, default=0)

    attempt: Mapped["TestAttempt"] = relationship("TestAttempt", back_populates="answers")

    def __repr__(self):
        return f"<AnswerRecord {self.question_id} {self.attempt_status} {self.selected_answer}>"
