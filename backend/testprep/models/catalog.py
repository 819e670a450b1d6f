"""
Mock Test Platform - Catalog Models
Read-only mappings of the test and question catalog. Rows are authored by
the catalog service (or the seed script); the attempt engine only reads them.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from testprep.core.database import Base


class OptionKey(str, Enum):
    """Answer option keys."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class ExamType(str, Enum):
    SSC_CGL = "SSC_CGL"
    SSC_CHSL = "SSC_CHSL"
    SSC_MTS = "SSC_MTS"


class TestType(str, Enum):
    FULL_LENGTH = "FULL_LENGTH"
    SECTIONAL = "SECTIONAL"
    CHAPTER_WISE = "CHAPTER_WISE"
    PREVIOUS_YEAR = "PREVIOUS_YEAR"
    MINI_QUIZ = "MINI_QUIZ"


class SectionType(str, Enum):
    QUANTITATIVE_APTITUDE = "QUANTITATIVE_APTITUDE"
    REASONING = "REASONING"
    GENERAL_AWARENESS = "GENERAL_AWARENESS"
    ENGLISH = "ENGLISH"


class DifficultyLevel(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class Test(Base):
    """A mock test: an ordered list of questions with a time limit."""

    __tablename__ = "tests"
    # Keep pytest from collecting this class when imported in test modules
    __test__ = False

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    test_type: Mapped[TestType] = mapped_column(String(50), default=TestType.FULL_LENGTH)
    exam_type: Mapped[ExamType] = mapped_column(String(50), default=ExamType.SSC_CGL)
    section: Mapped[SectionType | None] = mapped_column(String(50), nullable=True)

    duration_minutes: Mapped[int] = mapped_column(Integer)
    # Redundant sum of question marks, used as the percentage denominator
    total_marks: Mapped[int] = mapped_column(Integer)
    total_questions: Mapped[int] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )

    test_questions: Mapped[list["TestQuestion"]] = relationship(
        "TestQuestion",
        back_populates="test",
        order_by="TestQuestion.question_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Test {self.title!r} {self.duration_minutes}min>"


class Question(Base):
    """A single-answer multiple choice question with bilingual text."""

    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    question_text_english: Mapped[str] = mapped_column(Text)
    question_text_hindi: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Any subset of the four options may be absent
    option_a_english: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_a_hindi: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_b_english: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_b_hindi: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_c_english: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_c_hindi: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_d_english: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_d_hindi: Mapped[str | None] = mapped_column(Text, nullable=True)

    correct_answer: Mapped[str] = mapped_column(String(1))
    explanation_english: Mapped[str | None] = mapped_column(Text, nullable=True)
    explanation_hindi: Mapped[str | None] = mapped_column(Text, nullable=True)

    section: Mapped[SectionType] = mapped_column(String(50))
    difficulty: Mapped[DifficultyLevel] = mapped_column(String(20), default=DifficultyLevel.MEDIUM)

    marks: Mapped[int] = mapped_column(Integer, default=1)
    negative_marks: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0.25"))
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )

    def options(self) -> dict[str, dict[str, str | None]]:
        """Present options keyed by letter, skipping absent ones."""
        result = {}
        for key in OptionKey:
            english = getattr(self, f"option_{key.value.lower()}_english")
            hindi = getattr(self, f"option_{key.value.lower()}_hindi")
            if english is None and hindi is None:
                continue
            result[key.value] = {"english": english, "hindi": hindi}
        return result

    def __repr__(self):
        return f"<Question {self.id}: {self.question_text_english[:40]}>"


class TestQuestion(Base):
    """Position of a question inside a test."""

    __tablename__ = "test_questions"
    __test__ = False
    __table_args__ = (
        UniqueConstraint("test_id", "question_id", name="uq_test_question"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    test_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tests.id", ondelete="CASCADE"),
        index=True
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("questions.id", ondelete="CASCADE"),
        index=True
    )
    question_order: Mapped[int] = mapped_column(Integer)

    test: Mapped["Test"] = relationship("Test", back_populates="test_questions")
    question: Mapped["Question"] = relationship("Question", lazy="joined")
