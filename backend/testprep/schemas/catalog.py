"""
Mock Test Platform - Catalog Schemas
Pydantic schemas for test listings and question papers
"""
import uuid

from pydantic import BaseModel, ConfigDict


class TestSummary(BaseModel):
    """A test as shown in listings and attempt details."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None = None
    test_type: str
    exam_type: str
    section: str | None = None
    duration_minutes: int
    total_marks: int
    total_questions: int
    is_active: bool


class OptionText(BaseModel):
    english: str | None = None
    hindi: str | None = None


class QuestionView(BaseModel):
    """A question as presented during an attempt. Never carries the answer key."""
    id: uuid.UUID
    number: int
    question_text_english: str
    question_text_hindi: str | None = None
    options: dict[str, OptionText]
    section: str
    difficulty: str
    marks: int
    negative_marks: float
    image_url: str | None = None

    @classmethod
    def from_question(cls, question, number: int) -> "QuestionView":
        return cls(
            id=question.id,
            number=number,
            question_text_english=question.question_text_english,
            question_text_hindi=question.question_text_hindi,
            options=question.options(),
            section=question.section,
            difficulty=question.difficulty,
            marks=question.marks,
            negative_marks=float(question.negative_marks),
            image_url=question.image_url,
        )


class QuestionPaper(BaseModel):
    """A test with its ordered questions."""
    test: TestSummary
    questions: list[QuestionView]
