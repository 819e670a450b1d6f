"""
Mock Test Platform - Catalog Seeder
Seeds sample SSC mock tests with bilingual questions
"""
import asyncio
import logging
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from testprep.core.database import async_session_maker, init_db
from testprep.core.logging_config import configure_logging
from testprep.models.catalog import (
    DifficultyLevel,
    ExamType,
    OptionKey,
    Question,
    SectionType,
    Test,
    TestQuestion,
    TestType,
)

logger = logging.getLogger(__name__)


SAMPLE_TESTS = [
    {
        "title": "SSC CGL Mock Test - 1",
        "description": "Full length mock test for SSC CGL preparation",
        "test_type": TestType.FULL_LENGTH,
        "section": None,
        "duration_minutes": 60,
        "questions": 25,
        "marks": 2,
        "negative_marks": "0.5",
    },
    {
        "title": "Quantitative Aptitude - Sectional Test",
        "description": "Test your mathematical skills",
        "test_type": TestType.SECTIONAL,
        "section": SectionType.QUANTITATIVE_APTITUDE,
        "duration_minutes": 30,
        "questions": 15,
        "marks": 2,
        "negative_marks": "0.5",
    },
    {
        "title": "General Awareness - Mini Quiz",
        "description": "Quick test on current affairs and general knowledge",
        "test_type": TestType.MINI_QUIZ,
        "section": SectionType.GENERAL_AWARENESS,
        "duration_minutes": 10,
        "questions": 10,
        "marks": 5,
        "negative_marks": "0.5",
    },
]

OPTION_KEYS = [key.value for key in OptionKey]


def build_test(data: dict) -> Test:
    """Build a test and its ordered questions from a sample definition."""
    section = data["section"] or SectionType.QUANTITATIVE_APTITUDE
    test = Test(
        id=uuid4(),
        title=data["title"],
        description=data["description"],
        test_type=data["test_type"].value,
        exam_type=ExamType.SSC_CGL.value,
        section=data["section"].value if data["section"] else None,
        duration_minutes=data["duration_minutes"],
        total_marks=data["questions"] * data["marks"],
        total_questions=data["questions"],
        is_active=True,
    )

    for i in range(1, data["questions"] + 1):
        question = Question(
            id=uuid4(),
            question_text_english=f"Sample question {i} for {data['title']}. What is the correct answer?",
            question_text_hindi=f"हिंदी में प्रश्न {i} {data['title']} के लिए। सही उत्तर क्या है?",
            option_a_english="Option A",
            option_a_hindi="विकल्प A",
            option_b_english="Option B",
            option_b_hindi="विकल्प B",
            option_c_english="Option C",
            option_c_hindi="विकल्प C",
            option_d_english="Option D",
            option_d_hindi="विकल्प D",
            correct_answer=OPTION_KEYS[i % 4],
            explanation_english=f"This is the explanation for question {i}",
            explanation_hindi=f"यह प्रश्न {i} की व्याख्या है",
            section=section.value,
            difficulty=DifficultyLevel.MEDIUM.value,
            marks=data["marks"],
            negative_marks=Decimal(data["negative_marks"]),
        )
        test.test_questions.append(TestQuestion(
            id=uuid4(),
            question=question,
            question_order=i,
        ))

    return test


async def seed_catalog(session: Optional[AsyncSession] = None) -> int:
    """Insert the sample tests if the catalog is empty. Returns tests created."""
    if session is None:
        async with async_session_maker() as own_session:
            return await seed_catalog(own_session)

    result = await session.execute(select(func.count(Test.id)))
    existing = result.scalar()
    if existing:
        logger.info(f"Catalog already seeded ({existing} tests found)")
        return 0

    for data in SAMPLE_TESTS:
        test = build_test(data)
        session.add(test)
        logger.info(f"Created test: {test.title} ({test.total_questions} questions)")

    await session.commit()
    logger.info("Catalog seeding complete")
    return len(SAMPLE_TESTS)


async def main() -> None:
    configure_logging()
    await init_db()
    await seed_catalog()


if __name__ == "__main__":
    asyncio.run(main())
