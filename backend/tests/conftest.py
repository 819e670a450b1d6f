"""
Mock Test Platform - Test Configuration
Pytest fixtures and configuration for testing
"""
import os

# Point the application engine at SQLite before the app is imported
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///./test.db")

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from testprep.core.database import Base, get_db
from testprep.core.security import create_access_token
from testprep.main import app
from testprep.models import Question, Test, TestQuestion


# Test database URL (use SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)

test_session_maker = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class FrozenClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session_maker() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    """Bearer header for the fixture user."""
    token = create_access_token(subject=str(user_id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers() -> dict[str, str]:
    token = create_access_token(subject=str(uuid.uuid4()))
    return {"Authorization": f"Bearer {token}"}


async def create_test(
    session: AsyncSession,
    marks: list[int],
    negative_marks: list[str],
    correct: list[str],
    duration_minutes: int = 10,
    total_marks: int | None = None,
    is_active: bool = True,
) -> tuple[Test, list[Question]]:
    """Insert a test whose questions follow the given marking scheme."""
    test = Test(
        id=uuid.uuid4(),
        title="Sample Mock Test",
        description="Fixture test",
        test_type="SECTIONAL",
        exam_type="SSC_CGL",
        section="REASONING",
        duration_minutes=duration_minutes,
        total_marks=sum(marks) if total_marks is None else total_marks,
        total_questions=len(marks),
        is_active=is_active,
    )
    questions = []
    for index, (mark, negative, answer) in enumerate(zip(marks, negative_marks, correct), 1):
        question = Question(
            id=uuid.uuid4(),
            question_text_english=f"Question {index}?",
            question_text_hindi=f"प्रश्न {index}?",
            option_a_english="Alpha",
            option_b_english="Bravo",
            option_c_english="Charlie",
            option_d_english="Delta",
            correct_answer=answer,
            explanation_english=f"Answer is {answer}",
            section="REASONING",
            difficulty="MEDIUM",
            marks=mark,
            negative_marks=Decimal(negative),
        )
        questions.append(question)
        test.test_questions.append(
            TestQuestion(id=uuid.uuid4(), question=question, question_order=index)
        )

    session.add(test)
    await session.commit()
    return test, questions


@pytest_asyncio.fixture
async def three_question_test(db_session: AsyncSession) -> tuple[Test, list[Question]]:
    """marks=[2,2,1] (total 5), negative=[0.5,0.5,0.25], answers A, B, C."""
    return await create_test(
        db_session,
        marks=[2, 2, 1],
        negative_marks=["0.5", "0.5", "0.25"],
        correct=["A", "B", "C"],
        duration_minutes=10,
    )


@pytest.fixture
def make_test(db_session: AsyncSession):
    """Factory fixture: ``await make_test(marks=..., negative_marks=..., correct=...)``."""
    async def factory(**kwargs) -> tuple[Test, list[Question]]:
        return await create_test(db_session, **kwargs)
    return factory
