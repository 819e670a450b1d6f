"""
Mock Test Platform - Catalog Service
Read-only queries over tests and their ordered questions
"""
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from testprep.models.catalog import Question, Test, TestQuestion


class CatalogService:
    """Read access to the test and question catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active_tests(self) -> list[Test]:
        """Active tests, newest first."""
        result = await self.db.execute(
            select(Test)
            .where(Test.is_active.is_(True))
            .order_by(Test.created_at.desc(), Test.title)
        )
        return list(result.scalars().all())

    async def get_test(self, test_id: uuid.UUID, active_only: bool = True) -> Test | None:
        query = select(Test).where(Test.id == test_id)
        if active_only:
            query = query.where(Test.is_active.is_(True))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_ordered_questions(self, test_id: uuid.UUID) -> list[Question]:
        """Questions of a test in presentation order."""
        result = await self.db.execute(
            select(Question)
            .join(TestQuestion, TestQuestion.question_id == Question.id)
            .where(TestQuestion.test_id == test_id)
            .order_by(TestQuestion.question_order)
        )
        return list(result.scalars().all())

    async def question_in_test(self, test_id: uuid.UUID, question_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(TestQuestion.id).where(
                TestQuestion.test_id == test_id,
                TestQuestion.question_id == question_id,
            )
        )
        return result.first() is not None
