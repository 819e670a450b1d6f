"""
Mock Test Platform - Catalog API
Read-only endpoints for active tests and their question papers
"""
import uuid

from fastapi import APIRouter, HTTPException, status

from testprep.api.deps import Catalog, CurrentUserId
from testprep.schemas.catalog import QuestionPaper, QuestionView, TestSummary

router = APIRouter(prefix="/tests", tags=["Tests"])


@router.get("", response_model=list[TestSummary])
async def list_tests(
    current_user_id: CurrentUserId,
    catalog: Catalog,
):
    """List active tests, newest first."""
    tests = await catalog.list_active_tests()
    return [TestSummary.model_validate(t) for t in tests]


@router.get("/{test_id}/questions", response_model=QuestionPaper)
async def get_question_paper(
    test_id: uuid.UUID,
    current_user_id: CurrentUserId,
    catalog: Catalog,
):
    """
    Get a test's questions in presentation order.
    The answer key and explanations are withheld until review.
    """
    test = await catalog.get_test(test_id)
    if not test:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Test not found"
        )

    questions = await catalog.get_ordered_questions(test.id)
    return QuestionPaper(
        test=TestSummary.model_validate(test),
        questions=[
            QuestionView.from_question(q, number)
            for number, q in enumerate(questions, 1)
        ],
    )
