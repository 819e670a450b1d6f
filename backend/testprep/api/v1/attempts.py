"""
Mock Test Platform - Attempt API
Endpoints for starting, answering, submitting and reviewing test attempts
"""
import uuid

from fastapi import APIRouter, HTTPException, Response, status

from testprep.api.deps import Attempts, CurrentUserId
from testprep.schemas.attempt import (
    AnswerResponse,
    AnswerUpsert,
    AttemptCreate,
    AttemptCreated,
    AttemptHistoryItem,
    AttemptResponse,
    ReviewResponse,
    SubmitResponse,
)
from testprep.services.attempt import (
    AnswerValidationError,
    AttemptClosedError,
    AttemptConflictError,
    AttemptError,
    NotFoundError,
    StoreError,
)

router = APIRouter(prefix="/attempts", tags=["Attempts"])


def _http_error(error: AttemptError) -> HTTPException:
    """Translate a lifecycle error into its HTTP response."""
    if isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (AttemptClosedError, AttemptConflictError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, AnswerValidationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(error, StoreError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


@router.post("", response_model=AttemptCreated, status_code=status.HTTP_201_CREATED)
async def start_attempt(
    request: AttemptCreate,
    current_user_id: CurrentUserId,
    attempts: Attempts,
):
    """Start a timed attempt at an active test."""
    try:
        attempt = await attempts.start_attempt(
            user_id=current_user_id,
            test_id=request.test_id,
            language=request.language,
            client_token=request.client_token,
        )
        detail = await attempts.get_attempt_detail(attempt.id, current_user_id)
    except AttemptError as e:
        raise _http_error(e)

    return AttemptCreated(
        attempt_id=attempt.id,
        test_id=attempt.test_id,
        started_at=detail.attempt.started_at,
        duration_minutes=detail.test.duration_minutes,
        remaining_seconds=detail.remaining_seconds,
    )


@router.get("", response_model=list[AttemptHistoryItem])
async def list_attempts(
    current_user_id: CurrentUserId,
    attempts: Attempts,
):
    """The caller's attempts, most recent first."""
    try:
        history = await attempts.list_attempts(current_user_id)
    except AttemptError as e:
        raise _http_error(e)
    return [AttemptHistoryItem.from_attempt(a) for a in history]


@router.get("/{attempt_id}", response_model=AttemptResponse)
async def get_attempt(
    attempt_id: uuid.UUID,
    current_user_id: CurrentUserId,
    attempts: Attempts,
):
    """Attempt with test summary, remaining time and navigator totals."""
    try:
        detail = await attempts.get_attempt_detail(attempt_id, current_user_id)
    except AttemptError as e:
        raise _http_error(e)
    return AttemptResponse.from_detail(detail)


@router.get("/{attempt_id}/answers", response_model=list[AnswerResponse])
async def list_answers(
    attempt_id: uuid.UUID,
    current_user_id: CurrentUserId,
    attempts: Attempts,
):
    """Saved answers, used to restore the answer sheet after a reload."""
    try:
        records = await attempts.list_answers(attempt_id, current_user_id)
    except AttemptError as e:
        raise _http_error(e)
    return [AnswerResponse.model_validate(r) for r in records]


@router.put(
    "/{attempt_id}/answers/{question_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def save_answer(
    attempt_id: uuid.UUID,
    question_id: uuid.UUID,
    answer: AnswerUpsert,
    current_user_id: CurrentUserId,
    attempts: Attempts,
):
    """Save the latest selection for a question. Last write wins."""
    try:
        await attempts.record_answer(
            attempt_id=attempt_id,
            user_id=current_user_id,
            question_id=question_id,
            selected_option=answer.selected_option.value if answer.selected_option else None,
            status=answer.status,
        )
    except AttemptError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{attempt_id}/answers/{question_id}/review", response_model=AnswerResponse)
async def toggle_review(
    attempt_id: uuid.UUID,
    question_id: uuid.UUID,
    current_user_id: CurrentUserId,
    attempts: Attempts,
):
    """Mark or unmark a question for review."""
    try:
        record = await attempts.toggle_review(attempt_id, current_user_id, question_id)
    except AttemptError as e:
        raise _http_error(e)
    return AnswerResponse.model_validate(record)


@router.post("/{attempt_id}/submit", response_model=SubmitResponse)
async def submit_attempt(
    attempt_id: uuid.UUID,
    current_user_id: CurrentUserId,
    attempts: Attempts,
):
    """
    Submit and score an attempt.
    Repeated submits (e.g. timer expiry racing the submit button) return the
    stored result unchanged.
    """
    try:
        result = await attempts.submit_attempt(attempt_id, current_user_id)
    except AttemptError as e:
        raise _http_error(e)
    return SubmitResponse.from_result(result)


@router.get("/{attempt_id}/review", response_model=ReviewResponse)
async def review_attempt(
    attempt_id: uuid.UUID,
    current_user_id: CurrentUserId,
    attempts: Attempts,
):
    """Question-by-question breakdown of a submitted attempt."""
    try:
        attempt, items = await attempts.review(attempt_id, current_user_id)
    except AttemptError as e:
        raise _http_error(e)
    return ReviewResponse.from_review(attempt, items)
