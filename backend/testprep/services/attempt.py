"""
Mock Test Platform - Attempt Lifecycle Service
Starts attempts, records answers and review marks, and scores submissions.

An attempt moves one way, from in progress to completed. Answers are
written through on every change; the score is computed once, by whichever
submit call wins the conditional completion update.
"""
import functools
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import Integer, Numeric, String, Uuid, literal, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from testprep.core.config import settings
from testprep.models.attempt import (
    AnswerRecord,
    AnswerStatus,
    LanguagePreference,
    TestAttempt,
)
from testprep.models.catalog import OptionKey, Question, Test
from testprep.services.catalog import CatalogService
from testprep.services.scoring import (
    ZERO,
    duration_taken,
    navigator_counts,
    remaining_seconds,
    score_answers,
    toggle_review_status,
)

logger = logging.getLogger(__name__)

VALID_OPTIONS = {key.value for key in OptionKey}


class AttemptError(Exception):
    """Base attempt lifecycle error."""
    pass


class NotFoundError(AttemptError):
    """Entity missing, or not owned by the caller."""
    pass


class AttemptClosedError(AttemptError):
    """Mutation attempted on a completed attempt."""
    pass


class AttemptConflictError(AttemptError):
    """An in-progress attempt already exists and duplicates are disabled."""
    pass


class AnswerValidationError(AttemptError):
    """Malformed option key or inconsistent answer status."""
    pass


class StoreError(AttemptError):
    """Transient persistence failure."""
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SubmissionResult:
    """Stored outcome of a submitted attempt."""
    attempt_id: uuid.UUID
    total_score: Decimal
    percentage: Decimal
    duration_taken: int
    submitted_at: datetime
    already_submitted: bool

    @classmethod
    def from_attempt(cls, attempt: TestAttempt, already_submitted: bool) -> "SubmissionResult":
        return cls(
            attempt_id=attempt.id,
            total_score=Decimal(attempt.total_score),
            percentage=Decimal(attempt.percentage),
            duration_taken=attempt.duration_taken,
            submitted_at=attempt.submitted_at,
            already_submitted=already_submitted,
        )


@dataclass
class AttemptDetail:
    """An attempt joined with its test and derived timing."""
    attempt: TestAttempt
    test: Test
    remaining_seconds: int
    navigator: dict[str, int]

    @property
    def is_expired(self) -> bool:
        return not self.attempt.is_completed and self.remaining_seconds == 0


@dataclass
class ReviewItem:
    """One question of a completed attempt, answer key included."""
    order: int
    question: Question
    record: Optional[AnswerRecord]


def _store_errors(func):
    """Roll back and re-raise database failures as StoreError."""
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Store failure in {func.__name__}: {e}")
            await self.db.rollback()
            raise StoreError("Storage is temporarily unavailable, please retry") from e
    return wrapper


def normalize_answer(
    selected_option: Optional[str],
    status: AnswerStatus | str,
) -> tuple[Optional[str], AnswerStatus]:
    """
    Check that a selection and a status agree.

    MARKED_FOR_REVIEW with a selection becomes ANSWERED_AND_MARKED; answered
    statuses need a selection and NOT_ATTEMPTED must not carry one.
    """
    try:
        status = AnswerStatus(status)
    except ValueError:
        raise AnswerValidationError(f"Unknown answer status: {status!r}")

    if selected_option is not None:
        selected_option = str(selected_option).strip().upper()
        if selected_option not in VALID_OPTIONS:
            raise AnswerValidationError(
                f"Invalid option {selected_option!r}. Expected one of {sorted(VALID_OPTIONS)}"
            )

    if status in (AnswerStatus.ANSWERED, AnswerStatus.ANSWERED_AND_MARKED) and selected_option is None:
        raise AnswerValidationError(f"Status {status.value} requires a selected option")
    if status == AnswerStatus.NOT_ATTEMPTED and selected_option is not None:
        raise AnswerValidationError("Status NOT_ATTEMPTED cannot carry a selected option")
    if status == AnswerStatus.MARKED_FOR_REVIEW and selected_option is not None:
        status = AnswerStatus.ANSWERED_AND_MARKED

    return selected_option, status


class AttemptService:
    """Service for the test attempt lifecycle."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
        allow_concurrent_attempts: Optional[bool] = None,
    ):
        self.db = db
        self.clock = clock
        self.catalog = CatalogService(db)
        if allow_concurrent_attempts is None:
            allow_concurrent_attempts = settings.ALLOW_CONCURRENT_ATTEMPTS
        self.allow_concurrent_attempts = allow_concurrent_attempts

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _get_attempt(
        self,
        attempt_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
    ) -> TestAttempt:
        """Load an attempt; other users' attempts are reported as missing."""
        query = select(TestAttempt).where(TestAttempt.id == attempt_id)
        if user_id is not None:
            query = query.where(TestAttempt.user_id == user_id)
        result = await self.db.execute(query)
        attempt = result.scalar_one_or_none()
        if not attempt:
            raise NotFoundError("Test attempt not found")
        return attempt

    async def _answer_map(self, attempt_id: uuid.UUID) -> dict[uuid.UUID, AnswerRecord]:
        result = await self.db.execute(
            select(AnswerRecord)
            .where(AnswerRecord.test_attempt_id == attempt_id)
            .execution_options(populate_existing=True)
        )
        return {record.question_id: record for record in result.scalars().all()}

    async def _open_attempt_for_question(
        self,
        attempt_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        question_id: uuid.UUID,
    ) -> TestAttempt:
        attempt = await self._get_attempt(attempt_id, user_id)
        if attempt.is_completed:
            logger.warning(f"Rejected answer change on completed attempt {attempt_id}")
            raise AttemptClosedError("Test attempt is already submitted")
        if not await self.catalog.question_in_test(attempt.test_id, question_id):
            raise NotFoundError("Question is not part of this test")
        return attempt

    def remaining_time(self, attempt: TestAttempt, test: Test) -> int:
        """Seconds left on the attempt's clock, derived from stored timestamps."""
        return remaining_seconds(attempt.started_at, test.duration_minutes, self.clock())

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    @_store_errors
    async def start_attempt(
        self,
        user_id: uuid.UUID,
        test_id: uuid.UUID,
        language: LanguagePreference = LanguagePreference.ENGLISH,
        client_token: Optional[str] = None,
    ) -> TestAttempt:
        """
        Start a new attempt at an active test.

        A repeated ``client_token`` from the same user returns the attempt it
        created, so a retried request never opens a second attempt.

        Raises:
            NotFoundError: If the test is missing or inactive
            AttemptConflictError: If duplicates are disabled and an attempt
                at this test is still in progress
        """
        if client_token:
            result = await self.db.execute(
                select(TestAttempt).where(
                    TestAttempt.user_id == user_id,
                    TestAttempt.client_token == client_token,
                )
            )
            existing = result.scalar_one_or_none()
            if existing:
                if existing.test_id != test_id:
                    raise AttemptConflictError("Client token already used for another test")
                logger.info(f"Returning attempt {existing.id} for repeated client token")
                return existing

        test = await self.catalog.get_test(test_id)
        if not test:
            raise NotFoundError("Test not found")

        if not self.allow_concurrent_attempts:
            result = await self.db.execute(
                select(TestAttempt.id).where(
                    TestAttempt.user_id == user_id,
                    TestAttempt.test_id == test_id,
                    TestAttempt.is_completed.is_(False),
                )
            )
            if result.first() is not None:
                raise AttemptConflictError("An attempt at this test is already in progress")

        attempt = TestAttempt(
            id=uuid.uuid4(),
            user_id=user_id,
            test_id=test.id,
            started_at=self.clock(),
            is_completed=False,
            total_score=ZERO,
            percentage=ZERO,
            language_used=LanguagePreference(language).value,
            client_token=client_token,
        )
        self.db.add(attempt)
        await self.db.commit()
        await self.db.refresh(attempt)

        logger.info(f"Attempt {attempt.id} started by {user_id} on test {test.id}")
        return attempt

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def _insert_for_dialect(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise StoreError(f"Answer upsert is not supported on {dialect}")

    async def _upsert_answer(
        self,
        attempt_id: uuid.UUID,
        question_id: uuid.UUID,
        selected_option: Optional[str],
        status: AnswerStatus,
    ) -> AnswerRecord:
        """
        Insert or overwrite the answer row, only while the attempt is open.

        The open check is part of the INSERT ... SELECT itself, so a submit
        committed after the caller's own check still blocks the write.
        Postgres additionally takes a share lock on the attempt row, which
        makes the write wait for a concurrent submit to finish.
        """
        insert = self._insert_for_dialect()
        source = (
            select(
                literal(uuid.uuid4(), Uuid()),
                TestAttempt.id,
                literal(question_id, Uuid()),
                literal(selected_option, String(1)),
                literal(status.value, String(30)),
                literal(ZERO, Numeric(6, 2)),
                literal(0, Integer()),
            )
            .where(
                TestAttempt.id == attempt_id,
                TestAttempt.is_completed.is_(False),
            )
            .with_for_update(read=True)
        )
        stmt = insert(AnswerRecord).from_select(
            [
                "id",
                "test_attempt_id",
                "question_id",
                "selected_answer",
                "attempt_status",
                "marks_awarded",
                "time_spent",
            ],
            source,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["test_attempt_id", "question_id"],
            set_={
                "selected_answer": stmt.excluded.selected_answer,
                "attempt_status": stmt.excluded.attempt_status,
            },
        ).returning(AnswerRecord)

        result = await self.db.execute(
            stmt,
            execution_options={"populate_existing": True},
        )
        record = result.scalar_one_or_none()
        if record is None:
            await self.db.rollback()
            logger.warning(f"Rejected answer write on attempt {attempt_id} closed by a concurrent submit")
            raise AttemptClosedError("Test attempt is already submitted")
        return record

    @_store_errors
    async def record_answer(
        self,
        attempt_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        question_id: uuid.UUID,
        selected_option: Optional[str],
        status: AnswerStatus | str,
    ) -> AnswerRecord:
        """
        Save the latest selection and status for one question.

        Last write wins; replaying the same call leaves the same single row.

        Raises:
            NotFoundError: Unknown attempt, or question outside the test
            AttemptClosedError: The attempt is already submitted
            AnswerValidationError: Bad option key or status combination
        """
        await self._open_attempt_for_question(attempt_id, user_id, question_id)
        selected_option, status = normalize_answer(selected_option, status)

        record = await self._upsert_answer(attempt_id, question_id, selected_option, status)
        await self.db.commit()
        return record

    @_store_errors
    async def toggle_review(
        self,
        attempt_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        question_id: uuid.UUID,
    ) -> AnswerRecord:
        """Flip the review mark of a question, keeping its selection."""
        await self._open_attempt_for_question(attempt_id, user_id, question_id)

        result = await self.db.execute(
            select(AnswerRecord).where(
                AnswerRecord.test_attempt_id == attempt_id,
                AnswerRecord.question_id == question_id,
            )
        )
        current = result.scalar_one_or_none()
        selected = current.selected_answer if current else None
        status = current.attempt_status if current else AnswerStatus.NOT_ATTEMPTED

        record = await self._upsert_answer(
            attempt_id,
            question_id,
            selected,
            toggle_review_status(status, selected),
        )
        await self.db.commit()
        return record

    @_store_errors
    async def list_answers(
        self,
        attempt_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
    ) -> list[AnswerRecord]:
        await self._get_attempt(attempt_id, user_id)
        answers = await self._answer_map(attempt_id)
        return list(answers.values())

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @_store_errors
    async def submit_attempt(
        self,
        attempt_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> SubmissionResult:
        """
        Score and close an attempt.

        Safe to call any number of times from the user and the timer: only
        the call whose conditional update flips ``is_completed`` writes a
        score, every other call returns the stored result.
        """
        attempt = await self._get_attempt(attempt_id, user_id)
        if attempt.is_completed:
            logger.info(f"Attempt {attempt_id} already submitted, returning stored result")
            return SubmissionResult.from_attempt(attempt, already_submitted=True)

        test = attempt.test
        now = self.clock()
        remaining = remaining_seconds(attempt.started_at, test.duration_minutes, now)
        taken = duration_taken(test.duration_minutes, remaining)

        # Close the attempt before reading answers; answer writes check the
        # same flag, so the score covers exactly the answers saved while open
        result = await self.db.execute(
            update(TestAttempt)
            .where(
                TestAttempt.id == attempt.id,
                TestAttempt.is_completed.is_(False),
            )
            .values(
                is_completed=True,
                submitted_at=now,
                duration_taken=taken,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            # Another submit won the race
            await self.db.rollback()
            await self.db.refresh(attempt)
            logger.info(f"Attempt {attempt_id} was submitted concurrently")
            return SubmissionResult.from_attempt(attempt, already_submitted=True)

        questions = await self.catalog.get_ordered_questions(test.id)
        records = await self._answer_map(attempt.id)
        score = score_answers(
            questions,
            {qid: record.selected_answer for qid, record in records.items()},
            test.total_marks,
        )

        await self.db.execute(
            update(TestAttempt)
            .where(TestAttempt.id == attempt.id)
            .values(
                total_score=score.total_score,
                percentage=score.percentage,
            )
            .execution_options(synchronize_session=False)
        )

        for outcome in score.questions:
            record = records.get(outcome.question_id)
            if record is None:
                continue
            record.is_correct = outcome.is_correct
            record.marks_awarded = outcome.marks_awarded

        await self.db.commit()
        await self.db.refresh(attempt)

        logger.info(
            f"Attempt {attempt.id} submitted: score={score.total_score} "
            f"(raw {score.raw_score}) percentage={score.percentage} "
            f"correct={score.correct_count} incorrect={score.incorrect_count} "
            f"blank={score.unanswered_count}"
        )
        return SubmissionResult.from_attempt(attempt, already_submitted=False)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @_store_errors
    async def get_attempt_detail(
        self,
        attempt_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
    ) -> AttemptDetail:
        attempt = await self._get_attempt(attempt_id, user_id)
        test = attempt.test
        questions = await self.catalog.get_ordered_questions(test.id)
        records = await self._answer_map(attempt.id)

        remaining = 0 if attempt.is_completed else self.remaining_time(attempt, test)
        navigator = navigator_counts(
            [q.id for q in questions],
            {qid: (r.selected_answer, r.attempt_status) for qid, r in records.items()},
        )
        return AttemptDetail(
            attempt=attempt,
            test=test,
            remaining_seconds=remaining,
            navigator=navigator,
        )

    @_store_errors
    async def list_attempts(self, user_id: uuid.UUID) -> list[TestAttempt]:
        """A user's attempts, most recently started first."""
        result = await self.db.execute(
            select(TestAttempt)
            .where(TestAttempt.user_id == user_id)
            .order_by(TestAttempt.started_at.desc())
        )
        return list(result.scalars().all())

    @_store_errors
    async def review(
        self,
        attempt_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
    ) -> tuple[TestAttempt, list[ReviewItem]]:
        """
        Per-question breakdown of a completed attempt.

        Raises:
            AnswerValidationError: If the attempt is still in progress, so
                the answer key is never exposed during a live attempt
        """
        attempt = await self._get_attempt(attempt_id, user_id)
        if not attempt.is_completed:
            raise AnswerValidationError("Attempt is still in progress")

        questions = await self.catalog.get_ordered_questions(attempt.test_id)
        records = await self._answer_map(attempt.id)
        items = [
            ReviewItem(order=index, question=question, record=records.get(question.id))
            for index, question in enumerate(questions, 1)
        ]
        return attempt, items
