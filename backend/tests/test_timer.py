"""
Mock Test Platform - Attempt Timer Tests
"""
from datetime import timedelta

import pytest

from testprep.models.attempt import AnswerStatus
from testprep.services.attempt import AttemptService, StoreError
from testprep.services.timer import AttemptTimer


def clock_sleep(clock):
    """A sleep that advances the frozen clock instead of waiting."""
    async def sleep(seconds: float) -> None:
        clock.advance(seconds=seconds)
    return sleep


@pytest.mark.asyncio
async def test_callback_fires_once_at_expiry(clock):
    start = clock.now
    calls = []

    async def on_expire():
        calls.append(clock.now)
        return "submitted"

    timer = AttemptTimer(
        started_at=start,
        duration_minutes=10,
        on_expire=on_expire,
        clock=clock,
        tick_seconds=1,
        sleep=clock_sleep(clock),
    )

    result = await timer.run()

    assert result == "submitted"
    assert calls == [start + timedelta(minutes=10)]
    assert timer.fired is True

    # Further ticks never fire again
    clock.advance(minutes=5)
    assert await timer.tick() is False
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_tick_before_expiry_does_nothing(clock):
    calls = []

    async def on_expire():
        calls.append(True)

    timer = AttemptTimer(clock.now, 10, on_expire, clock, tick_seconds=1)

    clock.advance(minutes=9, seconds=59)
    assert timer.remaining() == 1
    assert await timer.tick() is False

    clock.advance(seconds=1)
    assert timer.remaining() == 0
    assert await timer.tick() is True
    assert calls == [True]


@pytest.mark.asyncio
async def test_stopped_timer_never_fires(clock):
    calls = []

    async def on_expire():
        calls.append(True)

    timer = AttemptTimer(clock.now, 1, on_expire, clock, tick_seconds=1)
    timer.stop()

    clock.advance(minutes=2)
    assert await timer.run() is None
    assert timer.stopped is True
    assert calls == []


@pytest.mark.asyncio
async def test_timer_submits_attempt(db_session, clock, user_id, three_question_test):
    test, questions = three_question_test
    service = AttemptService(db_session, clock=clock)
    attempt = await service.start_attempt(user_id, test.id)
    await service.record_answer(attempt.id, user_id, questions[0].id, "A", AnswerStatus.ANSWERED)
    detail = await service.get_attempt_detail(attempt.id, user_id)

    timer = AttemptTimer.for_attempt(
        service, detail.attempt, user_id, tick_seconds=1, sleep=clock_sleep(clock)
    )
    result = await timer.run()

    assert result.already_submitted is False
    assert result.duration_taken == 10
    assert result.total_score == 2
    assert result.percentage == 40

    detail = await service.get_attempt_detail(attempt.id, user_id)
    assert detail.attempt.is_completed is True
    assert detail.remaining_seconds == 0


@pytest.mark.asyncio
async def test_manual_submit_racing_timer(db_session, clock, user_id, three_question_test):
    test, questions = three_question_test
    service = AttemptService(db_session, clock=clock)
    attempt = await service.start_attempt(user_id, test.id)
    await service.record_answer(attempt.id, user_id, questions[1].id, "B", AnswerStatus.ANSWERED)
    detail = await service.get_attempt_detail(attempt.id, user_id)
    timer = AttemptTimer.for_attempt(service, detail.attempt, user_id, tick_seconds=1)

    # The user presses submit in the same second the countdown hits zero
    clock.advance(minutes=10)
    manual = await service.submit_attempt(attempt.id, user_id)
    assert await timer.tick() is True
    automatic = timer.result

    assert [manual.already_submitted, automatic.already_submitted] == [False, True]
    assert automatic.total_score == manual.total_score
    assert automatic.submitted_at == manual.submitted_at


@pytest.mark.asyncio
async def test_failed_expiry_is_retried(clock):
    calls = []

    async def on_expire():
        calls.append(clock.now)
        if len(calls) == 1:
            raise StoreError("Storage is temporarily unavailable, please retry")
        return "submitted"

    timer = AttemptTimer(clock.now, 1, on_expire, clock, tick_seconds=1)
    clock.advance(minutes=1)

    with pytest.raises(StoreError):
        await timer.tick()
    assert timer.fired is False

    assert await timer.tick() is True
    assert timer.result == "submitted"
    assert len(calls) == 2
    assert await timer.tick() is False
