"""
Mock Test Platform - Attempt Timer
Cooperative countdown that submits an attempt when its time runs out.
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from testprep.core.config import settings
from testprep.services.scoring import remaining_seconds

logger = logging.getLogger(__name__)


class AttemptTimer:
    """
    One-second tick loop for a single open attempt.

    Every tick recomputes the remaining time from the stored start time, so
    the countdown survives reloads. When it reaches zero the expiry callback
    runs exactly once. A manual submit racing the timer is resolved by the
    submit operation itself, which is idempotent.
    """

    def __init__(
        self,
        started_at: datetime,
        duration_minutes: int,
        on_expire: Callable[[], Awaitable[Any]],
        clock: Callable[[], datetime],
        tick_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        label: str = "attempt",
    ):
        self.started_at = started_at
        self.duration_minutes = duration_minutes
        self._on_expire = on_expire
        self._clock = clock
        self._tick_seconds = tick_seconds if tick_seconds is not None else settings.TIMER_TICK_SECONDS
        self._sleep = sleep
        self._label = label
        self._fired = False
        self._stopped = False
        self.result: Any = None

    @classmethod
    def for_attempt(cls, service, attempt, user_id: Optional[uuid.UUID] = None, **kwargs) -> "AttemptTimer":
        """Build a timer whose expiry submits ``attempt`` through ``service``."""
        async def submit():
            return await service.submit_attempt(attempt.id, user_id)

        return cls(
            started_at=attempt.started_at,
            duration_minutes=attempt.test.duration_minutes,
            on_expire=submit,
            clock=service.clock,
            label=str(attempt.id),
            **kwargs,
        )

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def stopped(self) -> bool:
        return self._stopped

    def remaining(self) -> int:
        return remaining_seconds(self.started_at, self.duration_minutes, self._clock())

    def stop(self) -> None:
        """Stop ticking, e.g. after the user submitted manually."""
        self._stopped = True

    async def tick(self) -> bool:
        """
        Run one tick. Returns True only on the tick that fired the callback.

        A failing callback propagates and leaves the timer armed, so the
        next tick retries the submit.
        """
        if self._fired or self._stopped:
            return False
        if self.remaining() > 0:
            return False

        # Set before awaiting so a re-entrant tick cannot fire again
        self._fired = True
        logger.info(f"Timer expired for {self._label}, submitting")
        try:
            self.result = await self._on_expire()
        except Exception:
            # Re-arm so the next tick retries
            self._fired = False
            logger.warning(f"Expiry submit failed for {self._label}, will retry")
            raise
        return True

    async def run(self) -> Any:
        """Tick until expiry or stop; returns the callback result, if any."""
        while not (self._stopped or self._fired):
            if await self.tick():
                break
            await self._sleep(self._tick_seconds)
        return self.result
