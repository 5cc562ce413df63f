"""Idle-session sweep: remind once, then cancel."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from ..logging_config import get_logger, session_context
from ..models.steps import is_dup_check_step
from . import prompts

if TYPE_CHECKING:
    from .machine import SessionStateMachine

logger = get_logger(__name__)

AUTO_CANCELLED = (
    "I've closed this request since we haven't heard back. Start a new thread "
    "whenever you're ready to pick it up again."
)


@dataclass
class SweepResult:
    reminded: list[int] = field(default_factory=list)
    cancelled: list[int] = field(default_factory=list)


class TimeoutSweeper:
    """Finds gathering/confirming sessions nobody has touched for a while."""

    def __init__(self, machine: "SessionStateMachine", idle_hours: float = 24.0):
        self._machine = machine
        self._idle = timedelta(hours=idle_hours)
        self._task: asyncio.Task | None = None
        self._running = False

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        now = now or datetime.now(timezone.utc)
        cutoff = now - self._idle
        store = self._machine.store
        result = SweepResult()

        # Already reminded and still idle
        for session in await store.list_idle_sessions(cutoff, notified=True):
            if await store.cancel_session(session.id):
                result.cancelled.append(session.id)
                await self._machine.say(session, AUTO_CANCELLED)

        for session in await store.list_idle_sessions(cutoff, notified=False):
            if is_dup_check_step(session.current_step):
                if await store.cancel_session(session.id):
                    result.cancelled.append(session.id)
                continue
            await self._machine.say(session, prompts.idle_reminder(session))
            await store.mark_timeout_notified(session.id, now)
            result.reminded.append(session.id)
            logger.info("Sent idle reminder", extra={"context": session_context(session)})

        if result.reminded or result.cancelled:
            logger.info(
                "Idle sweep: %d reminded, %d cancelled",
                len(result.reminded),
                len(result.cancelled),
            )
        return result

    async def start(self, interval_seconds: float) -> None:
        """Run sweeps in the background every ``interval_seconds``."""
        if self._running or interval_seconds <= 0:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(interval_seconds))

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self, interval_seconds: float) -> None:
        while self._running:
            try:
                await asyncio.sleep(interval_seconds)
                await self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Idle sweep error: {e}", exc_info=True)
