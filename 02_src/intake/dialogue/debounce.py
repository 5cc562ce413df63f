"""Debounce coordinator: collapse a burst of messages into the latest one."""

import asyncio
from typing import Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


def debounce_key(thread_id: str, user_id: str) -> str:
    return f"{thread_id}:{user_id}"


class IDebounceCoordinator(Protocol):
    """Per-key quiet-period wait."""

    async def schedule(self, key: str, delay: float) -> bool:
        """Wait ``delay`` seconds. True if no newer call for ``key`` arrived."""
        ...


class DebounceCoordinator:
    """
    Process-local debounce keyed by (thread, user).

    Every call to ``schedule`` supersedes the pending waiter of the same key,
    which then resolves to False. Only a waiter that survives its whole delay
    resolves to True.

    The timers live in this process only. When deliveries of one burst land on
    different processes each process may let one message through; the session
    version check in the store rejects the stale write of the loser.
    """

    def __init__(self):
        self._waiters: dict[str, asyncio.Future] = {}

    async def schedule(self, key: str, delay: float) -> bool:
        """Wait ``delay`` seconds. True if no newer call for ``key`` arrived."""
        previous = self._waiters.pop(key, None)
        if previous is not None and not previous.done():
            previous.set_result(False)

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future = loop.create_future()
        self._waiters[key] = waiter
        handle = loop.call_later(max(delay, 0.0), self._fire, waiter)

        try:
            winner = await waiter
        finally:
            handle.cancel()
            if self._waiters.get(key) is waiter:
                del self._waiters[key]

        if not winner:
            logger.debug("Message superseded within debounce window for %s", key)
        return winner

    @staticmethod
    def _fire(waiter: asyncio.Future) -> None:
        if not waiter.done():
            waiter.set_result(True)

    def pending_keys(self) -> list[str]:
        return list(self._waiters)

    def cancel_all(self) -> None:
        """Resolve every pending waiter as superseded (shutdown)."""
        for waiter in self._waiters.values():
            if not waiter.done():
                waiter.set_result(False)
        self._waiters.clear()
