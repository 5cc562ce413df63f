"""Tests for DebounceCoordinator."""

import asyncio

from intake.dialogue import DebounceCoordinator, debounce_key


class TestDebounceCoordinator:
    """Tests for latest-wins debouncing."""

    async def test_single_message_processes(self, debounce):
        """Test that a lone message survives its delay."""
        assert await debounce.schedule("k", 0.01) is True

    async def test_burst_processes_only_last(self, debounce):
        """Test that only the last message of a burst is processed."""
        tasks = []
        for _ in range(5):
            tasks.append(asyncio.create_task(debounce.schedule("k", 0.05)))
            await asyncio.sleep(0)

        results = await asyncio.gather(*tasks)

        assert results == [False, False, False, False, True]

    async def test_keys_are_independent(self, debounce):
        """Test that different (thread, user) keys don't cancel each other."""
        a = asyncio.create_task(debounce.schedule(debounce_key("T1", "U1"), 0.02))
        await asyncio.sleep(0)
        b = asyncio.create_task(debounce.schedule(debounce_key("T1", "U2"), 0.02))

        assert await asyncio.gather(a, b) == [True, True]

    async def test_waiter_cleared_after_firing(self, debounce):
        """Test that nothing is left pending after a waiter resolves."""
        await debounce.schedule("k", 0)
        assert debounce.pending_keys() == []

    async def test_cancel_all_supersedes_pending(self):
        """Test that shutdown resolves pending waiters as superseded."""
        coordinator = DebounceCoordinator()
        task = asyncio.create_task(coordinator.schedule("k", 10))
        await asyncio.sleep(0)

        coordinator.cancel_all()

        assert await task is False

    def test_key_combines_thread_and_user(self):
        """Test that the key distinguishes users within a thread."""
        assert debounce_key("T1", "U1") != debounce_key("T1", "U2")
        assert debounce_key("T1", "U1") == debounce_key("T1", "U1")
