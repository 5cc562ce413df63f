"""Tests for IdempotencyGuard."""

from unittest.mock import AsyncMock, Mock

import pytest

from intake.errors import LedgerUnavailableError
from intake.guard import IdempotencyGuard
from intake.storage import SessionStore


class TestIdempotencyGuard:
    """Tests for exactly-once message claims."""

    async def test_claim_true_exactly_once(self, guard):
        """Test that only the first claim of an id succeeds."""
        results = [await guard.claim("evt-1") for _ in range(5)]
        assert results == [True, False, False, False, False]

    async def test_distinct_ids_are_independent(self, guard):
        """Test that different ids are claimed separately."""
        assert await guard.claim("evt-1") is True
        assert await guard.claim("evt-2") is True

    async def test_claim_survives_restart(self, tmp_path):
        """Test that a claim holds across a process restart."""
        db_path = tmp_path / "intake.db"

        first = SessionStore(db_path)
        await first.init()
        assert await IdempotencyGuard(first).claim("evt-1") is True
        await first.close()

        second = SessionStore(db_path)
        await second.init()
        try:
            assert await IdempotencyGuard(second).claim("evt-1") is False
        finally:
            await second.close()

    async def test_two_stores_share_one_ledger(self, tmp_path):
        """Test that two processes on the same database agree on the winner."""
        db_path = tmp_path / "intake.db"
        stores = [SessionStore(db_path), SessionStore(db_path)]
        for st in stores:
            await st.init()
        try:
            results = [await IdempotencyGuard(st).claim("evt-1") for st in stores]
        finally:
            for st in stores:
                await st.close()
        assert sorted(results) == [False, True]

    async def test_ledger_failure_raises(self):
        """Test that the guard fails closed when the ledger errors."""
        store = Mock()
        store.claim_message = AsyncMock(side_effect=LedgerUnavailableError("disk full"))
        guard = IdempotencyGuard(store)

        with pytest.raises(LedgerUnavailableError):
            await guard.claim("evt-1")

    async def test_closed_store_raises_ledger_error(self):
        """Test that an unusable store is reported as an unavailable ledger."""
        guard = IdempotencyGuard(SessionStore(":memory:"))
        with pytest.raises(LedgerUnavailableError):
            await guard.claim("evt-1")

    async def test_purge_expired_keeps_recent_claims(self, guard):
        """Test that purge only drops entries older than the retention window."""
        await guard.claim("evt-1")
        assert await guard.purge_expired() == 0
        assert await guard.claim("evt-1") is False
