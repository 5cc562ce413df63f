"""Tests for the backoff session read."""

from unittest.mock import AsyncMock, Mock

import pytest

from intake.errors import StorageError
from intake.inbound import load_with_backoff


def store_returning(*results):
    store = Mock()
    store.get_session = AsyncMock(side_effect=list(results))
    return store


class TestLoadWithBackoff:
    """Tests for load_with_backoff()."""

    async def test_found_first_time(self):
        store = store_returning("session")

        assert await load_with_backoff(store, "U1", "T1", base_seconds=0, max_seconds=0) == "session"
        assert store.get_session.await_count == 1

    async def test_found_after_retries(self):
        """Test that a session appearing late is still found."""
        store = store_returning(None, None, "session")

        result = await load_with_backoff(
            store, "U1", "T1", attempts=3, base_seconds=0, max_seconds=0
        )

        assert result == "session"
        assert store.get_session.await_count == 3

    async def test_gives_up(self):
        """Test that None is returned once attempts are exhausted."""
        store = store_returning(None, None, None)

        result = await load_with_backoff(
            store, "U1", "T1", attempts=3, base_seconds=0, max_seconds=0
        )

        assert result is None
        assert store.get_session.await_count == 3

    async def test_errors_propagate(self):
        """Test that storage errors are not retried."""
        store = Mock()
        store.get_session = AsyncMock(side_effect=StorageError("locked"))

        with pytest.raises(StorageError):
            await load_with_backoff(store, "U1", "T1", base_seconds=0, max_seconds=0)
        assert store.get_session.await_count == 1
