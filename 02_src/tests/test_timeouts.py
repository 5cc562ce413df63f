"""Tests for TimeoutSweeper."""

from datetime import datetime, timedelta, timezone

import pytest

from intake.dialogue import TimeoutSweeper, prompts
from intake.dialogue.timeouts import AUTO_CANCELLED
from intake.models import SessionStatus
from intake.models.steps import dup_check_step


@pytest.fixture
def sweeper(machine):
    return TimeoutSweeper(machine, idle_hours=24)


def later(hours):
    return datetime.now(timezone.utc) + timedelta(hours=hours)


class TestTimeoutSweeper:
    """Tests for TimeoutSweeper."""

    async def test_recent_session_untouched(self, sweeper, store, make_session):
        """Test that a fresh session is neither reminded nor cancelled."""
        await store.create_session(make_session())

        result = await sweeper.sweep()

        assert result.reminded == []
        assert result.cancelled == []

    async def test_remind_then_cancel(self, sweeper, store, transport, make_session):
        """Test one reminder after the idle period and cancellation after another."""
        session = await store.create_session(make_session(current_step="due_date"))

        result = await sweeper.sweep(later(25))
        assert result.reminded == [session.id]
        loaded = await store.get_session_by_id(session.id)
        assert loaded.timeout_notified
        assert loaded.version == session.version
        assert transport.bot_messages("T1")[-1] == prompts.idle_reminder(loaded)

        result = await sweeper.sweep(later(30))
        assert result.reminded == []
        assert result.cancelled == []

        result = await sweeper.sweep(later(50))
        assert result.cancelled == [session.id]
        assert (await store.get_session_by_id(session.id)).status == SessionStatus.CANCELLED
        assert transport.bot_messages("T1")[-1] == AUTO_CANCELLED

    async def test_dup_check_placeholder_cancelled_silently(
        self, sweeper, store, transport, make_session
    ):
        """Test that an unanswered duplicate check is closed without a reminder."""
        session = await store.create_session(make_session(current_step=dup_check_step(99)))

        result = await sweeper.sweep(later(25))

        assert result.cancelled == [session.id]
        assert result.reminded == []
        assert transport.bot_messages("T1") == []

    async def test_pending_sessions_ignored(self, sweeper, store, make_session):
        """Test that submitted requests never time out."""
        await store.create_session(make_session(status=SessionStatus.PENDING_APPROVAL))

        result = await sweeper.sweep(later(100))

        assert result.reminded == []
        assert result.cancelled == []

    async def test_confirming_sessions_swept(self, sweeper, store, make_session):
        """Test that sessions waiting for confirmation are reminded too."""
        session = await store.create_session(make_session(status=SessionStatus.CONFIRMING))

        result = await sweeper.sweep(later(25))

        assert result.reminded == [session.id]

    async def test_zero_interval_does_not_start(self, sweeper):
        """Test that a zero interval disables the background loop."""
        await sweeper.start(0)
        assert sweeper._task is None
        await sweeper.stop()

    async def test_start_stop(self, sweeper):
        """Test starting and stopping the background loop."""
        await sweeper.start(3600)
        assert sweeper._task is not None

        await sweeper.stop()
        assert sweeper._task is None
