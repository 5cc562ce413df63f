"""Tests for Application."""

from dataclasses import replace

import pytest

from intake.app import Application
from intake.llm import FieldExtractor
from intake.models import InboundMessage
from intake.tickets import HttpTicketTracker, InMemoryTicketTracker
from intake.transport import InMemoryTransport


@pytest.fixture
def app_settings(settings):
    return replace(settings, sweep_interval_seconds=0)


class TestApplicationStart:
    """Tests for Application.start()."""

    async def test_start_initializes_components(self, app_settings, extractor):
        """Test that start wires every component."""
        app = Application(db_path=":memory:", settings=app_settings, extractor=extractor)
        await app.start()

        assert app.store is not None
        assert app.machine.extractor is extractor
        assert app.machine.settings is app_settings
        assert isinstance(app.transport, InMemoryTransport)
        assert isinstance(app.tickets, InMemoryTicketTracker)
        assert app.router is not None
        await app.stop()

    async def test_default_extractor(self, app_settings, monkeypatch):
        """Test that the LLM-backed extractor is built when none is given."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")
        app = Application(db_path=":memory:", settings=app_settings)
        await app.start()

        assert isinstance(app.machine.extractor, FieldExtractor)
        await app.stop()

    async def test_http_tracker_when_configured(self, app_settings, extractor):
        """Test that a ticket API url selects the HTTP tracker."""
        settings = replace(app_settings, ticket_api_url="https://tracker.test/api")
        app = Application(db_path=":memory:", settings=settings, extractor=extractor)
        await app.start()

        assert isinstance(app.tickets, HttpTicketTracker)
        await app.stop()

    async def test_sweeper_started(self, settings, extractor):
        """Test that a positive interval starts the idle sweep."""
        app = Application(
            db_path=":memory:",
            settings=replace(settings, sweep_interval_seconds=3600),
            extractor=extractor,
        )
        await app.start()
        assert app.sweeper._task is not None

        await app.stop()
        assert app.sweeper._task is None

    async def test_handles_messages(self, app_settings, extractor):
        """Test that a started application processes a message."""
        app = Application(db_path=":memory:", settings=app_settings, extractor=extractor)
        await app.start()

        processed = await app.router.handle(InboundMessage("r1", "U1", "r1", "hi"))

        assert processed is True
        assert await app.store.get_session("U1", "r1") is not None
        await app.stop()


class TestApplicationStop:
    """Tests for Application.stop()."""

    async def test_stop_closes_storage(self, app_settings, extractor):
        """Test that stop closes the store."""
        app = Application(db_path=":memory:", settings=app_settings, extractor=extractor)
        await app.start()
        store = app.store

        await app.stop()

        with pytest.raises(RuntimeError, match="not initialized"):
            await store.get_session_by_id(1)


class TestApplicationReset:
    """Tests for Application.reset()."""

    async def test_reset_clears_data(self, app_settings, extractor):
        """Test that reset clears sessions, messages and tickets."""
        app = Application(db_path=":memory:", settings=app_settings, extractor=extractor)
        await app.start()
        message = InboundMessage("r1", "U1", "r1", "hi")
        app.transport.record_inbound(message)
        await app.router.handle(message)

        await app.reset()

        assert await app.store.get_session("U1", "r1") is None
        assert app.transport.message_count("r1") == 0
        # The ledger is cleared too, so the same delivery is processed again
        assert await app.router.handle(message) is True
        await app.stop()


class TestApplicationProperties:
    """Tests for Application properties."""

    @pytest.mark.parametrize(
        "name", ["store", "machine", "router", "transport", "tickets", "sweeper"]
    )
    def test_property_raises_when_not_started(self, name, app_settings, extractor):
        """Test that components are unavailable before start."""
        app = Application(db_path=":memory:", settings=app_settings, extractor=extractor)

        with pytest.raises(RuntimeError, match="not started"):
            getattr(app, name)

    def test_settings_available_before_start(self, app_settings):
        app = Application(db_path=":memory:", settings=app_settings)
        assert app.settings is app_settings
