"""Tests for InboundRouter."""

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

from intake.dialogue import DebounceCoordinator, TimeoutSweeper, prompts
from intake.errors import LedgerUnavailableError, StorageError
from intake.inbound import InboundRouter
from intake.models import InboundMessage, SessionStatus

BUNDLE = "Enterprise admins, dashboard launch, adoption, an email sequence and a one-pager by March 1"


def script_bundle(extractor):
    extractor.script(
        BUNDLE,
        target="Enterprise admins",
        context_background="Analytics dashboard launch",
        desired_outcomes="Adoption in the first month",
        deliverables=["Email sequence", "One-pager"],
        due_date="March 1",
    )


class TestInboundRouter:
    """Tests for InboundRouter."""

    async def test_first_message_starts_session(self, send, store, transport):
        """Test that the first message greets and asks the first question."""
        assert await send("hi") is True

        session = await store.get_session("U1", "T1")
        assert session.status == SessionStatus.GATHERING
        assert transport.bot_messages("T1")[0] == prompts.WELCOME

    async def test_thread_root_message(self, send, store):
        """Test that a message starting its own thread is handled."""
        assert await send("hi", thread_id="root-1", message_id="root-1") is True
        assert await store.get_session("U1", "root-1") is not None

    async def test_duplicate_delivery_ignored(self, send, transport):
        """Test that a redelivered message id is processed once."""
        assert await send("hi", message_id="dup") is True
        count = len(transport.bot_messages("T1"))

        assert await send("hi", message_id="dup") is False
        assert len(transport.bot_messages("T1")) == count

    async def test_full_intake_creates_one_ticket(self, send, store, tickets, extractor):
        """Test the whole conversation from greeting to submission."""
        script_bundle(extractor)

        await send("hi")
        await send(BUNDLE)
        assert (await store.get_session("U1", "T1")).status == SessionStatus.CONFIRMING

        await send("yes", message_id="confirm-1")
        await send("yes", message_id="confirm-1")

        session = await store.get_session("U1", "T1")
        assert session.status == SessionStatus.PENDING_APPROVAL
        assert len(tickets.tickets) == 1

    async def test_cancel_then_new_session(self, send, store):
        """Test that a message after cancelling starts a fresh session."""
        await send("hi")
        first = await store.get_session("U1", "T1")
        await send("cancel")

        await send("hi again")

        second = await store.get_session("U1", "T1")
        assert second.id != first.id
        assert second.status == SessionStatus.GATHERING
        assert (await store.get_session_by_id(first.id)).status == SessionStatus.CANCELLED

    async def test_completed_session_starts_new_one(self, send, store, make_session):
        """Test that a completed request without an open action starts over."""
        done = await store.create_session(make_session(status=SessionStatus.COMPLETE))

        await send("I have another request")

        session = await store.get_session("U1", "T1")
        assert session.id != done.id
        assert session.current_step == "target"

    async def test_debounce_burst_processes_last(
        self, guard, store, machine, recovery, settings, transport
    ):
        """Test that only the last of a quick burst goes through."""
        router = InboundRouter(
            guard=guard,
            debounce=DebounceCoordinator(),
            store=store,
            machine=machine,
            recovery=recovery,
            settings=replace(settings, debounce_seconds=0.2),
        )
        messages = [InboundMessage(f"b{n}", "U1", "T1", f"part {n}") for n in range(3)]
        for message in messages:
            transport.record_inbound(message)

        results = await asyncio.gather(*(router.handle(m) for m in messages))

        assert sorted(results) == [False, False, True]
        assert transport.bot_messages("T1")[0] == prompts.WELCOME

    async def test_ledger_unavailable_drops_message(
        self, store, machine, recovery, settings, debounce, transport
    ):
        """Test that the message is dropped when the ledger cannot be written."""
        guard = Mock()
        guard.claim = AsyncMock(side_effect=LedgerUnavailableError("disk full"))
        router = InboundRouter(guard, debounce, store, machine, recovery, settings)

        assert await router.handle(InboundMessage("m1", "U1", "T1", "hi")) is False
        assert transport.bot_messages("T1") == []
        assert await store.get_session("U1", "T1") is None

    async def test_failure_sends_apology(self, send, store, transport, settings):
        """Test that an unexpected error is answered with the generic apology."""
        store.get_session = AsyncMock(side_effect=StorageError("database is locked"))

        assert await send("hi") is True

        assert transport.bot_messages("T1") == [
            prompts.generic_apology(settings.fallback_contact, settings.intake_form_url)
        ]

    async def test_returning_user_clears_timeout_flag(self, send, store, machine, transport):
        """Test that replying after a reminder restarts the idle clock."""
        await send("hi")
        sweeper = TimeoutSweeper(machine, idle_hours=24)
        result = await sweeper.sweep(datetime.now(timezone.utc) + timedelta(hours=25))
        assert len(result.reminded) == 1
        assert (await store.get_session("U1", "T1")).timeout_notified

        await send("continue")

        session = await store.get_session("U1", "T1")
        assert not session.timeout_notified
        assert transport.bot_messages("T1")[-1] == prompts.field_question("target")
