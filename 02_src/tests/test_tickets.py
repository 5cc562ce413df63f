"""Tests for the ticket tracker clients."""

import json

import httpx
import pytest

from intake.errors import TicketError
from intake.models import Classification
from intake.tickets import HttpTicketTracker, InMemoryTicketTracker

TICKET = {
    "title": "Email sequence (Marketing)",
    "fields": {"target": "Enterprise admins"},
    "classification": Classification.QUICK,
    "requester": "Dana Smith",
    "thread_id": "T1",
}


def tracker_with(handler):
    return HttpTicketTracker(
        "https://tracker.test/api",
        token="secret",
        transport=httpx.MockTransport(handler),
    )


class TestHttpTicketTracker:
    """Tests for HttpTicketTracker."""

    async def test_create_ticket(self):
        """Test the request sent and the reference returned."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={"id": 42, "url": "https://tracker.test/t/42"})

        tracker = tracker_with(handler)
        ref = await tracker.create_ticket(**TICKET, idempotency_key="intake-session-7")
        await tracker.close()

        assert ref.ticket_id == "42"
        assert ref.url == "https://tracker.test/t/42"
        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/tickets"
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["Idempotency-Key"] == "intake-session-7"
        body = json.loads(request.content)
        assert body["classification"] == "quick"
        assert body["thread_id"] == "T1"

    async def test_error_response_not_retried(self):
        """Test that an HTTP error raises TicketError after one attempt."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(422, text="missing title")

        tracker = tracker_with(handler)
        with pytest.raises(TicketError, match="422"):
            await tracker.update_ticket_status("42", "Withdrawn")
        await tracker.close()

        assert len(calls) == 1

    async def test_transport_error_retried(self):
        """Test that a connection failure is retried."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(201, json={})

        tracker = tracker_with(handler)
        await tracker.append_ticket_note("42", "Request withdrawn by requester.")
        await tracker.close()

        assert len(calls) == 2
        assert calls[-1].url.path == "/api/tickets/42/notes"
        assert json.loads(calls[-1].content) == {"body": "Request withdrawn by requester."}


class TestInMemoryTicketTracker:
    """Tests for InMemoryTicketTracker."""

    async def test_idempotency_key_dedups(self):
        """Test that the same key returns the same ticket."""
        tracker = InMemoryTicketTracker()

        first = await tracker.create_ticket(**TICKET, idempotency_key="k1")
        second = await tracker.create_ticket(**TICKET, idempotency_key="k1")
        third = await tracker.create_ticket(**TICKET)

        assert first.ticket_id == second.ticket_id
        assert third.ticket_id != first.ticket_id
        assert len(tracker.tickets) == 2

    async def test_unknown_ticket(self):
        tracker = InMemoryTicketTracker()
        with pytest.raises(TicketError):
            await tracker.append_ticket_note("T-9", "note")
