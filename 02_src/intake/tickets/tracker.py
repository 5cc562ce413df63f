"""Ticket tracker collaborators: where submitted requests become work items."""

from typing import Any, Protocol

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import TicketError
from ..logging_config import get_logger
from ..models import Classification, TicketRef

logger = get_logger(__name__)


class ITicketTracker(Protocol):
    """External work tracker."""

    async def create_ticket(
        self,
        title: str,
        fields: dict[str, Any],
        classification: Classification,
        requester: str,
        thread_id: str,
        idempotency_key: str | None = None,
    ) -> TicketRef:
        """Create a ticket for a submitted request."""
        ...

    async def update_ticket_status(self, ticket_id: str, status: str) -> None:
        """Move a ticket to another status column."""
        ...

    async def append_ticket_note(self, ticket_id: str, note: str) -> None:
        """Add an update/comment to a ticket."""
        ...


class HttpTicketTracker:
    """REST ticket tracker client.

    Transport errors are retried with exponential backoff; HTTP error
    responses are raised as TicketError without retry.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        path: str,
        json: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        response = await self._client.request(method, path, json=json, headers=headers)
        if response.is_error:
            raise TicketError(
                f"Ticket API {method} {path} failed: {response.status_code} {response.text[:200]}"
            )
        return response

    async def create_ticket(
        self,
        title: str,
        fields: dict[str, Any],
        classification: Classification,
        requester: str,
        thread_id: str,
        idempotency_key: str | None = None,
    ) -> TicketRef:
        """Create a ticket for a submitted request."""
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        response = await self._request(
            "POST",
            "/tickets",
            json={
                "title": title,
                "fields": fields,
                "classification": classification.value,
                "requester": requester,
                "thread_id": thread_id,
            },
            headers=headers,
        )
        data = response.json()
        ref = TicketRef(ticket_id=str(data["id"]), url=data.get("url"))
        logger.info("Created ticket %s for thread %s", ref.ticket_id, thread_id)
        return ref

    async def update_ticket_status(self, ticket_id: str, status: str) -> None:
        """Move a ticket to another status column."""
        await self._request("PATCH", f"/tickets/{ticket_id}", json={"status": status})

    async def append_ticket_note(self, ticket_id: str, note: str) -> None:
        """Add an update/comment to a ticket."""
        await self._request("POST", f"/tickets/{ticket_id}/notes", json={"body": note})


class InMemoryTicketTracker:
    """Tracker that keeps tickets in memory (local runs and tests)."""

    def __init__(self):
        self.tickets: dict[str, dict[str, Any]] = {}
        self._by_key: dict[str, str] = {}

    async def create_ticket(
        self,
        title: str,
        fields: dict[str, Any],
        classification: Classification,
        requester: str,
        thread_id: str,
        idempotency_key: str | None = None,
    ) -> TicketRef:
        if idempotency_key and idempotency_key in self._by_key:
            ticket_id = self._by_key[idempotency_key]
            return TicketRef(ticket_id=ticket_id, url=self.tickets[ticket_id]["url"])

        ticket_id = f"T-{len(self.tickets) + 1}"
        self.tickets[ticket_id] = {
            "title": title,
            "fields": dict(fields),
            "classification": classification.value,
            "requester": requester,
            "thread_id": thread_id,
            "status": "New",
            "notes": [],
            "url": f"memory://tickets/{ticket_id}",
        }
        if idempotency_key:
            self._by_key[idempotency_key] = ticket_id
        return TicketRef(ticket_id=ticket_id, url=self.tickets[ticket_id]["url"])

    async def update_ticket_status(self, ticket_id: str, status: str) -> None:
        if ticket_id not in self.tickets:
            raise TicketError(f"Unknown ticket {ticket_id}")
        self.tickets[ticket_id]["status"] = status

    async def append_ticket_note(self, ticket_id: str, note: str) -> None:
        if ticket_id not in self.tickets:
            raise TicketError(f"Unknown ticket {ticket_id}")
        self.tickets[ticket_id]["notes"].append(note)

    def clear(self) -> None:
        self.tickets.clear()
        self._by_key.clear()
