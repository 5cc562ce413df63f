"""Messaging API routes."""

import uuid

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...models import InboundMessage
from ...transport import InMemoryTransport


class MessageRequest(BaseModel):
    """Inbound chat message. A message without thread_id starts a thread."""

    message_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    thread_id: str | None = None
    channel_id: str = ""
    text: str


class MessageResponse(BaseModel):
    """Whether the message was processed and what the service replied."""

    processed: bool
    thread_id: str
    replies: list[str]


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/messages", response_model=MessageResponse)
    async def post_message(request: MessageRequest) -> dict:
        """Deliver a message to the intake pipeline."""
        inbound = InboundMessage(
            message_id=request.message_id,
            user_id=request.user_id,
            thread_id=request.thread_id or request.message_id,
            text=request.text,
            channel_id=request.channel_id,
        )

        try:
            transport = app.transport
            seen = 0
            if isinstance(transport, InMemoryTransport):
                transport.record_inbound(inbound)
                seen = transport.message_count(inbound.thread_id)

            processed = await app.router.handle(inbound)

            replies: list[str] = []
            if isinstance(transport, InMemoryTransport):
                replies = [
                    m.text
                    for m in transport.messages_since(inbound.thread_id, seen)
                    if m.is_system_author
                ]
            return {"processed": processed, "thread_id": inbound.thread_id, "replies": replies}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
