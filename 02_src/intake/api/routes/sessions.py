"""Session API routes: inspection, post-submission actions and review."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...dialogue import PostSubmissionAction, ReviewDecision
from ...models import Session


class SessionResponse(BaseModel):
    """Persisted state of one session."""

    id: int
    user_id: str
    thread_id: str
    channel_id: str
    status: str
    current_step: str | None
    classification: str
    fields: dict[str, Any]
    side_channel: dict[str, str]
    request_types: list[str]
    follow_up_questions: list[dict[str, str]]
    follow_up_index: int | None
    external_item_id: str | None
    external_item_url: str | None
    version: int
    created_at: datetime | None
    updated_at: datetime | None


class ReviewRequest(BaseModel):
    """Reviewer decision."""

    decision: ReviewDecision


def session_payload(session: Session) -> dict[str, Any]:
    return {
        "id": session.id,
        "user_id": session.user_id,
        "thread_id": session.thread_id,
        "channel_id": session.channel_id,
        "status": session.status.value,
        "current_step": session.current_step,
        "classification": session.classification.value,
        "fields": dict(session.fields),
        "side_channel": session.side_channel.to_dict(),
        "request_types": list(session.request_types),
        "follow_up_questions": [
            {"field_key": q.field_key, "question": q.question}
            for q in session.follow_up_questions
        ],
        "follow_up_index": session.follow_up_index,
        "external_item_id": session.external_item_id,
        "external_item_url": session.external_item_url,
        "version": session.version,
        "created_at": session.created_at,
        "updated_at": session.updated_at,
    }


def create_sessions_router(app: Application) -> APIRouter:
    """Create sessions router."""
    router = APIRouter(prefix="/api/sessions", tags=["sessions"])

    @router.get("/{session_id}", response_model=SessionResponse)
    async def get_session(session_id: int) -> dict:
        """Get a session by id."""
        session = await app.store.get_session_by_id(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session_payload(session)

    @router.post("/{session_id}/actions/{action}", response_model=SessionResponse)
    async def select_action(session_id: int, action: PostSubmissionAction) -> dict:
        """Start a post-submission action (add info, change, withdraw)."""
        try:
            session = await app.machine.select_post_submission_action(session_id, action)
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e))
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session_payload(session)

    @router.post("/{session_id}/review", response_model=SessionResponse)
    async def review(session_id: int, request: ReviewRequest) -> dict:
        """Approve or decline a pending request."""
        session = await app.machine.apply_review_decision(session_id, request.decision)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session_payload(session)

    return router
