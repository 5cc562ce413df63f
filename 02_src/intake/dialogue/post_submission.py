"""Post-submission sub-flow: add information, change scope, or withdraw."""

import re
from enum import Enum
from typing import TYPE_CHECKING

from ..commands import CommandIntent, matches
from ..logging_config import get_logger, session_context
from ..models import Session, SessionStatus
from ..models.steps import (
    POST_SUB_AWAITING_CHANGE,
    POST_SUB_AWAITING_INFO,
    POST_SUB_AWAITING_WITHDRAW_CONFIRM,
)
from . import prompts

if TYPE_CHECKING:
    from .machine import SessionStateMachine

logger = get_logger(__name__)


class PostSubmissionAction(str, Enum):
    ADDITIONAL_INFO = "additional_info"
    CHANGE = "change"
    WITHDRAW = "withdraw"


_ACTION_PATTERNS = (
    (
        PostSubmissionAction.ADDITIONAL_INFO,
        re.compile(
            r"^(add(\s*(more|additional))?\s*info(rmation)?|additional(\s*info(rmation)?)?"
            r"|more\s*info(rmation)?)$",
            re.IGNORECASE,
        ),
    ),
    (
        PostSubmissionAction.CHANGE,
        re.compile(
            r"^(change(\s*(to\s*)?(the\s*)?request)?|scope\s*change|change\s*scope)$",
            re.IGNORECASE,
        ),
    ),
    (
        PostSubmissionAction.WITHDRAW,
        re.compile(r"^withdraw(\s*(the|my)?\s*request)?$", re.IGNORECASE),
    ),
)

_STEP_FOR_ACTION = {
    PostSubmissionAction.ADDITIONAL_INFO: (POST_SUB_AWAITING_INFO, prompts.POST_SUB_INFO_PROMPT),
    PostSubmissionAction.CHANGE: (POST_SUB_AWAITING_CHANGE, prompts.POST_SUB_CHANGE_PROMPT),
    PostSubmissionAction.WITHDRAW: (
        POST_SUB_AWAITING_WITHDRAW_CONFIRM,
        prompts.POST_SUB_WITHDRAW_PROMPT,
    ),
}


def match_action(text: str) -> PostSubmissionAction | None:
    cleaned = text.strip().rstrip(".!").strip()
    for action, pattern in _ACTION_PATTERNS:
        if pattern.match(cleaned):
            return action
    return None


class PostSubmissionFlow:
    """Handles messages on a submitted request."""

    def __init__(self, machine: "SessionStateMachine"):
        self._machine = machine

    async def handle(self, session: Session, text: str) -> None:
        step = session.current_step
        if step == POST_SUB_AWAITING_INFO:
            await self._forward(
                session,
                text,
                reply=prompts.POST_SUB_INFO_DONE,
                note=prompts.NOTE_ADDITIONAL_INFO.format(text=text),
                review_text=f"The requester has added new information:\n> {text}",
            )
        elif step == POST_SUB_AWAITING_CHANGE:
            note = prompts.NOTE_SCOPE_CHANGE.format(text=text)
            await self._forward(
                session,
                text,
                reply=prompts.POST_SUB_CHANGE_DONE,
                note=note,
                review_text=f"[Scope Change] from requester:\n> {text}",
            )
        elif step == POST_SUB_AWAITING_WITHDRAW_CONFIRM:
            if matches(text, CommandIntent.CONFIRM):
                await self._withdraw(session)
            else:
                session.current_step = None
                await self._machine.save(session)
                await self._machine.say(session, prompts.POST_SUB_WITHDRAW_CANCELLED)
        else:
            action = match_action(text)
            if action is None:
                await self._machine.say(session, prompts.POST_SUB_MENU)
            else:
                await self.select(session, action)

    async def select(self, session: Session, action: PostSubmissionAction) -> None:
        step, prompt = _STEP_FOR_ACTION[action]
        session.current_step = step
        await self._machine.save(session)
        await self._machine.say(session, prompt)

    async def _forward(
        self, session: Session, text: str, reply: str, note: str, review_text: str
    ) -> None:
        session.current_step = None
        await self._machine.save(session)
        await self._machine.say(session, reply)
        await self._machine.notify_review_thread(session, review_text)
        await self._add_note(session, note)

    async def _withdraw(self, session: Session) -> None:
        session.status = SessionStatus.WITHDRAWN
        session.current_step = None
        await self._machine.save(session)
        logger.info("Request withdrawn", extra={"context": session_context(session)})
        await self._machine.say(session, prompts.POST_SUB_WITHDRAWN)

        if session.external_item_id:
            try:
                await self._machine.tickets.update_ticket_status(
                    session.external_item_id, "Withdrawn"
                )
            except Exception as e:
                logger.error("Failed to mark ticket withdrawn: %s", e, exc_info=True)
        await self._add_note(session, prompts.NOTE_WITHDRAWN)
        await self._machine.notify_review_thread(session, prompts.NOTE_WITHDRAWN)

    async def _add_note(self, session: Session, note: str) -> None:
        if not session.external_item_id:
            return
        try:
            await self._machine.tickets.append_ticket_note(session.external_item_id, note)
        except Exception as e:
            logger.error("Failed to add ticket note: %s", e, exc_info=True)
