"""Draft sub-flow: collect links to content the requester already has."""

import re
from typing import TYPE_CHECKING

from ..commands import CommandIntent, matches
from ..logging_config import get_logger, session_context
from ..models import ExistingAsset, Session
from ..models.side_channel import DRAFT_LINK_KEY, DRAFT_LINK_LATER
from ..models.steps import (
    DRAFT_AWAITING_EXPECTED_DATE,
    DRAFT_AWAITING_LINK,
    DRAFT_AWAITING_MORE,
    DRAFT_AWAITING_READINESS,
)
from . import prompts

if TYPE_CHECKING:
    from .machine import SessionStateMachine

logger = get_logger(__name__)

_EXISTING_CONTENT = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"existing\s+(content|draft|deck|copy|doc|document|slides?|one[- ]?pager|asset)",
        r"already\s+(have|started|wrote|created|drafted|built)",
        r"draft\s+(is|that|we|i)\b",
        r"have\s+a\s+(draft|deck|doc|document|version|start)",
        r"started\s+(on|writing|creating|drafting|working)",
        r"rough\s+(draft|version|copy|outline)",
        r"needs?\s+(refreshing|updating|refresh|update|polish)",
        r"work[- ]?in[- ]?progress",
        r"\bwip\b",
    )
)

_READY = re.compile(r"^(ready|done|finished|good\s*to\s*go|yes|yep|it['’]?s\s*ready)", re.IGNORECASE)
_IN_PROGRESS = re.compile(
    r"^(in\s*progress|not\s*(yet|ready|done)|still\s*(working|in\s*progress|drafting)|wip"
    r"|needs?\s*(work|more))",
    re.IGNORECASE,
)
_NO_MORE = re.compile(r"^(no|nope|that['’]?s\s*(it|all)|nothing)\b", re.IGNORECASE)
_SLACK_LINK = re.compile(r"<(https?://[^|>]+)")
_BARE_LINK = re.compile(r"(https?://\S+)")


def mentions_existing_content(text: str) -> bool:
    """True when the requester says they already have a draft or asset."""
    return any(p.search(text) for p in _EXISTING_CONTENT)


def extract_link(text: str) -> str | None:
    match = _SLACK_LINK.search(text) or _BARE_LINK.search(text)
    return match.group(1) if match else None


class DraftFlow:
    """
    awaiting_link -> awaiting_readiness -> [awaiting_expected_date] ->
    awaiting_more -> (another link | finish)

    Entering stashes the current step; finishing restores it and hands
    control back to the state machine.
    """

    def __init__(self, machine: "SessionStateMachine"):
        self._machine = machine

    async def start(self, session: Session) -> None:
        channel = session.side_channel
        channel.draft_asked = True
        channel.pre_subflow_step = session.current_step or ""
        session.current_step = DRAFT_AWAITING_LINK
        await self._machine.save(session)
        logger.info("Entered draft sub-flow", extra={"context": session_context(session)})
        await self._machine.say(session, prompts.DRAFT_ASK_LINK)

    async def reprompt(self, session: Session) -> None:
        text = {
            DRAFT_AWAITING_LINK: prompts.DRAFT_ASK_LINK,
            DRAFT_AWAITING_READINESS: prompts.DRAFT_ASK_READINESS,
            DRAFT_AWAITING_EXPECTED_DATE: prompts.DRAFT_ASK_EXPECTED_DATE,
            DRAFT_AWAITING_MORE: prompts.DRAFT_ASK_MORE,
        }.get(session.current_step)
        if text is None:
            await self.finish(session)
        else:
            await self._machine.say(session, text)

    async def handle(self, session: Session, text: str) -> None:
        if matches(text, CommandIntent.CANCEL):
            await self._machine.cancel(session)
            return

        step = session.current_step
        if step == DRAFT_AWAITING_LINK:
            await self._on_link(session, text)
        elif step == DRAFT_AWAITING_READINESS:
            await self._on_readiness(session, text)
        elif step == DRAFT_AWAITING_EXPECTED_DATE:
            await self._on_expected_date(session, text)
        elif step == DRAFT_AWAITING_MORE:
            await self._on_more(session, text)
        else:
            await self.finish(session)

    async def _on_link(self, session: Session, text: str) -> None:
        if matches(text, CommandIntent.SKIP) or matches(text, CommandIntent.DONE):
            if not session.side_channel.existing_assets:
                session.side_channel.set_extra(DRAFT_LINK_KEY, DRAFT_LINK_LATER)
            await self.finish(session)
            return
        await self._take_link(session, text)

    async def _take_link(self, session: Session, text: str) -> None:
        session.side_channel.current_draft_link = extract_link(text) or text.strip()
        session.current_step = DRAFT_AWAITING_READINESS
        await self._machine.save(session)
        await self._machine.say(session, prompts.DRAFT_ASK_READINESS)

    async def _on_readiness(self, session: Session, text: str) -> None:
        answer = text.strip()
        if _READY.search(answer):
            await self._add_asset(session, "Ready")
        elif _IN_PROGRESS.search(answer) or matches(answer, CommandIntent.SKIP):
            session.current_step = DRAFT_AWAITING_EXPECTED_DATE
            await self._machine.save(session)
            await self._machine.say(session, prompts.DRAFT_ASK_EXPECTED_DATE)
        else:
            await self._machine.say(session, prompts.DRAFT_REASK_READINESS)

    async def _on_expected_date(self, session: Session, text: str) -> None:
        if matches(text, CommandIntent.SKIP) or matches(text, CommandIntent.IDK):
            expected = "TBD"
        else:
            expected = text.strip()
        await self._add_asset(session, f"In progress, expected {expected}")

    async def _add_asset(self, session: Session, status: str) -> None:
        channel = session.side_channel
        channel.existing_assets.append(
            ExistingAsset(link=channel.current_draft_link or "", status=status)
        )
        channel.current_draft_link = None
        session.current_step = DRAFT_AWAITING_MORE
        await self._machine.save(session)
        await self._machine.say(session, prompts.DRAFT_ASK_MORE)

    async def _on_more(self, session: Session, text: str) -> None:
        answer = text.strip()
        if (
            matches(answer, CommandIntent.DONE)
            or matches(answer, CommandIntent.SKIP)
            or _NO_MORE.search(answer)
        ):
            await self.finish(session)
            return
        await self._take_link(session, answer)

    async def finish(self, session: Session) -> None:
        """Restore the stashed step and resume the outer flow."""
        channel = session.side_channel
        channel.current_draft_link = None
        session.current_step = channel.pre_subflow_step or None
        channel.pre_subflow_step = None
        logger.info(
            "Left draft sub-flow with %d asset(s)",
            len(channel.existing_assets),
            extra={"context": session_context(session)},
        )
        await self._machine.resume(session)
