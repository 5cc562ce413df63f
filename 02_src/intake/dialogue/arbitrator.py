"""Duplicate-session arbitration: one open request per user at a time."""

from typing import TYPE_CHECKING

from ..commands import DUP_CHECK_ORDER, CommandIntent, classify
from ..logging_config import get_logger, session_context
from ..models import Session, SessionStatus
from ..models.steps import dup_check_step, parse_dup_check
from . import prompts

if TYPE_CHECKING:
    from .machine import SessionStateMachine

logger = get_logger(__name__)


class DuplicateSessionArbitrator:
    """
    Runs when a session is about to be created while the user still has a
    live one elsewhere. A placeholder session holds the choice until the
    user answers.
    """

    def __init__(self, machine: "SessionStateMachine"):
        self._machine = machine

    async def check_before_create(self, session: Session) -> bool:
        """
        Persist ``session`` as a dup-check placeholder if the user has another
        live session. Returns True when the placeholder was created.
        """
        store = self._machine.store
        other = await store.get_active_session_for_user(session.user_id, session.thread_id)
        if other is None:
            return False

        session.current_step = dup_check_step(other.id)
        session.side_channel.dup_existing_channel = other.channel_id
        session.side_channel.dup_existing_thread = other.thread_id
        await store.create_session(session)
        logger.info(
            "User has open session %s elsewhere, asking which to keep",
            other.id,
            extra={"context": session_context(session)},
        )
        await self._machine.say(session, prompts.DUP_CHECK_PROMPT.format(where=self._where(session)))
        return True

    @staticmethod
    def _where(session: Session) -> str:
        thread = session.side_channel.dup_existing_thread
        return f" (thread {thread})" if thread else ""

    async def handle_response(self, session: Session, text: str) -> None:
        other_id = parse_dup_check(session.current_step)
        intent = classify(text, DUP_CHECK_ORDER)

        if intent == CommandIntent.CONTINUE_THERE:
            where = self._where(session)
            session.status = SessionStatus.CANCELLED
            session.current_step = None
            await self._machine.save(session)
            await self._machine.say(session, prompts.DUP_CHECK_CONTINUE_THERE.format(where=where))
            return

        free_text = intent is None and self._machine.is_substantive(text)
        if intent != CommandIntent.START_FRESH and not free_text:
            await self._machine.say(
                session, prompts.DUP_CHECK_PROMPT.format(where=self._where(session))
            )
            return

        if other_id is not None:
            await self._machine.store.cancel_session(other_id)
        session.side_channel.clear_dup_check()
        session.current_step = session.next_missing_field()
        await self._machine.save(session)
        logger.info(
            "Started fresh, closed session %s",
            other_id,
            extra={"context": session_context(session)},
        )

        await self._machine.say(session, prompts.DUP_CHECK_STARTED_FRESH)
        await self._machine.say(session, prompts.WELCOME)
        if free_text:
            await self._machine.handle_gathering(session, text)
        else:
            await self._machine.ask_next(session)
