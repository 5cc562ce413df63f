"""Recovery engine: rebuild a lost session from the thread history."""

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol

from ..commands import looks_command_like
from ..dialogue import prompts
from ..errors import SessionConflictError
from ..logging_config import get_logger, session_context
from ..models import HistoryMessage, Session

if TYPE_CHECKING:
    from ..dialogue.machine import SessionStateMachine

logger = get_logger(__name__)

_MENTION = re.compile(r"<@[A-Z0-9]+>")


def clean_user_text(text: str) -> str:
    """Strip mention markup and surrounding whitespace."""
    return _MENTION.sub("", text).strip()


class IRecoveryEngine(Protocol):
    """Reconstructs sessions that were lost (restart, deploy, store failure)."""

    async def recover(self, user_id: str, thread_id: str, channel_id: str = "") -> bool:
        """True if a session was rebuilt and the conversation resumed."""
        ...


class RecoveryEngine:
    """
    Recovers a session when the thread shows the service was talking to this
    user but no session is persisted.

    Procedure:
        1. read the thread history and skip threads younger than the
           configured minimum age
        2. require at least one message authored by the service
        3. keep the user's own messages with mention markup stripped,
           dropping command-like ones (cancel, yes, skip, ...)
        4. extract fields once from the concatenated text
        5. create a session with the profile prefill and merge the fields
        6. apologise and catch up
        7. resume: follow-ups if complete, otherwise the next question
    """

    def __init__(self, machine: "SessionStateMachine"):
        self._machine = machine

    async def recover(
        self,
        user_id: str,
        thread_id: str,
        channel_id: str = "",
        now: datetime | None = None,
    ) -> bool:
        """True if a session was rebuilt and the conversation resumed."""
        machine = self._machine
        settings = machine.settings
        now = now or datetime.now(timezone.utc)

        try:
            history = await machine.transport.fetch_thread_history(
                thread_id, limit=settings.history_limit
            )
        except Exception as e:
            logger.error("Could not read history of %s: %s", thread_id, e, exc_info=True)
            return False

        if not history:
            return False

        oldest = min(message.timestamp for message in history)
        if (now - oldest).total_seconds() < settings.recovery_min_thread_age_seconds:
            logger.debug("Thread %s too young for recovery", thread_id)
            return False

        if not any(message.is_system_author for message in history):
            return False

        content = self._user_content(history, user_id)
        if not content:
            return False

        logger.info(
            "Recovering session from %d message(s)",
            len(content),
            extra={"context": {"user_id": user_id, "thread_id": thread_id}},
        )

        session = await machine.new_session(user_id, thread_id, channel_id)
        try:
            result = await machine.extractor.extract_fields(
                "\n".join(content), known_fields=dict(session.fields)
            )
            session.merge_fields(result.fields)
        except Exception as e:
            logger.error("Recovery extraction failed: %s", e, exc_info=True)

        try:
            await machine.store.create_session(session)
        except SessionConflictError:
            logger.info("Session for %s in %s created concurrently", user_id, thread_id)
            return False

        logger.info("Session recovered", extra={"context": session_context(session)})
        await machine.say(session, self._apology(session))
        await machine.resume(session)
        return True

    @staticmethod
    def _user_content(history: list[HistoryMessage], user_id: str) -> list[str]:
        content = []
        for message in history:
            if message.is_system_author or message.author_id != user_id:
                continue
            text = clean_user_text(message.text)
            if not text or looks_command_like(text):
                continue
            content.append(text)
        return content

    @staticmethod
    def _apology(session: Session) -> str:
        collected = prompts.collected_overview(session)
        return f"{prompts.RECOVERY_APOLOGY}\n{collected}"
