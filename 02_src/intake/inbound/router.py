"""Inbound router: the single entry point for user messages."""

from typing import Protocol

from ..config import IntakeSettings
from ..dialogue import IDebounceCoordinator, SessionStateMachine, debounce_key, prompts
from ..errors import LedgerUnavailableError, SessionConflictError
from ..guard import IIdempotencyGuard
from ..logging_config import get_logger, session_context
from ..models import InboundMessage, Session
from ..recovery import IRecoveryEngine
from ..storage import ISessionStore
from .backoff import load_with_backoff

logger = get_logger(__name__)


class IInboundRouter(Protocol):
    """Entry point for inbound chat messages."""

    async def handle(self, inbound: InboundMessage) -> bool:
        """Process one delivery. True if it was processed."""
        ...


class InboundRouter:
    """
    Runs one inbound message through the pipeline:

        claim -> debounce -> load session -> recovery -> create -> dispatch

    A thread with no session at all goes through recovery first. Every new
    session, including one replacing a finished session in the same thread,
    passes the duplicate check so a user never holds two live requests.
    Anything that escapes the pipeline is logged and answered with a generic
    apology.
    """

    def __init__(
        self,
        guard: IIdempotencyGuard,
        debounce: IDebounceCoordinator,
        store: ISessionStore,
        machine: SessionStateMachine,
        recovery: IRecoveryEngine,
        settings: IntakeSettings | None = None,
    ):
        self._guard = guard
        self._debounce = debounce
        self._store = store
        self._machine = machine
        self._recovery = recovery
        self._settings = settings or machine.settings

    async def handle(self, inbound: InboundMessage) -> bool:
        """Process one delivery. True if it was processed."""
        context = {
            "message_id": inbound.message_id,
            "user_id": inbound.user_id,
            "thread_id": inbound.thread_id,
        }

        try:
            if not await self._guard.claim(inbound.message_id):
                return False
        except LedgerUnavailableError:
            logger.error("Dropping message, dedup ledger unavailable", extra={"context": context})
            return False

        key = debounce_key(inbound.thread_id, inbound.user_id)
        if not await self._debounce.schedule(key, self._settings.debounce_seconds):
            return False

        try:
            await self._route(inbound)
        except Exception as e:
            logger.error(
                "Failed to process message: %s", e, exc_info=True, extra={"context": context}
            )
            await self._machine.send(
                inbound.thread_id,
                prompts.generic_apology(
                    self._settings.fallback_contact, self._settings.intake_form_url
                ),
            )
        return True

    async def _load(self, inbound: InboundMessage) -> Session | None:
        if inbound.is_thread_root:
            return await self._store.get_session(inbound.user_id, inbound.thread_id)
        return await load_with_backoff(
            self._store,
            inbound.user_id,
            inbound.thread_id,
            attempts=self._settings.load_retry_attempts,
            base_seconds=self._settings.load_retry_base_seconds,
            max_seconds=self._settings.load_retry_max_seconds,
        )

    async def _route(self, inbound: InboundMessage) -> None:
        session = await self._load(inbound)

        if session is not None and session.accepts_input():
            await self._dispatch(session, inbound.text)
            return

        if session is None:
            if not inbound.is_thread_root and await self._recovery.recover(
                inbound.user_id, inbound.thread_id, inbound.channel_id
            ):
                return
        else:
            logger.info(
                "Previous session is %s, starting a new one",
                session.status.value,
                extra={"context": session_context(session)},
            )

        try:
            await self._machine.begin_session(inbound)
        except SessionConflictError:
            # Another process created it between our read and insert
            session = await self._store.get_session(inbound.user_id, inbound.thread_id)
            if session is None or not session.accepts_input():
                raise
            await self._dispatch(session, inbound.text)

    async def _dispatch(self, session: Session, text: str) -> None:
        if session.timeout_notified:
            # The user is back; the idle clock restarts from here
            session.timeout_notified = False
            await self._machine.save(session)
        await self._machine.dispatch(session, text)
