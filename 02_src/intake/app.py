"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .config import IntakeSettings, resolve_db_path
from .dialogue import DebounceCoordinator, SessionStateMachine, TimeoutSweeper
from .guard import IdempotencyGuard
from .inbound import InboundRouter
from .llm import FieldExtractor, IFieldExtractor, LLMProvider
from .logging_config import get_logger
from .recovery import RecoveryEngine
from .storage import ISessionStore, SessionStore
from .tickets import HttpTicketTracker, InMemoryTicketTracker, ITicketTracker
from .transport import InMemoryTransport, ITransport

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap.

    Collaborators that are not passed in are built from settings: the
    in-memory transport, an LLM-backed field extractor, and the HTTP ticket
    tracker when ``ticket_api_url`` is set (in-memory tickets otherwise).
    """

    def __init__(
        self,
        db_path: str | None = None,
        settings: IntakeSettings | None = None,
        extractor: IFieldExtractor | None = None,
        transport: ITransport | None = None,
        tickets: ITicketTracker | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._settings = settings or IntakeSettings.from_env()

        self._extractor = extractor
        self._transport = transport
        self._tickets = tickets

        # Components (will be initialized in start())
        self._store: ISessionStore | None = None
        self._guard: IdempotencyGuard | None = None
        self._machine: SessionStateMachine | None = None
        self._debounce: DebounceCoordinator | None = None
        self._router: InboundRouter | None = None
        self._sweeper: TimeoutSweeper | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        settings = self._settings

        # 1. Storage (no dependencies)
        self._store = SessionStore(self._db_path)
        await self._store.init()
        logger.info("Storage initialized")

        # 2. Idempotency guard (depends on Storage)
        self._guard = IdempotencyGuard(self._store, settings.dedup_retention_hours)
        await self._guard.purge_expired()

        # 3. Collaborators
        if self._transport is None:
            self._transport = InMemoryTransport()
        if self._extractor is None:
            self._extractor = FieldExtractor(LLMProvider(model=settings.llm_model))
            logger.info("LLM field extractor initialized")
        if self._tickets is None:
            if settings.ticket_api_url:
                self._tickets = HttpTicketTracker(
                    settings.ticket_api_url, token=settings.ticket_api_token
                )
            else:
                self._tickets = InMemoryTicketTracker()
            logger.info("Ticket tracker: %s", type(self._tickets).__name__)

        # 4. State machine and recovery
        self._machine = SessionStateMachine(
            store=self._store,
            transport=self._transport,
            extractor=self._extractor,
            tickets=self._tickets,
            settings=settings,
        )
        recovery = RecoveryEngine(self._machine)

        # 5. Inbound pipeline
        self._debounce = DebounceCoordinator()
        self._router = InboundRouter(
            guard=self._guard,
            debounce=self._debounce,
            store=self._store,
            machine=self._machine,
            recovery=recovery,
            settings=settings,
        )

        # 6. Idle sweep
        self._sweeper = TimeoutSweeper(self._machine, settings.idle_reminder_hours)
        await self._sweeper.start(settings.sweep_interval_seconds)
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._sweeper:
            await self._sweeper.stop()
        if self._debounce:
            self._debounce.cancel_all()
        if isinstance(self._tickets, HttpTicketTracker):
            await self._tickets.close()
        if self._store:
            await self._store.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._debounce:
            self._debounce.cancel_all()
        if self._store:
            await self._store.clear()
            logger.info("Storage cleared")
        if isinstance(self._transport, InMemoryTransport):
            self._transport.clear()
        if isinstance(self._tickets, InMemoryTicketTracker):
            self._tickets.clear()

    @property
    def settings(self) -> IntakeSettings:
        return self._settings

    @property
    def store(self) -> ISessionStore:
        """Get storage instance."""
        if not self._store:
            raise RuntimeError("Application not started")
        return self._store

    @property
    def machine(self) -> SessionStateMachine:
        """Get the session state machine."""
        if not self._machine:
            raise RuntimeError("Application not started")
        return self._machine

    @property
    def router(self) -> InboundRouter:
        """Get the inbound router."""
        if not self._router:
            raise RuntimeError("Application not started")
        return self._router

    @property
    def transport(self) -> ITransport:
        if self._transport is None:
            raise RuntimeError("Application not started")
        return self._transport

    @property
    def tickets(self) -> ITicketTracker:
        if self._tickets is None:
            raise RuntimeError("Application not started")
        return self._tickets

    @property
    def sweeper(self) -> TimeoutSweeper:
        if not self._sweeper:
            raise RuntimeError("Application not started")
        return self._sweeper
