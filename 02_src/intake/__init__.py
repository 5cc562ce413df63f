"""Conversational intake service."""

from .app import Application, IApplication
from .config import IntakeSettings
from .dialogue import DebounceCoordinator, ReviewDecision, SessionStateMachine, TimeoutSweeper
from .guard import IdempotencyGuard, IIdempotencyGuard
from .inbound import IInboundRouter, InboundRouter
from .llm import FieldExtractor, IFieldExtractor, ILLMProvider, LLMProvider
from .models import (
    Classification,
    InboundMessage,
    Session,
    SessionStatus,
    SideChannel,
)
from .recovery import IRecoveryEngine, RecoveryEngine
from .storage import ISessionStore, SessionStore
from .tickets import HttpTicketTracker, InMemoryTicketTracker, ITicketTracker
from .transport import InMemoryTransport, ITransport

__all__ = [
    # Application
    "Application",
    "IApplication",
    "IntakeSettings",
    # Models
    "Session",
    "SessionStatus",
    "Classification",
    "SideChannel",
    "InboundMessage",
    # Components
    "ISessionStore",
    "SessionStore",
    "IIdempotencyGuard",
    "IdempotencyGuard",
    "DebounceCoordinator",
    "SessionStateMachine",
    "ReviewDecision",
    "IRecoveryEngine",
    "RecoveryEngine",
    "IInboundRouter",
    "InboundRouter",
    "TimeoutSweeper",
    # Collaborators
    "ITransport",
    "InMemoryTransport",
    "IFieldExtractor",
    "FieldExtractor",
    "ILLMProvider",
    "LLMProvider",
    "ITicketTracker",
    "HttpTicketTracker",
    "InMemoryTicketTracker",
]
