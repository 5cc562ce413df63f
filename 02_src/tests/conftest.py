"""Pytest configuration and fixtures."""

import itertools
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from intake.config import IntakeSettings  # noqa: E402
from intake.models import (  # noqa: E402
    ExtractedFields,
    FollowUpAnswer,
    FollowUpQuestion,
    InboundMessage,
    Session,
    UserProfile,
)


class ScriptedExtractor:
    """Field extractor that answers from a script instead of an LLM."""

    def __init__(self):
        self.responses: dict[str, dict] = {}
        self.acknowledgment: str | None = None
        self.questions: list[FollowUpQuestion] = []
        self.request_types = ["email"]
        self.additional: dict[str, dict[str, str]] = {}
        self.guidance: str | None = None
        self.fail_extraction = False
        self.extract_calls: list[str] = []
        self.extract_steps: list[str | None] = []
        self.interpret_calls: list[dict] = []
        self.question_calls = 0

    def script(self, text: str, **fields) -> None:
        self.responses[text] = fields

    async def extract_fields(self, text, known_fields, current_step=None):
        self.extract_calls.append(text)
        self.extract_steps.append(current_step)
        if self.fail_extraction:
            raise RuntimeError("LLM API error: unavailable")
        return ExtractedFields(
            fields=dict(self.responses.get(text, {})),
            confidence=0.9,
            acknowledgment=self.acknowledgment,
        )

    async def classify_request_type(self, fields):
        return list(self.request_types)

    async def generate_follow_up_questions(self, fields, request_types):
        self.question_calls += 1
        return list(self.questions)

    async def interpret_follow_up_answer(self, text, question, known_fields, remaining_questions):
        self.interpret_calls.append(
            {"question": question, "remaining": [q.field_key for q in remaining_questions]}
        )
        return FollowUpAnswer(value=text, additional_fields=self.additional.get(text, {}))

    async def generate_field_guidance(self, field_key, known_fields):
        if self.guidance is None:
            raise RuntimeError("LLM API error: unavailable")
        return self.guidance


COMPLETE_FIELDS = {
    "requester_name": "Dana Smith",
    "requester_department": "Marketing",
    "target": "Existing enterprise admins",
    "context_background": "We are launching the analytics dashboard next quarter",
    "desired_outcomes": "30% of admins log in within a month",
    "deliverables": ["Email sequence", "One-pager"],
    "due_date": "March 1",
}


@pytest.fixture
def settings():
    """Settings with no waiting anywhere."""
    return IntakeSettings(
        debounce_seconds=0,
        recovery_min_thread_age_seconds=0,
        load_retry_attempts=1,
        load_retry_base_seconds=0,
        load_retry_max_seconds=0,
        review_channel_id="review-channel",
    )


@pytest_asyncio.fixture
async def store():
    """Create in-memory session store for testing."""
    from intake.storage import SessionStore

    st = SessionStore(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def transport():
    """In-memory transport with a known requester profile."""
    from intake.transport import InMemoryTransport

    tr = InMemoryTransport()
    tr.register_profile(
        "U1", UserProfile(display_name="Dana Smith", title="Product Marketing Manager")
    )
    return tr


@pytest.fixture
def extractor():
    return ScriptedExtractor()


@pytest.fixture
def tickets():
    from intake.tickets import InMemoryTicketTracker

    return InMemoryTicketTracker()


@pytest.fixture
def machine(store, transport, extractor, tickets, settings):
    """Create the session state machine over in-memory collaborators."""
    from intake.dialogue import SessionStateMachine

    return SessionStateMachine(
        store=store,
        transport=transport,
        extractor=extractor,
        tickets=tickets,
        settings=settings,
    )


@pytest.fixture
def guard(store):
    from intake.guard import IdempotencyGuard

    return IdempotencyGuard(store)


@pytest.fixture
def debounce():
    from intake.dialogue import DebounceCoordinator

    coordinator = DebounceCoordinator()
    yield coordinator
    coordinator.cancel_all()


@pytest.fixture
def recovery(machine):
    from intake.recovery import RecoveryEngine

    return RecoveryEngine(machine)


@pytest.fixture
def router(guard, debounce, store, machine, recovery, settings):
    """Create the inbound router wired to the fixtures above."""
    from intake.inbound import InboundRouter

    return InboundRouter(
        guard=guard,
        debounce=debounce,
        store=store,
        machine=machine,
        recovery=recovery,
        settings=settings,
    )


@pytest.fixture
def send(router, transport):
    """
    Deliver a user message through the router.

    Returns an async callable; message ids are generated unless given.
    """
    ids = itertools.count(1)

    async def _send(text, user_id="U1", thread_id="T1", message_id=None):
        inbound = InboundMessage(
            message_id=message_id or f"m-{next(ids)}",
            user_id=user_id,
            thread_id=thread_id,
            text=text,
        )
        transport.record_inbound(inbound)
        return await router.handle(inbound)

    return _send


@pytest.fixture
def make_session():
    """Build an unsaved session with all required fields filled."""

    def _make(user_id="U1", thread_id="T1", **overrides):
        session = Session(user_id=user_id, thread_id=thread_id, user_name="Dana Smith")
        for key, value in COMPLETE_FIELDS.items():
            session.set_field(key, value)
        for key, value in overrides.items():
            setattr(session, key, value)
        return session

    return _make


@pytest.fixture
def mock_llm():
    """Create mock LLM provider."""
    llm = Mock()
    llm.complete = AsyncMock(return_value="{}")
    return llm
