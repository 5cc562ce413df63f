"""Session state machine: interprets one user message against a persisted session."""

from enum import Enum
from typing import Any, Protocol

from ..commands import (
    CONFIRMING_ORDER,
    FIELD_ORDER,
    FOLLOW_UP_ORDER,
    GATHERING_ORDER,
    CommandIntent,
    classify,
    looks_command_like,
)
from ..config import IntakeSettings
from ..llm import IFieldExtractor
from ..logging_config import get_logger, session_context
from ..models import (
    ALL_FIELDS,
    REQUIRED_FIELDS,
    Classification,
    InboundMessage,
    Session,
    SessionStatus,
)
from ..models.steps import is_draft_step, is_dup_check_step
from ..storage import ISessionStore
from ..tickets import ITicketTracker
from ..transport import ITransport, resolve_requester
from . import prompts
from .arbitrator import DuplicateSessionArbitrator
from .classification import classify_request
from .drafts import DraftFlow, mentions_existing_content
from .guidance import calendar_note, template_guidance
from .post_submission import PostSubmissionAction, PostSubmissionFlow
from .timeline import production_timeline

logger = get_logger(__name__)


class ReviewDecision(str, Enum):
    """Reviewer outcome for a submitted request."""

    APPROVE = "approve"
    DECLINE = "decline"


class ISessionStateMachine(Protocol):
    """Per-status handling of user input."""

    async def dispatch(self, session: Session, text: str) -> None:
        """Apply one user message to a loaded, live session."""
        ...

    async def begin_session(self, inbound: InboundMessage) -> Session:
        """Create a session for a thread without a live one."""
        ...

    async def resume(self, session: Session) -> None:
        """Continue the outer flow after a sub-flow or recovery."""
        ...


class SessionStateMachine:
    """
    Drives an intake session through gathering, follow-ups, confirmation and
    post-submission handling.

    Every handler persists the session before replying. Transport and
    extraction failures are logged and never undo persisted state; storage
    failures propagate to the caller.
    """

    def __init__(
        self,
        store: ISessionStore,
        transport: ITransport,
        extractor: IFieldExtractor,
        tickets: ITicketTracker,
        settings: IntakeSettings | None = None,
    ):
        self.store = store
        self.transport = transport
        self.extractor = extractor
        self.tickets = tickets
        self.settings = settings or IntakeSettings()

        self.drafts = DraftFlow(self)
        self.post_submission = PostSubmissionFlow(self)
        self.arbitrator = DuplicateSessionArbitrator(self)

    # Messaging helpers

    async def send(self, thread_id: str, text: str) -> str | None:
        """Post a message; transport failures are logged, never raised."""
        try:
            return await self.transport.send_message(thread_id, text)
        except Exception as e:
            logger.error("Failed to send message to %s: %s", thread_id, e, exc_info=True)
            return None

    async def say(self, session: Session, text: str) -> str | None:
        return await self.send(session.thread_id, text)

    async def save(self, session: Session) -> None:
        await self.store.save_session(session)

    def is_substantive(self, text: str) -> bool:
        stripped = text.strip()
        return len(stripped) >= self.settings.substantive_min_chars and not looks_command_like(
            stripped
        )

    # Entry points

    async def dispatch(self, session: Session, text: str) -> None:
        """Apply one user message to a loaded session."""
        text = text.strip()
        logger.info(
            "Dispatching message (%s, step=%s)",
            session.status.value,
            session.current_step,
            extra={"context": session_context(session)},
        )

        if is_dup_check_step(session.current_step):
            await self.arbitrator.handle_response(session, text)
            return

        if session.status == SessionStatus.GATHERING:
            await self.handle_gathering(session, text)
        elif session.status == SessionStatus.CONFIRMING:
            await self._handle_confirming(session, text)
        elif session.status in (SessionStatus.PENDING_APPROVAL, SessionStatus.COMPLETE):
            await self.post_submission.handle(session, text)
        elif session.status == SessionStatus.WITHDRAWN:
            await self.say(session, prompts.WITHDRAWN_INFO)
        else:
            await self.say(session, prompts.CANCELLED_INFO)

    async def begin_session(self, inbound: InboundMessage) -> Session:
        """
        Create a session for a thread without a live one.

        The first message only opens the conversation; it is not interpreted
        as an answer. When the user has a live session in another thread a
        dup-check placeholder is created instead. Raises SessionConflictError
        when another process created the session first.
        """
        session = await self.new_session(inbound.user_id, inbound.thread_id, inbound.channel_id)

        if await self.arbitrator.check_before_create(session):
            return session

        await self.store.create_session(session)
        logger.info("Started session", extra={"context": session_context(session)})
        await self.say(session, prompts.WELCOME)
        identity = prompts.identity_line(session)
        if identity:
            await self.say(session, identity)
        await self.ask_next(session)
        return session

    async def new_session(self, user_id: str, thread_id: str, channel_id: str = "") -> Session:
        """Unsaved session prefilled from the requester's profile."""
        name, department = await resolve_requester(self.transport, user_id)
        session = Session(
            user_id=user_id,
            thread_id=thread_id,
            channel_id=channel_id,
            user_name=name,
        )
        if name:
            session.set_field("requester_name", name)
        if department:
            session.set_field("requester_department", department)
        return session

    async def resume(self, session: Session) -> None:
        """Continue the outer flow after a sub-flow or recovery."""
        if session.in_follow_up():
            await self.advance_follow_up(session, session.follow_up_index + 1)
        elif session.is_complete():
            await self.enter_follow_up(session)
        else:
            await self.ask_next(session)

    # Shared transitions

    async def cancel(self, session: Session) -> None:
        session.status = SessionStatus.CANCELLED
        session.current_step = None
        await self.save(session)
        logger.info("Session cancelled by user", extra={"context": session_context(session)})
        await self.say(session, prompts.CANCELLED)

    async def restart(self, session: Session) -> None:
        session.reset()
        await self.save(session)
        await self.say(session, prompts.RESTARTED)
        await self.ask_next(session)

    async def ask_next(self, session: Session) -> None:
        """Ask the next missing required field, or move on when none is left."""
        field_key = session.next_missing_field()
        if field_key is None:
            await self.enter_follow_up(session)
            return
        session.current_step = field_key
        await self.save(session)
        await self.say(session, prompts.field_question(field_key))

    async def reprompt(self, session: Session) -> None:
        """Repeat whatever the session is currently waiting for."""
        if is_draft_step(session.current_step):
            await self.drafts.reprompt(session)
        elif session.status == SessionStatus.CONFIRMING:
            await self.say(session, prompts.summary(session))
        elif session.in_follow_up():
            await self._ask_follow_up(session)
        else:
            field_key = self._current_field(session)
            if field_key is None:
                await self.ask_next(session)
            else:
                await self.say(session, prompts.field_question(field_key))

    def _current_field(self, session: Session) -> str | None:
        if session.current_step in REQUIRED_FIELDS:
            return session.current_step
        return session.next_missing_field()

    async def _advance(self, session: Session) -> None:
        if session.is_complete():
            await self.enter_follow_up(session)
        else:
            await self.ask_next(session)

    # Gathering

    async def handle_gathering(self, session: Session, text: str) -> None:
        if is_draft_step(session.current_step):
            await self.drafts.handle(session, text)
            return

        intent = classify(text, GATHERING_ORDER)
        if intent == CommandIntent.CANCEL:
            await self.cancel(session)
            return
        if intent == CommandIntent.RESET:
            await self.restart(session)
            return
        if intent in (CommandIntent.CONTINUE, CommandIntent.NUDGE):
            await self.reprompt(session)
            return

        if session.in_follow_up():
            await self._handle_follow_up(session, text)
            return

        intent = classify(text, FIELD_ORDER)
        if intent == CommandIntent.IDK:
            field_key = self._current_field(session)
            if field_key:
                await self.say(session, await self._field_guidance(session, field_key))
            else:
                await self.reprompt(session)
            return
        if intent == CommandIntent.DISCUSS:
            await self._flag_current_field(session)
            return

        await self._handle_free_text(session, text)

    async def _field_guidance(self, session: Session, field_key: str) -> str:
        """Canned guidance for bounded fields, generated guidance for the rest."""
        text = template_guidance(field_key, session.fields)
        if text is None:
            try:
                text = await self.extractor.generate_field_guidance(
                    field_key, dict(session.fields)
                )
            except Exception as e:
                logger.error(
                    "Guidance generation failed: %s",
                    e,
                    extra={"context": session_context(session)},
                )
                return prompts.field_guidance(field_key)
        return text + calendar_note(self.settings.calendar_url)

    async def _flag_current_field(self, session: Session) -> None:
        field_key = self._current_field(session)
        if field_key is None:
            await self.reprompt(session)
            return
        session.set_field(field_key, prompts.NEEDS_DISCUSSION)
        session.side_channel.flag_discussion(field_key, prompts.FIELD_LABELS[field_key])
        await self.say(session, prompts.DISCUSS_NOTED)
        await self._advance(session)

    async def _handle_free_text(self, session: Session, text: str) -> None:
        asked_field = session.current_step if session.current_step in REQUIRED_FIELDS else None

        result = None
        try:
            result = await self.extractor.extract_fields(
                text, known_fields=dict(session.fields), current_step=session.current_step
            )
        except Exception as e:
            logger.error(
                "Field extraction failed: %s",
                e,
                exc_info=True,
                extra={"context": session_context(session)},
            )

        applied = session.merge_fields(result.fields) if result else []

        if not applied and asked_field and self.is_substantive(text):
            session.set_field(asked_field, text)
            applied = [asked_field]

        if not applied:
            field_key = self._current_field(session)
            reply = prompts.DIDNT_CATCH
            if field_key:
                reply += "\n" + prompts.field_question(field_key)
            await self.say(session, reply)
            return

        logger.info(
            "Applied fields %s",
            applied,
            extra={"context": session_context(session)},
        )
        if result and result.acknowledgment:
            await self.say(session, result.acknowledgment)

        if "due_date_parsed" in applied:
            timeline = production_timeline(session.fields)
            if timeline:
                await self.say(session, timeline)

        if not session.side_channel.draft_asked and mentions_existing_content(text):
            await self.drafts.start(session)
            return

        await self._advance(session)

    # Follow-up phase

    async def enter_follow_up(self, session: Session) -> None:
        """Generate (once) and start the adaptive question sequence."""
        if session.classification == Classification.UNDETERMINED:
            session.classification = classify_request(session.fields)

        if not session.follow_up_questions and session.follow_up_index is None:
            questions = []
            try:
                session.request_types = await self.extractor.classify_request_type(
                    dict(session.fields)
                )
                questions = await self.extractor.generate_follow_up_questions(
                    dict(session.fields), session.request_types
                )
            except Exception as e:
                logger.error(
                    "Follow-up generation failed: %s",
                    e,
                    exc_info=True,
                    extra={"context": session_context(session)},
                )
            session.follow_up_questions = questions
            start = 0
        else:
            start = session.follow_up_index or 0

        await self.advance_follow_up(session, start)

    def _next_unanswered(self, session: Session, start: int) -> int | None:
        for index in range(max(start, 0), len(session.follow_up_questions)):
            if not session.is_follow_up_answered(session.follow_up_questions[index]):
                return index
        return None

    async def advance_follow_up(self, session: Session, start: int) -> None:
        index = self._next_unanswered(session, start)
        if index is None:
            await self.to_confirming(session)
            return
        session.follow_up_index = index
        session.current_step = None
        await self.save(session)
        await self._ask_follow_up(session)

    async def _ask_follow_up(self, session: Session) -> None:
        index = session.follow_up_index
        question = session.follow_up_questions[index]
        await self.say(
            session,
            prompts.follow_up_text(question, index, len(session.follow_up_questions)),
        )

    async def _handle_follow_up(self, session: Session, text: str) -> None:
        index = session.follow_up_index
        question = session.follow_up_questions[index]

        intent = classify(text, FOLLOW_UP_ORDER)
        if intent in (CommandIntent.SUBMIT_AS_IS, CommandIntent.DONE):
            await self.to_confirming(session)
            return
        if intent == CommandIntent.SKIP:
            await self.advance_follow_up(session, index + 1)
            return
        if intent == CommandIntent.IDK:
            await self.say(session, prompts.FOLLOW_UP_IDK.format(question=question.question))
            return
        if intent == CommandIntent.DISCUSS:
            session.side_channel.set_extra(question.field_key, prompts.NEEDS_DISCUSSION)
            session.side_channel.flag_discussion(
                question.field_key, question.field_key.replace("_", " ")
            )
            await self.say(session, prompts.DISCUSS_NOTED)
            await self.advance_follow_up(session, index + 1)
            return

        value, additional = text, {}
        try:
            answer = await self.extractor.interpret_follow_up_answer(
                text,
                question,
                known_fields=dict(session.fields),
                remaining_questions=session.follow_up_questions[index + 1 :],
            )
            value, additional = answer.value, answer.additional_fields
        except Exception as e:
            logger.error(
                "Follow-up interpretation failed, keeping raw answer: %s",
                e,
                extra={"context": session_context(session)},
            )

        session.side_channel.set_extra(question.field_key, value)
        self._store_additional(session, additional)

        if not session.side_channel.draft_asked and mentions_existing_content(text):
            await self.drafts.start(session)
            return

        await self.advance_follow_up(session, index + 1)

    def _store_additional(self, session: Session, additional: dict[str, str]) -> None:
        known = {k: v for k, v in additional.items() if k in ALL_FIELDS}
        session.merge_fields(known)
        for key, value in additional.items():
            if key not in ALL_FIELDS and not session.side_channel.has_extra(key):
                session.side_channel.set_extra(key, value)

    async def to_confirming(self, session: Session) -> None:
        if session.classification == Classification.UNDETERMINED:
            session.classification = classify_request(session.fields)
        session.status = SessionStatus.CONFIRMING
        session.current_step = None
        session.follow_up_index = None
        await self.save(session)
        await self.say(session, prompts.summary(session))

    # Confirming

    async def _handle_confirming(self, session: Session, text: str) -> None:
        intent = classify(text, CONFIRMING_ORDER)
        if intent == CommandIntent.CANCEL:
            await self.cancel(session)
        elif intent in (CommandIntent.RESET, CommandIntent.START_FRESH):
            await self.restart(session)
        elif intent in (CommandIntent.CONTINUE, CommandIntent.NUDGE):
            await self.say(session, prompts.summary(session))
        elif intent == CommandIntent.CONFIRM:
            await self.submit(session)
        elif intent == CommandIntent.IDK:
            await self.say(session, prompts.CONFIRMING_OPTIONS)
        else:
            await self._apply_correction(session, text)

    async def _apply_correction(self, session: Session, text: str) -> None:
        try:
            result = await self.extractor.extract_fields(text, known_fields=dict(session.fields))
        except Exception as e:
            logger.error(
                "Correction extraction failed: %s",
                e,
                exc_info=True,
                extra={"context": session_context(session)},
            )
            await self.say(session, prompts.DIDNT_CATCH)
            return

        changed = session.merge_fields(result.fields, overwrite=True)
        if not changed:
            await self.say(session, prompts.WHAT_TO_CHANGE)
            return

        await self.save(session)
        labels = ", ".join(prompts.FIELD_LABELS.get(key, key) for key in changed)
        await self.say(session, f"Updated {labels}.\n\n{prompts.summary(session)}")

    # Submission

    async def submit(self, session: Session) -> None:
        """Hand the request to the ticket tracker and wait for review."""
        if not session.is_complete():
            session.status = SessionStatus.GATHERING
            await self.ask_next(session)
            return

        if session.classification == Classification.UNDETERMINED:
            session.classification = classify_request(session.fields)
        if session.classification == Classification.UNDETERMINED:
            session.classification = Classification.QUICK

        await self.say(session, prompts.SUBMITTING)

        if not session.external_item_id:
            try:
                ref = await self.tickets.create_ticket(
                    title=self._ticket_title(session),
                    fields=self._ticket_fields(session),
                    classification=session.classification,
                    requester=session.fields.get("requester_name") or session.user_name,
                    thread_id=session.thread_id,
                    idempotency_key=f"intake-session-{session.id}",
                )
                session.external_item_id = ref.ticket_id
                session.external_item_url = ref.url
            except Exception as e:
                logger.error(
                    "Ticket creation failed: %s",
                    e,
                    exc_info=True,
                    extra={"context": session_context(session)},
                )

        session.status = SessionStatus.PENDING_APPROVAL
        session.current_step = None
        await self.save(session)
        logger.info("Session submitted", extra={"context": session_context(session)})

        reply = prompts.SUBMITTED
        if session.external_item_url:
            reply += f"\nTicket: {session.external_item_url}"
        await self.say(session, reply)
        await self._post_review(session)

    def _ticket_title(self, session: Session) -> str:
        deliverables = session.fields.get("deliverables") or []
        what = ", ".join(deliverables) if deliverables else "Marketing request"
        who = session.fields.get("requester_department") or session.user_name
        return f"{what} ({who})"[:200] if who else what[:200]

    def _ticket_fields(self, session: Session) -> dict[str, Any]:
        data: dict[str, Any] = dict(session.fields)
        data["request_types"] = list(session.request_types)
        data["follow_up_answers"] = {
            q.field_key: session.side_channel.get_extra(q.field_key)
            for q in session.follow_up_questions
            if session.side_channel.has_extra(q.field_key)
        }
        data["existing_assets"] = [
            {"link": a.link, "status": a.status} for a in session.side_channel.existing_assets
        ]
        data["needs_discussion"] = [f.label for f in session.side_channel.needs_discussion]
        return data

    async def _post_review(self, session: Session) -> None:
        channel = self.settings.review_channel_id
        if not channel:
            return
        message_id = await self.send(channel, prompts.review_message(session))
        if message_id:
            session.review_channel_id = channel
            session.review_message_id = message_id
            await self.save(session)

    async def notify_review_thread(self, session: Session, text: str) -> None:
        if session.review_message_id:
            await self.send(session.review_message_id, text)

    # Operations invoked outside the chat thread

    async def select_post_submission_action(
        self, session_id: int, action: PostSubmissionAction
    ) -> Session | None:
        """Start a post-submission sub-flow (the chat buttons' equivalent)."""
        session = await self.store.get_session_by_id(session_id)
        if session is None:
            return None
        if session.status not in (SessionStatus.PENDING_APPROVAL, SessionStatus.COMPLETE):
            raise ValueError(f"Session {session_id} is not submitted ({session.status.value})")
        await self.post_submission.select(session, action)
        return session

    async def apply_review_decision(
        self, session_id: int, decision: ReviewDecision
    ) -> Session | None:
        """Apply a reviewer's approve/decline to a pending request."""
        session = await self.store.get_session_by_id(session_id)
        if session is None:
            return None
        if session.status != SessionStatus.PENDING_APPROVAL:
            logger.info(
                "Ignoring %s for session in %s",
                decision.value,
                session.status.value,
                extra={"context": session_context(session)},
            )
            return session

        if decision == ReviewDecision.APPROVE:
            session.status = SessionStatus.COMPLETE
            ticket_status, reply = "In Progress", prompts.REVIEW_APPROVED
        else:
            session.status = SessionStatus.CANCELLED
            ticket_status = "Declined"
            reply = prompts.REVIEW_DECLINED.format(contact=self.settings.fallback_contact)
        session.current_step = None
        await self.save(session)

        if session.external_item_id:
            try:
                await self.tickets.update_ticket_status(session.external_item_id, ticket_status)
            except Exception as e:
                logger.error("Ticket status update failed: %s", e, exc_info=True)
        await self.say(session, reply)
        return session
