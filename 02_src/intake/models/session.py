"""Intake session model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .extraction import FollowUpQuestion
from .side_channel import SideChannel
from .steps import is_post_sub_step


class SessionStatus(str, Enum):
    """Lifecycle status of an intake session."""

    GATHERING = "gathering"
    CONFIRMING = "confirming"
    PENDING_APPROVAL = "pending_approval"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    WITHDRAWN = "withdrawn"


TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETE, SessionStatus.CANCELLED, SessionStatus.WITHDRAWN}
)
LIVE_STATUSES = frozenset(
    {SessionStatus.GATHERING, SessionStatus.CONFIRMING, SessionStatus.PENDING_APPROVAL}
)


class Classification(str, Enum):
    """Size of the request, decides which review track it goes to."""

    UNDETERMINED = "undetermined"
    QUICK = "quick"
    FULL = "full"


# Asked in this order
REQUIRED_FIELDS: tuple[str, ...] = (
    "requester_department",
    "target",
    "context_background",
    "desired_outcomes",
    "deliverables",
    "due_date",
)

ALL_FIELDS: tuple[str, ...] = (
    "requester_name",
    "requester_department",
    "target",
    "context_background",
    "desired_outcomes",
    "deliverables",
    "due_date",
    "due_date_parsed",
    "approvals",
    "constraints",
    "supporting_links",
)

LIST_FIELDS = frozenset({"deliverables", "supporting_links"})

IDENTITY_FIELDS = ("requester_name", "requester_department")

FieldValue = str | list[str] | None


def empty_fields() -> dict[str, FieldValue]:
    return {key: ([] if key in LIST_FIELDS else None) for key in ALL_FIELDS}


def _normalize(key: str, value: FieldValue) -> FieldValue:
    if value is None:
        return [] if key in LIST_FIELDS else None
    if key in LIST_FIELDS:
        items = [value] if isinstance(value, str) else list(value)
        return [str(item).strip() for item in items if str(item).strip()]
    if isinstance(value, list):
        value = ", ".join(str(item) for item in value)
    value = str(value).strip()
    return value or None


def _populated(value: FieldValue) -> bool:
    if isinstance(value, list):
        return len(value) > 0
    return bool(value)


@dataclass
class Session:
    """One structured-intake conversation for one user in one thread."""

    user_id: str
    thread_id: str
    channel_id: str = ""
    user_name: str = ""
    id: int | None = None
    status: SessionStatus = SessionStatus.GATHERING
    current_step: str | None = None
    fields: dict[str, FieldValue] = field(default_factory=empty_fields)
    side_channel: SideChannel = field(default_factory=SideChannel)
    classification: Classification = Classification.UNDETERMINED
    request_types: list[str] = field(default_factory=list)
    follow_up_questions: list[FollowUpQuestion] = field(default_factory=list)
    follow_up_index: int | None = None
    external_item_id: str | None = None
    external_item_url: str | None = None
    review_channel_id: str | None = None
    review_message_id: str | None = None
    timeout_notified: bool = False
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Fields

    def is_field_populated(self, key: str) -> bool:
        return _populated(self.fields.get(key))

    def set_field(self, key: str, value: FieldValue) -> None:
        if key not in ALL_FIELDS:
            raise KeyError(f"Unknown field: {key}")
        self.fields[key] = _normalize(key, value)

    def missing_fields(self) -> list[str]:
        return [key for key in REQUIRED_FIELDS if not self.is_field_populated(key)]

    def next_missing_field(self) -> str | None:
        missing = self.missing_fields()
        return missing[0] if missing else None

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def merge_fields(
        self, extracted: dict[str, FieldValue], overwrite: bool = False
    ) -> list[str]:
        """
        Merge extracted values into the collected fields.

        Without ``overwrite`` a populated field is never replaced. With it
        (correction mode) differing values replace the current ones.

        Returns:
            Keys whose stored value changed.
        """
        applied: list[str] = []
        for key, raw in extracted.items():
            if key not in ALL_FIELDS:
                continue
            value = _normalize(key, raw)
            if not _populated(value):
                continue
            if self.is_field_populated(key):
                if not overwrite or self.fields[key] == value:
                    continue
            self.fields[key] = value
            applied.append(key)
        return applied

    # Status

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def accepts_input(self) -> bool:
        """Live, or a completed request with a post-submission step open."""
        if self.status in LIVE_STATUSES:
            return True
        return self.status == SessionStatus.COMPLETE and is_post_sub_step(self.current_step)

    def in_follow_up(self) -> bool:
        return (
            self.status == SessionStatus.GATHERING
            and self.follow_up_index is not None
            and bool(self.follow_up_questions)
        )

    def is_follow_up_answered(self, question: FollowUpQuestion) -> bool:
        key = question.field_key
        if self.side_channel.has_extra(key):
            return True
        return key in ALL_FIELDS and self.is_field_populated(key)

    def reset(self) -> None:
        """Start over, keeping who the requester is."""
        identity = {key: self.fields.get(key) for key in IDENTITY_FIELDS}
        self.fields = empty_fields()
        self.fields.update(identity)
        self.side_channel = SideChannel()
        self.status = SessionStatus.GATHERING
        self.current_step = None
        self.classification = Classification.UNDETERMINED
        self.request_types = []
        self.follow_up_questions = []
        self.follow_up_index = None
