"""Core data models for the intake service."""

from .extraction import ExtractedFields, FollowUpAnswer, FollowUpQuestion, TicketRef
from .session import (
    ALL_FIELDS,
    LIST_FIELDS,
    LIVE_STATUSES,
    REQUIRED_FIELDS,
    TERMINAL_STATUSES,
    Classification,
    Session,
    SessionStatus,
)
from .side_channel import DiscussionFlag, ExistingAsset, SideChannel
from .transport import HistoryMessage, InboundMessage, UserProfile

__all__ = [
    # Session
    "Session",
    "SessionStatus",
    "Classification",
    "REQUIRED_FIELDS",
    "ALL_FIELDS",
    "LIST_FIELDS",
    "LIVE_STATUSES",
    "TERMINAL_STATUSES",
    # Side channel
    "SideChannel",
    "ExistingAsset",
    "DiscussionFlag",
    # Collaborators
    "ExtractedFields",
    "FollowUpQuestion",
    "FollowUpAnswer",
    "TicketRef",
    # Transport
    "InboundMessage",
    "HistoryMessage",
    "UserProfile",
]
