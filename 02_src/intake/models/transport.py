"""Transport-level data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class InboundMessage:
    """A message received from the chat transport."""

    message_id: str
    user_id: str
    thread_id: str
    text: str
    channel_id: str = ""
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_thread_root(self) -> bool:
        """True when the message starts its own thread."""
        return self.message_id == self.thread_id


@dataclass
class HistoryMessage:
    """A message read back from thread history."""

    author_id: str
    text: str
    timestamp: datetime
    is_system_author: bool = False


@dataclass
class UserProfile:
    """Directory information about a requester."""

    display_name: str
    title: str | None = None
