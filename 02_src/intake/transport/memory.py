"""In-process transport used by the HTTP API, the simulator and tests."""

import itertools
from datetime import datetime, timezone

from ..models import HistoryMessage, InboundMessage, UserProfile


class InMemoryTransport:
    """Keeps every thread's messages in memory and serves them back as history."""

    def __init__(self, bot_user_id: str = "intake-bot"):
        self.bot_user_id = bot_user_id
        self._threads: dict[str, list[HistoryMessage]] = {}
        self._profiles: dict[str, UserProfile] = {}
        self._ids = itertools.count(1)

    def register_profile(self, user_id: str, profile: UserProfile) -> None:
        self._profiles[user_id] = profile

    def record_inbound(self, message: InboundMessage) -> None:
        """Append a user message to its thread's history."""
        self._threads.setdefault(message.thread_id, []).append(
            HistoryMessage(
                author_id=message.user_id,
                text=message.text,
                timestamp=message.received_at,
                is_system_author=False,
            )
        )

    def bot_messages(self, thread_id: str) -> list[str]:
        """Texts posted by the service into a thread."""
        return [m.text for m in self._threads.get(thread_id, []) if m.is_system_author]

    def message_count(self, thread_id: str) -> int:
        return len(self._threads.get(thread_id, []))

    def messages_since(self, thread_id: str, index: int) -> list[HistoryMessage]:
        return list(self._threads.get(thread_id, [])[index:])

    def clear(self) -> None:
        self._threads.clear()

    async def send_message(
        self,
        thread_id: str,
        text: str,
        attachments: list[dict] | None = None,
    ) -> str:
        """Post a message into a thread. Returns the generated message id."""
        message_id = f"bot-{next(self._ids)}"
        self._threads.setdefault(thread_id, []).append(
            HistoryMessage(
                author_id=self.bot_user_id,
                text=text,
                timestamp=datetime.now(timezone.utc),
                is_system_author=True,
            )
        )
        return message_id

    async def fetch_thread_history(
        self, thread_id: str, limit: int = 100
    ) -> list[HistoryMessage]:
        """Messages of the thread, oldest first."""
        return list(self._threads.get(thread_id, [])[-limit:])

    async def lookup_user_profile(self, user_id: str) -> UserProfile:
        """Directory profile of a user (the id itself when unknown)."""
        return self._profiles.get(user_id, UserProfile(display_name=user_id))
