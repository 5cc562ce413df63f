"""Chat transport interface and requester-profile helpers."""

import re
from typing import Protocol

from ..logging_config import get_logger
from ..models import HistoryMessage, UserProfile

logger = get_logger(__name__)


class ITransport(Protocol):
    """Outbound side of the chat platform."""

    async def send_message(
        self,
        thread_id: str,
        text: str,
        attachments: list[dict] | None = None,
    ) -> str | None:
        """Post a message into a thread. Returns the posted message id if known."""
        ...

    async def fetch_thread_history(
        self, thread_id: str, limit: int = 100
    ) -> list[HistoryMessage]:
        """Messages of the thread, oldest first."""
        ...

    async def lookup_user_profile(self, user_id: str) -> UserProfile:
        """Directory profile of a user."""
        ...


# (pattern, department) checked in order against the job title
_TITLE_DEPARTMENTS: tuple[tuple[re.Pattern, str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), department)
    for pattern, department in (
        (r"marketing", "Marketing"),
        (r"business\s*development|\bbd\b", "Business Development"),
        (r"customer|\bcx\b", "Customer Experience"),
        (r"product", "Product"),
        (r"engineer", "Engineering"),
        (r"sales", "Sales"),
        (r"finance|accounting", "Finance"),
        (r"\bhr\b|people|human\s*resources", "People/HR"),
        (r"executive|\bceo\b|\bcoo\b|\bcfo\b|\bcto\b", "Executive"),
    )
)


def infer_department(title: str | None) -> str | None:
    """Best-effort department from a job title."""
    if not title:
        return None
    for pattern, department in _TITLE_DEPARTMENTS:
        if pattern.search(title):
            return department
    return None


async def resolve_requester(
    transport: ITransport, user_id: str
) -> tuple[str, str | None]:
    """
    Look up the requester's display name and inferred department.

    Directory failures are logged and yield ("", None) so intake can
    continue by asking.
    """
    try:
        profile = await transport.lookup_user_profile(user_id)
    except Exception as e:
        logger.error("Profile lookup failed for %s: %s", user_id, e, exc_info=True)
        return "", None
    return profile.display_name or "", infer_department(profile.title)
