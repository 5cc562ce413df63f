"""Bounded retry for session reads that may not be visible yet."""

from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_exponential

from ..logging_config import get_logger
from ..models import Session
from ..storage import ISessionStore

logger = get_logger(__name__)


def _log_retry(retry_state) -> None:
    logger.debug(
        "Session not visible yet, retry %d after %.2fs",
        retry_state.attempt_number,
        retry_state.next_action.sleep if retry_state.next_action else 0.0,
    )


async def load_with_backoff(
    store: ISessionStore,
    user_id: str,
    thread_id: str,
    attempts: int = 3,
    base_seconds: float = 0.25,
    max_seconds: float = 2.0,
) -> Session | None:
    """
    Read the session of (user, thread), retrying while it is absent.

    A session written by another process a moment ago may not be readable
    yet. Reads are retried with exponential backoff and give up with None
    after ``attempts`` tries, leaving the caller to fall back to recovery.
    Storage errors are not retried.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_exponential(multiplier=base_seconds, max=max_seconds),
        retry=retry_if_result(lambda session: session is None),
        before_sleep=_log_retry,
        retry_error_callback=lambda retry_state: None,
    )
    return await retrying(store.get_session, user_id, thread_id)
