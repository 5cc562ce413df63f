"""Idempotency guard: every inbound message id is processed at most once."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from ..errors import LedgerUnavailableError
from ..logging_config import get_logger
from ..storage import ISessionStore

logger = get_logger(__name__)


class IIdempotencyGuard(Protocol):
    """Exactly-once claim on inbound message ids."""

    async def claim(self, message_id: str) -> bool:
        """True for the first caller for this id, false forever after."""
        ...


class IdempotencyGuard:
    """
    Claims message ids in the durable ledger shared by every process.

    The guard fails closed: if the ledger cannot be written the claim raises
    LedgerUnavailableError and the caller must drop the message. Processing
    it anyway could create a second ticket when another process holds the
    same delivery.
    """

    def __init__(self, store: ISessionStore, retention_hours: float = 24.0):
        self._store = store
        self._retention = timedelta(hours=retention_hours)

    async def claim(self, message_id: str) -> bool:
        """True for the first caller for this id, false forever after."""
        try:
            claimed = await self._store.claim_message(message_id)
        except LedgerUnavailableError:
            logger.error("Dedup ledger unavailable for message %s", message_id, exc_info=True)
            raise
        except RuntimeError as e:
            logger.error("Dedup ledger unavailable for message %s: %s", message_id, e)
            raise LedgerUnavailableError(str(e)) from e

        if not claimed:
            logger.info("Duplicate delivery of message %s ignored", message_id)
        return claimed

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Drop ledger entries older than the retention window."""
        now = now or datetime.now(timezone.utc)
        removed = await self._store.purge_claims(now - self._retention)
        if removed:
            logger.info("Purged %d expired dedup entries", removed)
        return removed
