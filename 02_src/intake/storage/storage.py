"""SQLite session store and dedup ledger."""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import (
    LedgerUnavailableError,
    SessionConflictError,
    StaleSessionError,
    StorageError,
)
from ..logging_config import get_logger
from ..models import (
    Classification,
    FollowUpQuestion,
    Session,
    SessionStatus,
    SideChannel,
)
from ..models.session import empty_fields

logger = get_logger(__name__)

_LIVE_SQL = "('gathering', 'confirming', 'pending_approval')"
_TERMINAL_SQL = "('complete', 'cancelled', 'withdrawn')"

_SESSION_COLUMNS = (
    "user_id",
    "user_name",
    "channel_id",
    "thread_id",
    "status",
    "current_step",
    "collected_fields",
    "side_channel",
    "classification",
    "request_types",
    "follow_up_questions",
    "follow_up_index",
    "external_item_id",
    "external_item_url",
    "review_channel_id",
    "review_message_id",
    "timeout_notified",
)


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ISessionStore(Protocol):
    """Durable mapping from (user, thread) to session state, plus the dedup ledger."""

    async def init(self) -> None:
        """Open database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Sessions
    async def create_session(self, session: Session) -> Session:
        """Insert a new session and assign its id."""
        ...

    async def save_session(self, session: Session) -> None:
        """Persist a session (version-checked update, or insert if new)."""
        ...

    async def get_session(self, user_id: str, thread_id: str) -> Session | None:
        """Most relevant session for this user in this thread."""
        ...

    async def get_session_by_id(self, session_id: int) -> Session | None:
        """Load a session by id."""
        ...

    async def get_active_session_for_user(
        self, user_id: str, exclude_thread_id: str
    ) -> Session | None:
        """Most recent live session of the user in another thread."""
        ...

    async def cancel_session(self, session_id: int) -> bool:
        """Cancel a non-terminal session. Idempotent."""
        ...

    async def list_idle_sessions(
        self, updated_before: datetime, notified: bool
    ) -> list[Session]:
        """Gathering/confirming sessions untouched since ``updated_before``."""
        ...

    async def mark_timeout_notified(self, session_id: int, at: datetime) -> None:
        """Record that the idle reminder was sent."""
        ...

    # Dedup ledger
    async def claim_message(self, message_id: str) -> bool:
        """Atomically claim a message id. True only for the first claim."""
        ...

    async def purge_claims(self, older_than: datetime) -> int:
        """Delete ledger entries claimed before ``older_than``."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class SessionStore:
    """SQLite implementation of ISessionStore."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Open database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()
        logger.info("Session store opened at %s", self._db_path)

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _connection(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def _write(self, sql: str, params: tuple) -> int:
        """Run one write statement in its own transaction. Returns rowcount."""
        conn = self._connection()
        try:
            cursor = await conn.execute(sql, params)
            await conn.commit()
            return cursor.rowcount
        except sqlite3.Error:
            await conn.rollback()
            raise

    # Sessions

    def _session_values(self, session: Session) -> tuple:
        return (
            session.user_id,
            session.user_name,
            session.channel_id,
            session.thread_id,
            session.status.value,
            session.current_step,
            json.dumps(session.fields),
            json.dumps(session.side_channel.to_dict()),
            session.classification.value,
            json.dumps(session.request_types),
            json.dumps(
                [
                    {"field_key": q.field_key, "question": q.question}
                    for q in session.follow_up_questions
                ]
            ),
            session.follow_up_index,
            session.external_item_id,
            session.external_item_url,
            session.review_channel_id,
            session.review_message_id,
            1 if session.timeout_notified else 0,
        )

    async def create_session(self, session: Session) -> Session:
        """Insert a new session and assign its id."""
        conn = self._connection()
        now = _now()
        columns = ", ".join(_SESSION_COLUMNS)
        placeholders = ", ".join("?" * (len(_SESSION_COLUMNS) + 3))

        try:
            cursor = await conn.execute(
                f"""
                INSERT INTO sessions ({columns}, version, created_at, updated_at)
                VALUES ({placeholders})
                """,
                self._session_values(session) + (1, _ts(now), _ts(now)),
            )
            await conn.commit()
        except sqlite3.IntegrityError as e:
            await conn.rollback()
            raise SessionConflictError(session.user_id, session.thread_id) from e
        except sqlite3.Error as e:
            await conn.rollback()
            raise StorageError(f"Failed to create session: {e}") from e

        session.id = cursor.lastrowid
        session.version = 1
        session.created_at = now
        session.updated_at = now
        logger.debug("Created session %s for %s", session.id, session.user_id)
        return session

    async def save_session(self, session: Session) -> None:
        """Persist a session (version-checked update, or insert if new)."""
        if session.id is None:
            await self.create_session(session)
            return

        now = _now()
        assignments = ", ".join(f"{column} = ?" for column in _SESSION_COLUMNS)
        try:
            rowcount = await self._write(
                f"""
                UPDATE sessions
                SET {assignments}, version = version + 1, updated_at = ?
                WHERE id = ? AND version = ?
                """,
                self._session_values(session) + (_ts(now), session.id, session.version),
            )
        except sqlite3.IntegrityError as e:
            raise SessionConflictError(session.user_id, session.thread_id) from e
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save session {session.id}: {e}") from e

        if rowcount == 0:
            raise StaleSessionError(session.id, session.version)

        session.version += 1
        session.updated_at = now

    async def _fetch_one(self, sql: str, params: tuple) -> Session | None:
        conn = self._connection()
        try:
            cursor = await conn.execute(sql, params)
            row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to load session: {e}") from e
        return self._row_to_session(row) if row else None

    async def get_session(self, user_id: str, thread_id: str) -> Session | None:
        """Most relevant session for this user in this thread (live first)."""
        return await self._fetch_one(
            f"""
            SELECT * FROM sessions
            WHERE user_id = ? AND thread_id = ?
            ORDER BY CASE WHEN status IN {_LIVE_SQL} THEN 0 ELSE 1 END,
                     updated_at DESC, id DESC
            LIMIT 1
            """,
            (user_id, thread_id),
        )

    async def get_session_by_id(self, session_id: int) -> Session | None:
        """Load a session by id."""
        return await self._fetch_one(
            "SELECT * FROM sessions WHERE id = ?", (session_id,)
        )

    async def get_active_session_for_user(
        self, user_id: str, exclude_thread_id: str
    ) -> Session | None:
        """Most recent live session of the user in another thread."""
        return await self._fetch_one(
            f"""
            SELECT * FROM sessions
            WHERE user_id = ? AND thread_id != ? AND status IN {_LIVE_SQL}
            ORDER BY updated_at DESC, id DESC
            LIMIT 1
            """,
            (user_id, exclude_thread_id),
        )

    async def cancel_session(self, session_id: int) -> bool:
        """Cancel a non-terminal session. Terminal sessions are left untouched."""
        try:
            rowcount = await self._write(
                f"""
                UPDATE sessions
                SET status = 'cancelled', version = version + 1, updated_at = ?
                WHERE id = ? AND status NOT IN {_TERMINAL_SQL}
                """,
                (_ts(_now()), session_id),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to cancel session {session_id}: {e}") from e
        if rowcount:
            logger.info("Cancelled session %s", session_id)
        return rowcount > 0

    async def list_idle_sessions(
        self, updated_before: datetime, notified: bool
    ) -> list[Session]:
        """Gathering/confirming sessions untouched since ``updated_before``."""
        conn = self._connection()
        try:
            cursor = await conn.execute(
                """
                SELECT * FROM sessions
                WHERE status IN ('gathering', 'confirming')
                  AND timeout_notified = ?
                  AND updated_at < ?
                ORDER BY updated_at ASC
                """,
                (1 if notified else 0, _ts(updated_before)),
            )
            rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list idle sessions: {e}") from e
        return [self._row_to_session(row) for row in rows]

    async def mark_timeout_notified(self, session_id: int, at: datetime) -> None:
        """Record that the idle reminder was sent; restarts the idle clock."""
        try:
            await self._write(
                """
                UPDATE sessions
                SET timeout_notified = 1, updated_at = ?
                WHERE id = ?
                """,
                (_ts(at), session_id),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to mark session {session_id}: {e}") from e

    def _row_to_session(self, row: aiosqlite.Row) -> Session:
        fields = empty_fields()
        fields.update(json.loads(row["collected_fields"]))
        return Session(
            id=row["id"],
            user_id=row["user_id"],
            user_name=row["user_name"],
            channel_id=row["channel_id"],
            thread_id=row["thread_id"],
            status=SessionStatus(row["status"]),
            current_step=row["current_step"],
            fields=fields,
            side_channel=SideChannel.from_dict(json.loads(row["side_channel"])),
            classification=Classification(row["classification"]),
            request_types=json.loads(row["request_types"]),
            follow_up_questions=[
                FollowUpQuestion(field_key=q["field_key"], question=q["question"])
                for q in json.loads(row["follow_up_questions"])
            ],
            follow_up_index=row["follow_up_index"],
            external_item_id=row["external_item_id"],
            external_item_url=row["external_item_url"],
            review_channel_id=row["review_channel_id"],
            review_message_id=row["review_message_id"],
            timeout_notified=bool(row["timeout_notified"]),
            version=row["version"],
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
        )

    # Dedup ledger

    async def claim_message(self, message_id: str) -> bool:
        """Atomically claim a message id. True only for the first claim."""
        try:
            rowcount = await self._write(
                """
                INSERT OR IGNORE INTO message_dedup (message_id, claimed_at)
                VALUES (?, ?)
                """,
                (message_id, _ts(_now())),
            )
        except sqlite3.Error as e:
            raise LedgerUnavailableError(f"Dedup ledger write failed: {e}") from e
        return rowcount == 1

    async def purge_claims(self, older_than: datetime) -> int:
        """Delete ledger entries claimed before ``older_than``."""
        try:
            return await self._write(
                "DELETE FROM message_dedup WHERE claimed_at < ?",
                (_ts(older_than),),
            )
        except sqlite3.Error as e:
            raise LedgerUnavailableError(f"Dedup ledger purge failed: {e}") from e

    # Lifecycle

    async def clear(self) -> None:
        """Clear all data."""
        conn = self._connection()
        for table in ("sessions", "message_dedup"):
            await conn.execute(f"DELETE FROM {table}")
        await conn.commit()
