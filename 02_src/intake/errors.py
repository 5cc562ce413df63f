"""Exception types raised across the intake pipeline."""


class IntakeError(Exception):
    """Base class for intake errors."""


class StorageError(IntakeError):
    """A persistence operation failed. Fatal for the message being processed."""


class StaleSessionError(StorageError):
    """The session row changed since it was loaded (version mismatch)."""

    def __init__(self, session_id: int | None, expected_version: int):
        super().__init__(
            f"Session {session_id} was modified concurrently "
            f"(expected version {expected_version})"
        )
        self.session_id = session_id
        self.expected_version = expected_version


class SessionConflictError(StorageError):
    """A live session already exists for this user in this thread."""

    def __init__(self, user_id: str, thread_id: str):
        super().__init__(f"Live session already exists for {user_id} in {thread_id}")
        self.user_id = user_id
        self.thread_id = thread_id


class LedgerUnavailableError(StorageError):
    """The dedup ledger could not be consulted; the message must be dropped."""


class ExtractionError(IntakeError):
    """The extraction collaborator returned an unusable payload."""


class TicketError(IntakeError):
    """The ticket tracker rejected a request."""
