"""Project-level configuration, path helpers and runtime settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "intake.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class IntakeSettings:
    """Tunables for the intake pipeline.

    Durations are in seconds unless the name says otherwise.
    """

    debounce_seconds: float = 2.0
    recovery_min_thread_age_seconds: float = 10.0
    history_limit: int = 100
    load_retry_attempts: int = 3
    load_retry_base_seconds: float = 0.25
    load_retry_max_seconds: float = 2.0
    substantive_min_chars: int = 15
    dedup_retention_hours: float = 24.0
    idle_reminder_hours: float = 24.0
    sweep_interval_seconds: float = 300.0
    review_channel_id: str | None = None
    fallback_contact: str = "the marketing team"
    intake_form_url: str | None = None
    calendar_url: str | None = None
    ticket_api_url: str | None = None
    ticket_api_token: str | None = None
    llm_model: str = "claude-sonnet-4-5"

    @classmethod
    def from_env(cls) -> "IntakeSettings":
        """Build settings from INTAKE_* environment variables."""
        defaults = cls()
        return cls(
            debounce_seconds=_env_float("INTAKE_DEBOUNCE_SECONDS", defaults.debounce_seconds),
            recovery_min_thread_age_seconds=_env_float(
                "INTAKE_RECOVERY_MIN_AGE_SECONDS", defaults.recovery_min_thread_age_seconds
            ),
            history_limit=_env_int("INTAKE_HISTORY_LIMIT", defaults.history_limit),
            load_retry_attempts=_env_int(
                "INTAKE_LOAD_RETRY_ATTEMPTS", defaults.load_retry_attempts
            ),
            load_retry_base_seconds=_env_float(
                "INTAKE_LOAD_RETRY_BASE_SECONDS", defaults.load_retry_base_seconds
            ),
            load_retry_max_seconds=_env_float(
                "INTAKE_LOAD_RETRY_MAX_SECONDS", defaults.load_retry_max_seconds
            ),
            substantive_min_chars=_env_int(
                "INTAKE_SUBSTANTIVE_MIN_CHARS", defaults.substantive_min_chars
            ),
            dedup_retention_hours=_env_float(
                "INTAKE_DEDUP_RETENTION_HOURS", defaults.dedup_retention_hours
            ),
            idle_reminder_hours=_env_float(
                "INTAKE_IDLE_REMINDER_HOURS", defaults.idle_reminder_hours
            ),
            sweep_interval_seconds=_env_float(
                "INTAKE_SWEEP_INTERVAL_SECONDS", defaults.sweep_interval_seconds
            ),
            review_channel_id=os.getenv("INTAKE_REVIEW_CHANNEL_ID") or None,
            fallback_contact=os.getenv("INTAKE_FALLBACK_CONTACT", defaults.fallback_contact),
            intake_form_url=os.getenv("INTAKE_FORM_URL") or None,
            calendar_url=os.getenv("INTAKE_CALENDAR_URL") or None,
            ticket_api_url=os.getenv("TICKET_API_URL") or None,
            ticket_api_token=os.getenv("TICKET_API_TOKEN") or None,
            llm_model=os.getenv("INTAKE_LLM_MODEL", defaults.llm_model),
        )
