"""Session recovery module."""

from .engine import IRecoveryEngine, RecoveryEngine, clean_user_text

__all__ = ["IRecoveryEngine", "RecoveryEngine", "clean_user_text"]
