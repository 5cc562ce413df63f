"""Storage module."""

from .storage import ISessionStore, SessionStore

__all__ = ["ISessionStore", "SessionStore"]
