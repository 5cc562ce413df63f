"""Dialogue module."""

from .arbitrator import DuplicateSessionArbitrator
from .debounce import DebounceCoordinator, IDebounceCoordinator, debounce_key
from .drafts import DraftFlow
from .machine import ISessionStateMachine, ReviewDecision, SessionStateMachine
from .post_submission import PostSubmissionAction, PostSubmissionFlow
from .timeouts import SweepResult, TimeoutSweeper

__all__ = [
    "SessionStateMachine",
    "ISessionStateMachine",
    "ReviewDecision",
    "DraftFlow",
    "PostSubmissionFlow",
    "PostSubmissionAction",
    "DuplicateSessionArbitrator",
    "DebounceCoordinator",
    "IDebounceCoordinator",
    "debounce_key",
    "TimeoutSweeper",
    "SweepResult",
]
