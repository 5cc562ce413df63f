"""Command classification module."""

from .classifier import (
    CONFIRMING_ORDER,
    DUP_CHECK_ORDER,
    FIELD_ORDER,
    FOLLOW_UP_ORDER,
    GATHERING_ORDER,
    CommandIntent,
    classify,
    looks_command_like,
    matches,
    strip_filler,
)

__all__ = [
    "CommandIntent",
    "classify",
    "matches",
    "looks_command_like",
    "strip_filler",
    "GATHERING_ORDER",
    "FIELD_ORDER",
    "FOLLOW_UP_ORDER",
    "CONFIRMING_ORDER",
    "DUP_CHECK_ORDER",
]
