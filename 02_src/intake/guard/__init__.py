"""Idempotency guard module."""

from .idempotency import IdempotencyGuard, IIdempotencyGuard

__all__ = ["IdempotencyGuard", "IIdempotencyGuard"]
