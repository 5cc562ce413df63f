"""Inbound message handling module."""

from .backoff import load_with_backoff
from .router import IInboundRouter, InboundRouter

__all__ = ["IInboundRouter", "InboundRouter", "load_with_backoff"]
