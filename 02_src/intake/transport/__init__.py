"""Transport module."""

from .base import ITransport, infer_department, resolve_requester
from .memory import InMemoryTransport

__all__ = ["ITransport", "InMemoryTransport", "infer_department", "resolve_requester"]
