"""Ticket tracker module."""

from .tracker import HttpTicketTracker, InMemoryTicketTracker, ITicketTracker

__all__ = ["ITicketTracker", "HttpTicketTracker", "InMemoryTicketTracker"]
