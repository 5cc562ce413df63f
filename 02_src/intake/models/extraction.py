"""Data exchanged with the field-extraction and ticket collaborators."""

from dataclasses import dataclass, field


@dataclass
class ExtractedFields:
    """Structured fields pulled out of free text."""

    fields: dict[str, str | list[str]] = field(default_factory=dict)
    confidence: float = 0.0
    acknowledgment: str | None = None


@dataclass
class FollowUpQuestion:
    """An adaptive question asked after the required fields are in."""

    field_key: str
    question: str


@dataclass
class FollowUpAnswer:
    """Interpretation of a reply to a follow-up question."""

    value: str
    additional_fields: dict[str, str] = field(default_factory=dict)


@dataclass
class TicketRef:
    """Identity of a ticket created in the external tracker."""

    ticket_id: str
    url: str | None = None
