"""Quick/full sizing of a request from its collected fields."""

from typing import Any

from ..models import Classification

FULL_KEYWORDS = (
    "campaign",
    "launch",
    "rebrand",
    "overhaul",
    "strategy",
    "multi-channel",
    "multichannel",
    "series",
    "event",
    "conference",
    "trade show",
    "program",
    "initiative",
)

QUICK_KEYWORDS = (
    "social post",
    "social media post",
    "one-pager",
    "one pager",
    "email template",
    "blog post",
    "flyer",
    "banner",
    "graphic",
    "icon",
    "headshot",
    "photo edit",
    "update",
    "revision",
    "tweak",
    "edit",
)


def classify_request(fields: dict[str, Any]) -> Classification:
    """
    Size a request.

    Campaign-level wording in the context or outcomes, or more than two
    deliverables, makes it a full request. A single deliverable, or two
    with simple-asset wording, is quick. No deliverables and no wording
    leaves it undetermined.
    """
    deliverables = fields.get("deliverables") or []
    text = " ".join(
        str(fields.get(key) or "").lower() for key in ("context_background", "desired_outcomes")
    )

    if any(keyword in text for keyword in FULL_KEYWORDS):
        return Classification.FULL
    if len(deliverables) > 2:
        return Classification.FULL

    quick_wording = any(keyword in text for keyword in QUICK_KEYWORDS)
    if len(deliverables) <= 1 and quick_wording:
        return Classification.QUICK
    if len(deliverables) == 1:
        return Classification.QUICK
    if len(deliverables) == 2:
        return Classification.QUICK if quick_wording else Classification.FULL
    return Classification.UNDETERMINED
