"""Context-aware help for a requester who doesn't know how to answer a field."""

from typing import Any

DEPARTMENT_GUIDANCE = (
    "No worries! Here are the departments that typically request marketing support:\n\n"
    "• *CX*: Customer Experience\n"
    "• *Corporate*: Corporate team\n"
    "• *BD*: Business Development\n"
    "• *Product*: Product team\n"
    "• *P2*: Partner Program\n"
    "• *Other*: Anything else\n\n"
    "Which one are you part of?"
)

CONFERENCE_TARGET_GUIDANCE = (
    "For conference-related requests, the audience is usually one of these:\n\n"
    "• *Conference attendees*: people at the event\n"
    "• *Real estate agents*: if it's an industry conference\n"
    "• *Contractors / HVAC professionals*: if it's a trade show\n"
    "• *Partners*: existing partners attending\n\n"
    "Who are you trying to reach at the event?"
)

TARGET_GUIDANCE = (
    "Here are some common audiences for our marketing:\n\n"
    "• *Homeowners*: current or prospective\n"
    "• *Real estate agents*: individual agents or brokerages\n"
    "• *Contractors / HVAC professionals*\n"
    "• *Partners*: existing partners\n"
    "• *Internal team*: our own employees\n\n"
    "Who is this for?"
)

DUE_DATE_GUIDANCE = {
    "conference": (
        "For conferences, we typically work backwards from the event date. "
        "Do you know when the conference is? I can help figure out when materials "
        "need to be ready."
    ),
    "webinar": (
        "For webinars, we usually need the content ready 1-2 weeks before the session "
        "to allow time for the registration page and promo. When are you planning to "
        "hold the webinar?"
    ),
    "dinner": (
        "For dinners, we work backwards from the event date for invitations and "
        "branding. When is the dinner? I'll help plan the timeline."
    ),
    "quick": (
        "For single assets like this, we typically need 1-2 weeks. Do you have a "
        "specific date in mind, or is there an event or launch driving the timeline?"
    ),
    "default": (
        "Here's a rough guide:\n"
        "• *Quick assets* (email, social post, graphic): 1-2 weeks\n"
        "• *Full campaigns* (multi-channel, event support): 4-6 weeks\n\n"
        "Do you have a specific deadline, or is there an event or launch driving "
        "the timeline?"
    ),
}

CONFERENCE_WORDS = ("conference", "trade show", "expo")
QUICK_ASSETS = ("email", "social", "graphic", "one-pager", "flyer", "banner", "headshot", "photo")


def _lower(fields: dict[str, Any], key: str) -> str:
    value = fields.get(key) or ""
    if isinstance(value, list):
        value = " ".join(value)
    return value.lower()


def _due_date_kind(fields: dict[str, Any]) -> str:
    context = _lower(fields, "context_background")
    deliverables = _lower(fields, "deliverables")
    if any(w in context for w in CONFERENCE_WORDS):
        return "conference"
    if "webinar" in context:
        return "webinar"
    if "dinner" in context or "insider" in context:
        return "dinner"
    if any(a in deliverables or a in context for a in QUICK_ASSETS):
        return "quick"
    return "default"


def template_guidance(field_key: str, fields: dict[str, Any]) -> str | None:
    """
    Canned guidance for fields with a bounded set of answers.

    Returns None for open-ended fields, which get generated guidance instead.
    """
    if field_key == "requester_department":
        return DEPARTMENT_GUIDANCE
    if field_key == "target":
        context = _lower(fields, "context_background")
        if any(w in context for w in CONFERENCE_WORDS):
            return CONFERENCE_TARGET_GUIDANCE
        return TARGET_GUIDANCE
    if field_key == "due_date":
        return DUE_DATE_GUIDANCE[_due_date_kind(fields)]
    return None


def calendar_note(calendar_url: str | None) -> str:
    if not calendar_url:
        return ""
    return f"\n\n_Or if you'd like to talk it through, <{calendar_url}|schedule time with marketing>._"
