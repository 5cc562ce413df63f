"""Suggested production timeline, worked back from a parsed due date."""

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any


@dataclass(frozen=True)
class TimelineTask:
    label: str
    phase: str
    days_before: int


PHASES: tuple[tuple[str, str], ...] = (
    ("kickoff", "Project kick-off"),
    ("create", "Marketing creates"),
    ("review", "Your review & approval"),
    ("delivery", "Go live"),
)

_KICKOFF = "Marketing reviews brief & confirms scope"

WEBINAR_TASKS = (
    TimelineTask(_KICKOFF, "kickoff", 29),
    TimelineTask("Email campaign drafts", "create", 22),
    TimelineTask("Social media content", "create", 22),
    TimelineTask("Slide deck", "create", 15),
    TimelineTask("Webinar registration page", "create", 8),
    TimelineTask("Review drafts & provide feedback", "review", 12),
    TimelineTask("Final approval", "review", 5),
)

WEBINAR_ADS_TASKS = (
    TimelineTask(_KICKOFF, "kickoff", 43),
    TimelineTask("Ad creative & targeting setup", "create", 36),
    TimelineTask("Email campaign drafts", "create", 29),
    TimelineTask("Social media content", "create", 29),
    TimelineTask("Slide deck", "create", 22),
    TimelineTask("Webinar registration page", "create", 15),
    TimelineTask("Review drafts & provide feedback", "review", 19),
    TimelineTask("Final approval", "review", 12),
    TimelineTask("Ad warm-up begins (runs through event)", "delivery", 14),
)

CONFERENCE_TASKS = (
    TimelineTask(_KICKOFF, "kickoff", 36),
    TimelineTask("Print production sent to printer (if needed)", "create", 29),
    TimelineTask("Pre-conference email campaign", "create", 22),
    TimelineTask("Social media promotion", "create", 22),
    TimelineTask("Booth collateral & signage", "create", 15),
    TimelineTask("Presentation slides", "create", 15),
    TimelineTask("Review drafts & provide feedback", "review", 19),
    TimelineTask("Final approval on all materials", "review", 8),
    TimelineTask("Assets delivered & ready to go", "delivery", 3),
)

DINNER_TASKS = (
    TimelineTask(_KICKOFF, "kickoff", 29),
    TimelineTask("Invitation design & copy", "create", 22),
    TimelineTask("Event branding & signage", "create", 15),
    TimelineTask("Email invitation campaign", "create", 15),
    TimelineTask("Review drafts & provide feedback", "review", 19),
    TimelineTask("Final approval", "review", 8),
    TimelineTask("Invitations sent", "delivery", 10),
)

QUICK_TASKS = (
    TimelineTask(_KICKOFF, "kickoff", 15),
    TimelineTask("Asset creation", "create", 8),
    TimelineTask("Review & approve", "review", 5),
)

DEFAULT_TASKS = (
    TimelineTask(_KICKOFF, "kickoff", 29),
    TimelineTask("Content & asset development", "create", 22),
    TimelineTask("Email & social promotion", "create", 15),
    TimelineTask("Review drafts & provide feedback", "review", 12),
    TimelineTask("Final approval", "review", 5),
)

QUICK_ASSETS = ("email", "social post", "graphic", "one-pager", "flyer", "banner", "headshot")
CONFERENCE_WORDS = ("conference", "trade show", "expo")
AD_WORDS = ("ad campaign", "digital ads", "run ads")
_AD = re.compile(r"\bads?\b")


def _text(fields: dict[str, Any], key: str) -> str:
    value = fields.get(key) or ""
    if isinstance(value, list):
        value = " ".join(value)
    return value.lower()


def select_tasks(fields: dict[str, Any]) -> tuple[TimelineTask, ...]:
    """Pick the task template that fits the request's context and deliverables."""
    context = _text(fields, "context_background")
    deliverables = _text(fields, "deliverables")

    if "webinar" in context:
        has_ads = bool(_AD.search(deliverables)) or any(w in context for w in AD_WORDS)
        return WEBINAR_ADS_TASKS if has_ads else WEBINAR_TASKS
    if any(w in context for w in CONFERENCE_WORDS):
        return CONFERENCE_TASKS
    if "dinner" in context or "insider" in context:
        return DINNER_TASKS
    if any(asset in deliverables for asset in QUICK_ASSETS):
        return QUICK_TASKS
    return DEFAULT_TASKS


def _format_day(day: date) -> str:
    return f"{day.strftime('%a, %b')} {day.day}"


def production_timeline(fields: dict[str, Any], today: date | None = None) -> str | None:
    """
    Render a suggested schedule working back from ``due_date_parsed``.

    Returns None when there is no parseable ISO due date. Dates already in
    the past are marked so the requester sees the schedule is tight.
    """
    parsed = fields.get("due_date_parsed")
    if not parsed:
        return None
    try:
        target = date.fromisoformat(parsed)
    except (TypeError, ValueError):
        return None

    today = today or date.today()
    tasks = select_tasks(fields)
    label = fields.get("due_date") or parsed

    lines = [f"*Suggested production timeline* (working back from {label}):", ""]
    has_past = False
    for phase, header in PHASES:
        entries = sorted(
            (target - timedelta(days=task.days_before), task.label)
            for task in tasks
            if task.phase == phase
        )
        if not entries:
            continue
        lines.append(f"*{header}*")
        for day, task_label in entries:
            marker = ""
            if day < today:
                has_past = True
                marker = " (past)"
            lines.append(f"  • By {_format_day(day)}: {task_label}{marker}")
        lines.append("")

    lines.append(f"*{_format_day(target)}*: Target date")
    if has_past:
        lines.append(
            "\nSome dates are already in the past, so this timeline is tight. "
            "We may need to adjust scope or the target date."
        )
    lines.append("\nDoes this timeline work for you? We can adjust if needed.")
    return "\n".join(lines)
