"""User-facing texts for the intake conversation."""

from ..models import FollowUpQuestion, Session

FIELD_PROMPTS: dict[str, tuple[str, str]] = {
    "requester_department": (
        "What department are you in?",
        "e.g., CX, Corporate, BD, Product, P2",
    ),
    "target": (
        "Who is the target audience for this request?",
        "e.g., homeowners, real estate agents, internal team",
    ),
    "context_background": (
        "Can you share some context and background on this request?",
        "e.g., what prompted it, what's happening in the business",
    ),
    "desired_outcomes": (
        "What are the desired outcomes?",
        "e.g., increase sign-ups by 20%, drive awareness for the launch",
    ),
    "deliverables": (
        "What deliverable(s) do you need?",
        "e.g., 1 one-pager PDF, 3 social posts, an email template",
    ),
    "due_date": (
        "When do you need this by?",
        "e.g., next Friday, March 15, end of month",
    ),
}

FIELD_LABELS: dict[str, str] = {
    "requester_name": "Requester",
    "requester_department": "Department",
    "target": "Target audience",
    "context_background": "Context & background",
    "desired_outcomes": "Desired outcomes",
    "deliverables": "Deliverables",
    "due_date": "Due date",
    "approvals": "Approvals",
    "constraints": "Constraints",
    "supporting_links": "Supporting links",
}

NEEDS_DISCUSSION = "_needs discussion_"
NOT_PROVIDED = "_not provided_"

WELCOME = (
    "Hi! I'm the marketing intake assistant. I'll ask a few quick questions "
    "so the team has everything it needs. Say *cancel* at any time to stop."
)
CANCELLED = "No problem, I've cancelled this request. Start a new thread whenever you're ready."
RESTARTED = "Starting over. Let's begin again."
CANCELLED_INFO = "This request was cancelled. Start a new thread if you'd like to submit a new request!"
WITHDRAWN_INFO = "This request was withdrawn. Start a new thread if you'd like to submit a new request!"
COMPLETE_INFO = "This request has already been completed. Start a new thread for a new request!"
DIDNT_CATCH = "Sorry, I didn't quite catch that. Could you rephrase?"
WHAT_TO_CHANGE = "What would you like to change? Tell me the field and the new value."
SUBMITTING = "Submitting your request for review..."
SUBMITTED = (
    "Your request has been submitted! The marketing team will review it and "
    "follow up in this thread."
)
CONFIRMING_OPTIONS = (
    "You can reply *yes* to submit, tell me what to change, say *start over*, "
    "or *cancel*."
)
DISCUSS_NOTED = "Noted, I'll flag that for discussion with the team."
FOLLOW_UP_IDK = (
    "No worries, a rough idea is fine. You can also say *skip* or *discuss*.\n{question}"
)
RECOVERY_APOLOGY = (
    "Sorry, I lost track of our conversation for a moment. I've caught up on "
    "what you shared in this thread."
)

POST_SUB_MENU = (
    "Looks like you have something to share about this request. What would you like to do?\n"
    "• *add info* to send additional information\n"
    "• *change* to request a change\n"
    "• *withdraw* to withdraw the request"
)
POST_SUB_INFO_PROMPT = "Sure, what additional information would you like to share?"
POST_SUB_CHANGE_PROMPT = "What would you like to change about the request?"
POST_SUB_WITHDRAW_PROMPT = "Are you sure you want to withdraw this request? Reply *yes* to confirm."
POST_SUB_INFO_DONE = "Got it! Your additional information has been forwarded to the marketing team."
POST_SUB_CHANGE_DONE = "Scope change noted! The marketing team has been notified."
POST_SUB_WITHDRAW_CANCELLED = "Withdrawal cancelled. Your request is still active."
POST_SUB_WITHDRAWN = "Your request has been withdrawn."

NOTE_ADDITIONAL_INFO = "[Additional Information] from requester:\n{text}"
NOTE_SCOPE_CHANGE = "[Scope Change] from requester:\n{text}"
NOTE_WITHDRAWN = "Request withdrawn by requester."

DRAFT_ASK_LINK = (
    "Sounds like you already have something started! Could you share a link to it? "
    "Say *skip* if you'll share it later."
)
DRAFT_ASK_READINESS = (
    "Got it! Is this ready for marketing to work with, or is it still in progress?\n"
    "_Just say *ready* or *in progress*._"
)
DRAFT_REASK_READINESS = (
    "Just to make sure, is this *ready* for marketing to use, or is it still *in progress*?"
)
DRAFT_ASK_EXPECTED_DATE = "When do you expect it to be ready? Say *skip* if you're not sure."
DRAFT_ASK_MORE = "Anything else you've already got? Share another link, or say *done*."

DUP_CHECK_PROMPT = (
    "You already have an open request in another thread{where}. Would you like to "
    "*continue there* or *start fresh* here?"
)
DUP_CHECK_CONTINUE_THERE = (
    "No problem! Here's your open conversation{where}. Just reply there to pick up "
    "where you left off."
)
DUP_CHECK_STARTED_FRESH = "Okay, I've closed the other request. Let's start fresh here."

REVIEW_DECLINED = (
    "Your request was reviewed and declined by the marketing team. Reply here or "
    "reach out to {contact} if you have questions."
)
REVIEW_APPROVED = "Good news! Your request was approved and the team is on it."


def field_question(field_key: str) -> str:
    question, example = FIELD_PROMPTS[field_key]
    return f"{question}\n_{example}_"


def field_guidance(field_key: str) -> str:
    """Help text when the requester doesn't know how to answer."""
    question, example = FIELD_PROMPTS[field_key]
    return (
        f"No worries! A rough answer is fine, {example[0].lower()}{example[1:]}.\n"
        f"If you'd rather talk it through with the team, say *discuss* and I'll flag it.\n"
        f"{question}"
    )


def identity_line(session: Session) -> str | None:
    name = session.fields.get("requester_name")
    department = session.fields.get("requester_department")
    if name and department:
        return f"I have you down as *{name}* from *{department}*. Tell me if that's wrong."
    if name:
        return f"I have you down as *{name}*."
    return None


def follow_up_text(question: FollowUpQuestion, index: int, total: int) -> str:
    remaining = total - index
    if remaining == 1:
        return f"{question.question}\n_Last one!_"
    if remaining <= 3:
        return f"{question.question}\n_Just {remaining} more_"
    return question.question


def _value_text(value) -> str:
    if isinstance(value, list):
        return ", ".join(value) if value else NOT_PROVIDED
    return value or NOT_PROVIDED


def summary(session: Session, ask_confirmation: bool = True) -> str:
    """Collected-fields summary shown before submission."""
    fields = session.fields
    lines = [":white_check_mark: *Here's what I've got:*", ""]
    for key in (
        "requester_name",
        "requester_department",
        "target",
        "context_background",
        "desired_outcomes",
        "deliverables",
        "due_date",
    ):
        lines.append(f"• *{FIELD_LABELS[key]}:* {_value_text(fields.get(key))}")
    for key in ("approvals", "constraints", "supporting_links"):
        if session.is_field_populated(key):
            lines.append(f"• *{FIELD_LABELS[key]}:* {_value_text(fields.get(key))}")

    for asset in session.side_channel.existing_assets:
        lines.append(f"• *Existing asset:* {asset.link} ({asset.status})")
    for question in session.follow_up_questions:
        answer = session.side_channel.get_extra(question.field_key)
        if answer:
            lines.append(f"• *{question.field_key.replace('_', ' ').capitalize()}:* {answer}")
    if session.side_channel.needs_discussion:
        labels = ", ".join(flag.label for flag in session.side_channel.needs_discussion)
        lines.append(f"• *Needs discussion:* {labels}")

    if ask_confirmation:
        lines.append("")
        lines.append("Does this look right? Reply *yes* to submit, or tell me what to change.")
    return "\n".join(lines)


def collected_overview(session: Session) -> str:
    """Short list of what has been collected so far."""
    lines = [
        f"• *{FIELD_LABELS[key]}:* {_value_text(session.fields.get(key))}"
        for key in FIELD_PROMPTS
        if session.is_field_populated(key)
    ]
    return "\n".join(lines) if lines else "_Nothing yet._"


def idle_reminder(session: Session) -> str:
    return (
        "Just checking in on your request. Here's what I have so far:\n"
        f"{collected_overview(session)}\n\n"
        "Reply *continue* to pick up where we left off, *start over*, or *cancel*."
    )


def review_message(session: Session) -> str:
    requester = session.fields.get("requester_name") or session.user_name or session.user_id
    header = f"*New {session.classification.value} request* from {requester}"
    if session.external_item_url:
        header += f"\n<{session.external_item_url}|Open ticket>"
    return f"{header}\n\n{summary(session, ask_confirmation=False)}"


def generic_apology(contact: str, form_url: str | None = None) -> str:
    text = (
        "Something went wrong on my end. Please try again in a moment, or tag "
        f"someone from {contact} for help."
    )
    if form_url:
        text += f" You can also submit the request with the intake form: {form_url}"
    return text
