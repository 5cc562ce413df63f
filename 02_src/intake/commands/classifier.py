"""Command classifier: map short user replies to control intents.

Each intent owns an ordered list of anchored regular expressions. Callers pass
the intents they care about in priority order; the first match wins.
"""

import re
from enum import Enum
from typing import Iterable, Sequence


class CommandIntent(str, Enum):
    """Control intents recognised in free text."""

    CONFIRM = "confirm"
    CANCEL = "cancel"
    RESET = "reset"
    CONTINUE = "continue"
    CONTINUE_THERE = "continue_there"
    START_FRESH = "start_fresh"
    SUBMIT_AS_IS = "submit_as_is"
    SKIP = "skip"
    DONE = "done"
    IDK = "idk"
    DISCUSS = "discuss"
    NUDGE = "nudge"


_APOS = "['’]"


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


PATTERNS: dict[CommandIntent, tuple[re.Pattern, ...]] = {
    # Whole-message only: "correct the date to June 30" is a correction
    CommandIntent.CONFIRM: _compile(
        r"^y(es)?$", r"^confirm$", r"^submit(\s*(it|now|as[\s-]*is))?$",
        r"^looks?\s*good(\s*to\s*me)?$", r"^correct$", rf"^that{_APOS}?s?\s*(right|correct)$",
        r"^yep$", r"^yeah$", r"^yup$", r"^ok(ay)?$", r"^sure$", r"^sounds?\s*good$",
        r"^go\s*ahead$", r"^perfect$", r"^all\s*good$", r"^go\s*for\s*it$", r"^alright$",
        r"^right$", r"^absolutely$", r"^for\s*sure$",
        r"^(yes|yeah|yep|sure|ok(ay)?)[\s,]*(please|thanks|thank\s*you|submit(\s*it)?"
        rf"|do\s*it|go(\s*ahead)?|(looks?|sounds?)\s*good|that{_APOS}?s?\s*right)$",
        r"^(lgtm|ship\s*it)$", r"^approved$", r"^send\s*it$",
    ),
    CommandIntent.CANCEL: _compile(
        r"^cancel$", r"^nevermind$", r"^never\s*mind$", r"^forget\s*(about\s*)?it$",
        r"^nvm$", r"^stop$", r"^abort$", r"^quit$", r"^scratch\s*that$", r"^no\s*thanks$",
    ),
    CommandIntent.RESET: _compile(
        r"^start\s*over$", r"^reset$", r"^restart$", r"^from\s*scratch$",
    ),
    CommandIntent.CONTINUE: _compile(
        r"^continue$", r"^resume$", r"^pick\s*up$", r"^keep\s*going$",
    ),
    CommandIntent.CONTINUE_THERE: _compile(
        r"^continue\s*there$", r"^go\s*there$", r"^that\s*one$", r"^use\s*that(\s*one)?$",
        r"^there$", r"^the\s*other\s*one$",
    ),
    CommandIntent.START_FRESH: _compile(
        r"^start\s*fresh(\s*here)?$", r"^new\s*one$", r"^start\s*(a\s*)?new(\s*one)?$",
        r"^fresh$", r"^here$",
    ),
    CommandIntent.SUBMIT_AS_IS: _compile(
        r"^submit\s*as[\s-]*is$", r"^just\s*submit$", r"^submit\s*now$",
    ),
    CommandIntent.SKIP: _compile(
        r"^skip$", r"^skip\s*(this|it|that)$", r"^pass$", r"^next$", r"^move\s*on$",
        r"^n/?a$",
    ),
    CommandIntent.DONE: _compile(
        r"^done$", rf"^that{_APOS}?s?\s*all$", r"^no\s*more$", r"^nothing\s*(else)?$",
    ),
    CommandIntent.IDK: _compile(
        rf"^i\s*don{_APOS}?t\s*know", r"^not\s*sure", r"^no\s*idea", r"^unsure$",
        r"^idk$", r"^no\s*clue", rf"^i{_APOS}?m\s*not\s*sure", rf"^haven{_APOS}?t\s*decided",
        r"^good\s*question", r"^help\s*me\s*decide", r"^i\s*have\s*no\s*idea",
        r"^dunno", r"^beats\s*me", r"^not\s*certain", r"^no\s*preference",
        r"^hmm+", rf"^i{_APOS}?m\s*unsure",
    ),
    CommandIntent.DISCUSS: _compile(
        r"^discuss$", rf"^let{_APOS}?s\s*discuss", r"^need\s*to\s*(talk|discuss|chat)",
        r"^want\s*to\s*(talk|discuss|chat)", r"^can\s*we\s*(talk|discuss|chat)",
        r"^flag\s*(this|it)?", r"^needs?\s*discussion", r"^talk\s*(about\s*)?(this|it)",
        rf"^let{_APOS}?s\s*talk", r"^come\s*back\s*to\s*(this|it)",
        r"^not\s*sure.*talk", r"^circle\s*back",
    ),
    CommandIntent.NUDGE: _compile(
        r"^h(ello|i|ey|owdy)\b", r"^yo\b", r"^sup\b", rf"^what{_APOS}?s\s*up",
        r"^are\s*you\s*(there|still\s*there|around|listening|alive)",
        r"^anyone\s*(there|home|around)", r"^you\s*(there|still\s*there|around)",
        r"^still\s*(there|here|around|working)", r"^ping", r"^nudge", r"^poke",
        r"^come\s*back", r"^wake\s*up", r"^bot\??$", r"^help\s*me$", r"^\?\??$",
    ),
}

# A greeting followed by real content is not a nudge
_MAX_WORDS = {CommandIntent.NUDGE: 4}

ALL_INTENTS: tuple[CommandIntent, ...] = tuple(CommandIntent)

GATHERING_ORDER = (
    CommandIntent.CANCEL,
    CommandIntent.RESET,
    CommandIntent.CONTINUE,
    CommandIntent.NUDGE,
)
FIELD_ORDER = (CommandIntent.IDK, CommandIntent.DISCUSS)
FOLLOW_UP_ORDER = (
    CommandIntent.SUBMIT_AS_IS,
    CommandIntent.DONE,
    CommandIntent.SKIP,
    CommandIntent.IDK,
    CommandIntent.DISCUSS,
)
CONFIRMING_ORDER = (
    CommandIntent.CANCEL,
    CommandIntent.RESET,
    CommandIntent.START_FRESH,
    CommandIntent.CONTINUE,
    CommandIntent.CONFIRM,
    CommandIntent.NUDGE,
    CommandIntent.IDK,
)
DUP_CHECK_ORDER = (CommandIntent.CONTINUE_THERE, CommandIntent.START_FRESH)

_FILLER = re.compile(
    rf"^(?:(?:let{_APOS}?s|let\s+us|i{_APOS}?d\s+like\s+to|i\s+would\s+like\s+to"
    r"|i\s+want\s+to|i\s+wanna|can\s+we|could\s+we|can\s+you|could\s+you"
    r"|please|just|ok(?:ay)?|um+|uh+|well|actually|so)\b[\s,]*)+",
    re.IGNORECASE,
)
_TRAILING = re.compile(r"[.!]+$")


def normalize(text: str) -> str:
    """Trim whitespace and trailing sentence punctuation."""
    return _TRAILING.sub("", text.strip()).strip()


def strip_filler(text: str) -> str:
    """Remove leading filler phrases ("let's", "please", "I'd like to", ...)."""
    return _FILLER.sub("", normalize(text)).strip()


def _word_count(text: str) -> int:
    return len(text.split())


def _matches(text: str, intent: CommandIntent) -> bool:
    limit = _MAX_WORDS.get(intent)
    if limit is not None and _word_count(text) > limit:
        return False
    return any(p.search(text) for p in PATTERNS[intent])


def _first_match(text: str, order: Iterable[CommandIntent]) -> CommandIntent | None:
    if not text:
        return None
    for intent in order:
        if _matches(text, intent):
            return intent
    return None


def classify(
    text: str, order: Sequence[CommandIntent] = ALL_INTENTS
) -> CommandIntent | None:
    """
    Classify text against intents in the given priority order.

    The raw (normalized) text is tried first. If nothing matches, leading
    filler is stripped and the match runs once more.

    Returns:
        The first matching intent, or None.
    """
    cleaned = normalize(text)
    intent = _first_match(cleaned, order)
    if intent is not None:
        return intent

    stripped = strip_filler(cleaned)
    if stripped and stripped != cleaned:
        return _first_match(stripped, order)
    return None


def matches(text: str, intent: CommandIntent) -> bool:
    """True if text classifies as this intent on its own."""
    return classify(text, (intent,)) is intent


def looks_command_like(text: str) -> bool:
    """Short (four words or fewer) text that matches any command pattern."""
    cleaned = normalize(text)
    if not cleaned or _word_count(cleaned) > 4:
        return False
    return classify(cleaned) is not None
