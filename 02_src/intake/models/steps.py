"""Step markers stored in Session.current_step.

A step is either a bare required-field key (the question currently asked) or a
namespaced sub-flow marker like ``draft:awaiting_link``.
"""

DRAFT_PREFIX = "draft:"
POST_SUB_PREFIX = "post_sub:"
DUP_CHECK_PREFIX = "dup_check:"

DRAFT_AWAITING_LINK = "draft:awaiting_link"
DRAFT_AWAITING_READINESS = "draft:awaiting_readiness"
DRAFT_AWAITING_EXPECTED_DATE = "draft:awaiting_expected_date"
DRAFT_AWAITING_MORE = "draft:awaiting_more"

POST_SUB_AWAITING_INFO = "post_sub:awaiting_info"
POST_SUB_AWAITING_CHANGE = "post_sub:awaiting_change"
POST_SUB_AWAITING_WITHDRAW_CONFIRM = "post_sub:awaiting_withdraw_confirm"


def is_draft_step(step: str | None) -> bool:
    return bool(step) and step.startswith(DRAFT_PREFIX)


def is_post_sub_step(step: str | None) -> bool:
    return bool(step) and step.startswith(POST_SUB_PREFIX)


def is_dup_check_step(step: str | None) -> bool:
    return bool(step) and step.startswith(DUP_CHECK_PREFIX)


def is_subflow_step(step: str | None) -> bool:
    """True for any namespaced marker (as opposed to a field key)."""
    return is_draft_step(step) or is_post_sub_step(step) or is_dup_check_step(step)


def dup_check_step(other_session_id: int) -> str:
    return f"{DUP_CHECK_PREFIX}{other_session_id}"


def parse_dup_check(step: str | None) -> int | None:
    """Return the other session id encoded in a dup_check marker."""
    if not is_dup_check_step(step):
        return None
    try:
        return int(step[len(DUP_CHECK_PREFIX):])
    except ValueError:
        return None
