"""Field-extraction collaborator backed by the LLM provider."""

import json
import re
from datetime import date
from typing import Any, Protocol

from ..errors import ExtractionError
from ..logging_config import get_logger
from ..models import ALL_FIELDS, LIST_FIELDS, ExtractedFields, FollowUpAnswer, FollowUpQuestion
from .llm_provider import ILLMProvider

logger = get_logger(__name__)

REQUEST_TYPES = (
    "email",
    "social",
    "print",
    "event",
    "web",
    "video",
    "presentation",
    "design",
    "other",
)

EXTRACTION_SYSTEM_PROMPT = """You are an intake assistant for a marketing team.
Extract structured information from a requester's free-text message about a marketing request.

Fields:
- requester_name: name of the person making the request, if they introduce themselves
- requester_department: the department or team making the request
- target: the target audience (e.g. "homeowners", "real estate agents", "internal team")
- context_background: why this request exists and what prompted it
- desired_outcomes: what the requester hopes to achieve
- deliverables: array of specific deliverables (e.g. ["1 one-pager PDF", "3 social posts"])
- due_date: the due date as the user expressed it ("next Friday", "ASAP")
- due_date_parsed: ISO date (YYYY-MM-DD) for due_date relative to today's date, null for ASAP
- approvals: specific approval requirements
- constraints: constraints or limitations
- supporting_links: array of URLs the user mentions

Rules:
- Extract every field present in a bundled answer.
- Only return fields you can extract with confidence; never guess. Omit or null the rest.
- For skip words ("skip", "none", "n/a") on optional fields return null.
- "confidence" (0-1) is your overall confidence.
- "acknowledgment" is one short, friendly sentence confirming what you understood, or null.

Respond with ONLY a JSON object, no markdown formatting, no explanation."""

REQUEST_TYPE_SYSTEM_PROMPT = f"""You classify marketing requests by the kinds of work involved.
Allowed types: {", ".join(REQUEST_TYPES)}.
Respond with ONLY a JSON object: {{"types": ["..."]}}"""

FOLLOW_UP_SYSTEM_PROMPT = """You help a marketing team gather the details it needs to start work.
Given a request and its types, write at most 5 short follow-up questions that
the team would need answered. Do not ask about anything already collected.
Each question gets a snake_case field_key naming what it asks about.
Respond with ONLY a JSON object: {"questions": [{"field_key": "...", "question": "..."}]}"""

INTERPRET_SYSTEM_PROMPT = """You interpret a requester's answer to a follow-up question.
Return the answer as a concise value. If the answer also answers one of the
upcoming questions, return that detail in additional_fields under the upcoming
question's exact key. Other details (a due date, audience, links) go in
additional_fields keyed in snake_case.
Respond with ONLY a JSON object: {"value": "...", "additional_fields": {}}"""

GUIDANCE_SYSTEM_PROMPT = """You are a friendly intake assistant for a marketing team.
The requester was asked about one field of their request and said they don't know.
Using what has already been collected, give a brief, helpful suggestion to guide them.
Be conversational and warm. End with a question they can answer.
Keep it to 2-4 sentences. Respond with plain text only."""

GUIDANCE_FIELD_DESCRIPTIONS = {
    "deliverables": "what deliverables or assets the marketing team should create",
    "desired_outcomes": "what the requester hopes to achieve with this request",
    "context_background": "the context and background for why this request exists",
}

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")


def parse_json_payload(text: str) -> Any:
    """Parse a JSON reply, tolerating markdown code fences."""
    cleaned = _FENCE_END.sub("", _FENCE_START.sub("", text.strip())).strip()
    return json.loads(cleaned)


def _format_known(known_fields: dict[str, Any]) -> list[str]:
    lines = []
    for key, value in known_fields.items():
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        lines.append(f"- {key}: {value}")
    return lines


class IFieldExtractor(Protocol):
    """Turns free text into structured intake data."""

    async def extract_fields(
        self, text: str, known_fields: dict[str, Any], current_step: str | None = None
    ) -> ExtractedFields:
        """Extract intake fields from free text."""
        ...

    async def classify_request_type(self, fields: dict[str, Any]) -> list[str]:
        """Classify the kinds of work a request involves."""
        ...

    async def generate_follow_up_questions(
        self, fields: dict[str, Any], request_types: list[str]
    ) -> list[FollowUpQuestion]:
        """Generate adaptive questions for a request."""
        ...

    async def interpret_follow_up_answer(
        self,
        text: str,
        question: FollowUpQuestion,
        known_fields: dict[str, Any],
        remaining_questions: list[FollowUpQuestion],
    ) -> FollowUpAnswer:
        """Interpret a reply to a follow-up question."""
        ...

    async def generate_field_guidance(self, field_key: str, known_fields: dict[str, Any]) -> str:
        """Suggest how to answer a field the requester is unsure about."""
        ...


class FieldExtractor:
    """LLM-backed implementation of IFieldExtractor."""

    def __init__(self, llm_provider: ILLMProvider, max_tokens: int = 1024):
        self._llm = llm_provider
        self._max_tokens = max_tokens

    async def _ask(self, system: str, prompt: str) -> str:
        return await self._llm.complete(
            messages=[{"role": "user", "content": prompt}],
            system=system,
            max_tokens=self._max_tokens,
        )

    async def extract_fields(
        self,
        text: str,
        known_fields: dict[str, Any],
        current_step: str | None = None,
        today: date | None = None,
    ) -> ExtractedFields:
        """
        Extract intake fields from free text.

        ``current_step`` names the field the user was just asked about, so a
        short answer can be attributed to it. Unparseable replies yield an
        empty result with zero confidence; transport errors from the provider
        propagate.
        """
        today = today or date.today()
        parts = [f"Today's date: {today.isoformat()}", ""]
        known = _format_known(known_fields)
        if known:
            parts.append("Already collected from this conversation:")
            parts.extend(known)
            parts.append("")
        if current_step in ALL_FIELDS:
            parts.append(
                f"The user was just asked about: {current_step}. "
                "A short answer most likely answers that field."
            )
            parts.append("")
        parts.append(f'User message: "{text}"')

        reply = await self._ask(EXTRACTION_SYSTEM_PROMPT, "\n".join(parts))
        try:
            payload = parse_json_payload(reply)
        except json.JSONDecodeError:
            logger.warning("Extraction reply was not JSON: %s", reply[:200])
            return ExtractedFields()
        if not isinstance(payload, dict):
            return ExtractedFields()

        fields: dict[str, str | list[str]] = {}
        for key in ALL_FIELDS:
            value = payload.get(key)
            if value is None or value == "" or value == []:
                continue
            if key in LIST_FIELDS:
                fields[key] = [value] if isinstance(value, str) else [str(v) for v in value]
            else:
                fields[key] = value if isinstance(value, str) else str(value)

        confidence = payload.get("confidence")
        return ExtractedFields(
            fields=fields,
            confidence=float(confidence) if isinstance(confidence, (int, float)) else 0.0,
            acknowledgment=payload.get("acknowledgment") or None,
        )

    async def classify_request_type(self, fields: dict[str, Any]) -> list[str]:
        """Classify the kinds of work a request involves."""
        prompt = "\n".join(["Request details:"] + _format_known(fields))
        reply = await self._ask(REQUEST_TYPE_SYSTEM_PROMPT, prompt)
        try:
            payload = parse_json_payload(reply)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Request type reply was not JSON: {e}") from e

        types = payload.get("types", []) if isinstance(payload, dict) else []
        return [t for t in types if t in REQUEST_TYPES] or ["other"]

    async def generate_follow_up_questions(
        self, fields: dict[str, Any], request_types: list[str]
    ) -> list[FollowUpQuestion]:
        """Generate adaptive questions for a request."""
        prompt = "\n".join(
            [f"Request types: {', '.join(request_types)}", "Request details:"]
            + _format_known(fields)
        )
        reply = await self._ask(FOLLOW_UP_SYSTEM_PROMPT, prompt)
        try:
            payload = parse_json_payload(reply)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Follow-up reply was not JSON: {e}") from e

        raw_questions = payload.get("questions", []) if isinstance(payload, dict) else []
        questions = []
        for item in raw_questions:
            if not isinstance(item, dict):
                continue
            key = str(item.get("field_key", "")).strip().lstrip("_")
            text = str(item.get("question", "")).strip()
            if key and text:
                questions.append(FollowUpQuestion(field_key=key, question=text))
        return questions

    async def interpret_follow_up_answer(
        self,
        text: str,
        question: FollowUpQuestion,
        known_fields: dict[str, Any],
        remaining_questions: list[FollowUpQuestion],
    ) -> FollowUpAnswer:
        """
        Interpret a reply to a follow-up question.

        The upcoming questions are listed with their field keys so details
        that answer them come back under those keys and the questions can be
        skipped later.
        """
        parts = []
        known = _format_known(known_fields)
        if known:
            parts.append("Already collected:")
            parts.extend(known)
            parts.append("")
        if remaining_questions:
            parts.append("Upcoming questions (key them in additional_fields if answered):")
            parts.extend(f"- {q.field_key}: {q.question}" for q in remaining_questions)
            parts.append("")
        parts.append(f'Question ({question.field_key}): "{question.question}"')
        parts.append(f'Answer: "{text}"')

        reply = await self._ask(INTERPRET_SYSTEM_PROMPT, "\n".join(parts))
        try:
            payload = parse_json_payload(reply)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Follow-up answer reply was not JSON: {e}") from e
        if not isinstance(payload, dict) or not payload.get("value"):
            raise ExtractionError("Follow-up answer reply had no value")

        additional = payload.get("additional_fields") or {}
        return FollowUpAnswer(
            value=str(payload["value"]),
            additional_fields={
                str(k).lstrip("_"): str(v)
                for k, v in additional.items()
                if v not in (None, "")
            },
        )

    async def generate_field_guidance(self, field_key: str, known_fields: dict[str, Any]) -> str:
        """Suggest how to answer an open-ended field. Raises ExtractionError on an empty reply."""
        description = GUIDANCE_FIELD_DESCRIPTIONS.get(field_key, field_key.replace("_", " "))
        known = _format_known(known_fields)
        prompt = "\n".join(
            ["Already collected:"]
            + (known or ["Nothing yet"])
            + ["", f'The requester said "I don\'t know" when asked about {description}. Help them.']
        )
        reply = (await self._ask(GUIDANCE_SYSTEM_PROMPT, prompt)).strip()
        if not reply:
            raise ExtractionError(f"Empty guidance for {field_key}")
        return reply
