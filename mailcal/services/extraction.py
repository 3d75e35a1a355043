"""Extract a single calendar event from free-text email content."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

from mailcal.core.llm import LLMConfig, call_llm
from mailcal.models.event import ParsedEvent
from mailcal.models.tool_schemas import EXTRACT_EVENT_TOOL, extract_event_tool_schema
from mailcal.services.time_service import build_date_context, current_date


logger = logging.getLogger("mailcal.extraction")

_SYSTEM_PROMPT = (
    "You are a capable assistant that extracts event details from the body of an email.\n"
    "{date_context}\n"
    "Call {tool} exactly once with the details you found. Leave a field empty if the email "
    "does not mention it."
)

NO_FUNCTION_CALL_MESSAGE = "[Error] The model did not return a function call."
JSON_PARSE_ERROR_PREFIX = "[JSON parse error] Function call arguments:\n"


class ExtractionError(RuntimeError):
    """The language model could not be reached or returned an error."""


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def build_messages(email_content: str, today: date) -> list:
    system = _SYSTEM_PROMPT.format(date_context=build_date_context(today), tool=EXTRACT_EVENT_TOOL)
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": email_content},
    ]


async def extract_event(
    email_content: str,
    *,
    today: Optional[date] = None,
    timezone_name: Optional[str] = None,
    config: Optional[LLMConfig] = None,
) -> Dict[str, str]:
    """Ask the model for the event in ``email_content``.

    Returns the ``ParsedEvent`` fields as a dict. A response without a tool
    call, or with arguments that are not JSON, still yields a result: empty
    fields with the problem described in ``description``. Only transport
    and configuration failures raise ``ExtractionError``.
    """

    today = today or current_date(timezone_name)

    result = await call_llm(
        build_messages(email_content, today),
        tools=[extract_event_tool_schema(today)],
        tool_choice={"type": "function", "function": {"name": EXTRACT_EVENT_TOOL}},
        config=config,
    )

    if result.get("type") == "error":
        raise ExtractionError(result.get("error") or "LLM_CALL_FAILED")

    calls = [c for c in result.get("tool_calls") or [] if c.get("name") == EXTRACT_EVENT_TOOL]
    if not calls:
        logger.warning("Model answered without calling %s", EXTRACT_EVENT_TOOL)
        return ParsedEvent(description=NO_FUNCTION_CALL_MESSAGE).model_dump()

    call = calls[0]
    args = call.get("arguments")
    if args is None:
        logger.warning("Unparseable %s arguments", EXTRACT_EVENT_TOOL)
        return ParsedEvent(
            description=JSON_PARSE_ERROR_PREFIX + _text(call.get("raw_arguments"))
        ).model_dump()

    parsed = ParsedEvent(
        title=_text(args.get("title")),
        location=_text(args.get("location")),
        startTime=_text(args.get("startTime")),
        endTime=_text(args.get("endTime")),
        description=_text(args.get("description")),
    )
    logger.info("Extracted event '%s' starting %s", parsed.title, parsed.startTime or "<none>")
    return parsed.model_dump()
