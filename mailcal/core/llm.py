"""LLM client abstraction for mailcal.

This module wraps calls to the OpenAI API behind a small interface that
supports plain text responses and tool-calling (function calling).
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Union

from openai import AsyncOpenAI
from pydantic import BaseModel


logger = logging.getLogger("mailcal.llm")


class LLMConfig(BaseModel):
    """Configuration for the LLM client."""

    model: str = "gpt-4o-mini"
    max_tokens: int = 1024
    temperature: float = 0.0  # extraction should be deterministic
    request_timeout: int = 30


def _get_client() -> AsyncOpenAI:
    """Return a configured OpenAI client or raise if API key missing."""

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        logger.error("OPENAI_API_KEY is not set; LLM calls will fail")
        raise RuntimeError("OPENAI_API_KEY is not set")
    return AsyncOpenAI(api_key=api_key)


def _safe_json_loads(value: str) -> Any:
    """Safely parse a JSON string, returning None on failure."""

    try:
        return json.loads(value)
    except Exception:  # noqa: BLE001
        logger.warning("Failed to parse JSON from model output", exc_info=True)
        return None


async def call_llm(
    messages: List[Dict[str, Any]],
    tools: Optional[List[Dict[str, Any]]] = None,
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None,
    config: Optional[LLMConfig] = None,
) -> Dict[str, Any]:
    """Call the OpenAI chat model with optional tool schemas.

    Returns a structured dict with one of the following shapes:

    - {"type": "message", "content": str}
    - {"type": "tool", "tool_calls": [{"id", "name", "arguments", "raw_arguments"}, ...]}
    - {"type": "error", "error": str}

    ``arguments`` is ``None`` when the model produced arguments that are not
    valid JSON; ``raw_arguments`` always holds the original string.
    """

    cfg = config or LLMConfig()

    try:
        client = _get_client()
    except RuntimeError as exc:  # API key missing
        return {"type": "error", "error": str(exc)}

    kwargs: Dict[str, Any] = {}
    if tools:
        kwargs["tools"] = tools
        kwargs["tool_choice"] = tool_choice or "auto"

    try:
        response = await client.chat.completions.create(
            model=cfg.model,
            messages=messages,
            max_tokens=cfg.max_tokens,
            temperature=cfg.temperature,
            timeout=cfg.request_timeout,
            **kwargs,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("Error while calling OpenAI chat completion: %r", exc)
        return {"type": "error", "error": "LLM_CALL_FAILED"}

    if not response or not getattr(response, "choices", None):
        logger.warning("Empty response from LLM")
        return {"type": "error", "error": "EMPTY_RESPONSE"}

    message = response.choices[0].message

    # Tool call branch.
    tool_calls = getattr(message, "tool_calls", None)
    if tool_calls:
        parsed_calls: List[Dict[str, Any]] = []
        for call in tool_calls:
            fn = call.function
            raw_args = fn.arguments or "{}"
            args = _safe_json_loads(raw_args) if isinstance(raw_args, str) else raw_args
            if args is not None and not isinstance(args, dict):
                args = None
            parsed_calls.append(
                {
                    "id": call.id,
                    "name": fn.name,
                    "arguments": args,
                    "raw_arguments": raw_args,
                }
            )

        return {"type": "tool", "tool_calls": parsed_calls}

    content = message.content or ""
    if isinstance(content, list):
        content = "".join(part.get("text", "") for part in content if isinstance(part, dict))

    if not isinstance(content, str):
        content = str(content)

    return {"type": "message", "content": content}
