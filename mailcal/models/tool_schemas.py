"""Tool schemas exposed to the LLM.

Only one tool exists: ``extract_event_info``, which the model is forced to
call so that its answer arrives as structured arguments.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict


EXTRACT_EVENT_TOOL = "extract_event_info"


def extract_event_tool_schema(today: date) -> Dict[str, Any]:
    """Return the function schema, with today's date baked into the hints."""

    return {
        "type": "function",
        "function": {
            "name": EXTRACT_EVENT_TOOL,
            "description": "Extract event information from the body of an email.",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": {
                        "type": "string",
                        "description": "Title of the event.",
                    },
                    "location": {
                        "type": "string",
                        "description": "Where the event takes place.",
                    },
                    "startTime": {
                        "type": "string",
                        "description": (
                            "Start date and time in ISO 8601 (YYYY-MM-DDTHH:mm:ss). If the year is "
                            f"omitted, use the nearest future date relative to today ({today.isoformat()})."
                        ),
                    },
                    "endTime": {
                        "type": "string",
                        "description": (
                            "End date and time in ISO 8601 (YYYY-MM-DDTHH:mm:ss). If no end time is "
                            "given, use one hour after the start. If the year is omitted, use the "
                            "same year as the start."
                        ),
                    },
                    "description": {
                        "type": "string",
                        "description": "Short description of the event.",
                    },
                },
                "required": ["title", "startTime", "endTime"],
            },
        },
    }
