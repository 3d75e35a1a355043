"""Build a single-event iCalendar document from an ``EventDraft``."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from mailcal.config.constants import (
    DEFAULT_TIMEZONE,
    DESCRIPTION_SEPARATOR,
    PRODUCT_ID,
    UID_DOMAIN,
)
from mailcal.ics.dates import format_ics_timestamp, utc_stamp
from mailcal.ics.text import CRLF, escape_text, fold_line
from mailcal.models.event import EventDraft


def new_uid() -> str:
    """Return a random, collision-resistant event UID."""

    return f"{uuid.uuid4()}@{UID_DOMAIN}"


def compose_description(event: EventDraft) -> str:
    """Escaped description, separator and original email, as one TEXT value."""

    return (
        escape_text(event.description)
        + escape_text(DESCRIPTION_SEPARATOR)
        + escape_text(event.source_text)
    )


def build_ics(
    event: EventDraft,
    *,
    timezone_name: str = DEFAULT_TIMEZONE,
    product_id: str = PRODUCT_ID,
    now: Optional[datetime] = None,
    today: Optional[date] = None,
    uid: Optional[str] = None,
) -> str:
    """Render ``event`` as a CRLF-terminated VCALENDAR document.

    Values are escaped before their property line is folded, since escaping
    changes the byte length. Empty or malformed fields produce
    empty-valued properties; this never raises for any ``EventDraft``.
    """

    if today is None:
        today = datetime.now(ZoneInfo(timezone_name)).date()
    draft = event.normalized(today)

    properties: List[str] = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"PRODID:{product_id}",
        "BEGIN:VEVENT",
        f"UID:{uid or new_uid()}",
        f"DTSTAMP:{utc_stamp(now)}",
        f"SUMMARY:{escape_text(draft.title)}",
        f"LOCATION:{escape_text(draft.location)}",
        f"DESCRIPTION:{compose_description(draft)}",
        f"DTSTART;TZID={timezone_name}:{format_ics_timestamp(draft.start_time)}",
        f"DTEND;TZID={timezone_name}:{format_ics_timestamp(draft.end_time)}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]

    return "".join(fold_line(line) + CRLF for line in properties)
