"""Timestamp helpers shared by the ICS download and the Google push."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional


_ISO_LOCAL_RE = re.compile(
    r"^\s*(\d{4})-(\d{2})-(\d{2})"
    r"(?:[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?)?"
    r"(?:Z|[+-]\d{2}:?\d{2})?\s*$"
)

_MISSING_SECONDS_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}$")


def format_ics_timestamp(value: Optional[str]) -> str:
    """Convert ``YYYY-MM-DD[THH:MM[:SS]]`` into ``YYYYMMDDTHHMMSS``.

    The result is local wall-clock time in the calendar's single zone, so
    any UTC designator or offset on the input is dropped rather than
    converted. Anything that is not a real calendar timestamp maps to ``""``.
    """

    if not value:
        return ""

    match = _ISO_LOCAL_RE.match(value)
    if not match:
        return ""

    year, month, day, hour, minute, second = match.groups()
    try:
        parsed = datetime(
            int(year),
            int(month),
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
        )
    except ValueError:
        return ""

    # strftime does not zero-pad years below 1000 on every platform
    return (
        f"{parsed.year:04d}{parsed.month:02d}{parsed.day:02d}"
        f"T{parsed.hour:02d}{parsed.minute:02d}{parsed.second:02d}"
    )


def ensure_seconds(value: Optional[str]) -> str:
    """Append ``:00`` to ``YYYY-MM-DDTHH:MM`` timestamps."""

    if not value:
        return ""
    if _MISSING_SECONDS_RE.match(value):
        return value + ":00"
    return value


def utc_stamp(now: Optional[datetime] = None) -> str:
    """Return ``now`` (default: the current instant) as ``YYYYMMDDTHHMMSSZ``."""

    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y%m%dT%H%M%SZ")
