"""Current-date awareness and year inference for extracted events.

Emails routinely say "12/25" or "5月10日" without a year. The extraction
prompt tells the model which year to use, and any year-less timestamp that
still reaches the server is completed here with the same rule: pick the
nearest date that is not already in the past.
"""

from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from mailcal.config.constants import DEFAULT_TIMEZONE


logger = logging.getLogger("mailcal.time_service")

_WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# "05-10", "--05-10", "5/10", optionally followed by a time part.
_YEARLESS_RE = re.compile(r"^\s*(?:--)?(\d{1,2})[-/](\d{1,2})((?:[T ].*)?)\s*$")
_DATED_RE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})")


def current_date(timezone_name: Optional[str] = None) -> date:
    """Return today's date in the calendar zone.

    Always derived from the current instant; callers must not cache it.
    """

    tz = ZoneInfo(timezone_name or DEFAULT_TIMEZONE)
    return datetime.now(tz).date()


def infer_year(today: date, month: int, day: int) -> int:
    """Choose the year for a month/day pair that came without one.

    Dates later this year (today included) stay in the current year;
    anything earlier rolls over to next year.
    """

    if month > today.month or (month == today.month and day >= today.day):
        return today.year
    return today.year + 1


def complete_year(value: Optional[str], today: date, year: Optional[int] = None) -> str:
    """Prefix an inferred year onto a year-less timestamp.

    ``"12-25T10:00"`` becomes ``"2025-12-25T10:00"`` when ``today`` is in
    mid 2025. Values that already carry a year, or whose month/day cannot
    exist, are returned unchanged. An explicit ``year`` skips inference.
    """

    if not value:
        return ""

    match = _YEARLESS_RE.match(value)
    if not match:
        return value

    month, day = int(match.group(1)), int(match.group(2))
    time_part = match.group(3)
    if time_part.strip():
        time_part = "T" + time_part[1:].strip()
    else:
        time_part = ""

    if not 1 <= month <= 12:
        return value
    if year is None:
        year = infer_year(today, month, day)
    if month == 2 and day == 29:
        # Feb 29 only exists in leap years; move to the next one.
        while not calendar.isleap(year):
            year += 1
    try:
        date(year, month, day)
    except ValueError:
        return value

    completed = f"{year:04d}-{month:02d}-{day:02d}{time_part}"
    logger.info("Inferred year for '%s' -> '%s'", value, completed)
    return completed


def complete_end_year(end_value: Optional[str], start_value: Optional[str], today: date) -> str:
    """Complete a year-less end timestamp from the (already completed) start.

    The end takes the start's year, moving one year forward only when that
    would put it before the start. Without a dated start the usual
    inference applies.
    """

    end_match = _YEARLESS_RE.match(end_value or "")
    start_match = _DATED_RE.match(start_value or "")
    if not end_match or not start_match:
        return complete_year(end_value, today)

    start_year, start_month, start_day = (int(part) for part in start_match.groups())
    month, day = int(end_match.group(1)), int(end_match.group(2))
    year = start_year
    if (month, day) < (start_month, start_day):
        year += 1
    return complete_year(end_value, today, year=year)


def build_date_context(today: date) -> str:
    """Render today's date and the year rule for the extraction prompt."""

    weekday = _WEEKDAY_NAMES[today.weekday()]
    later = today + timedelta(days=1)
    while later.month == today.month and later.year == today.year:
        later += timedelta(days=1)
    earlier_month = 12 if today.month == 1 else today.month - 1
    earlier_year = infer_year(today, earlier_month, 1)
    later_year = infer_year(today, later.month, later.day)

    return (
        f"Today is {weekday}, {today.isoformat()} (year {today.year}, month {today.month}).\n"
        "If the email gives a date without a year, choose the nearest date that is not in the past:\n"
        f"- a month after {today.month}, or month {today.month} on or after day {today.day}: "
        f"use {today.year}\n"
        f"- otherwise: use {today.year + 1}\n"
        f"For example, {later.month}/{later.day} means {later_year}-{later.month:02d}-{later.day:02d} "
        f"and {earlier_month}/1 means {earlier_year}-{earlier_month:02d}-01.\n"
        "Never return a date in the past. When a date is ambiguous, treat it as a future date."
    )
