"""Event models shared by the parse, ICS and Google Calendar endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mailcal.ics.dates import ensure_seconds
from mailcal.services.time_service import complete_end_year, complete_year


class EventDraft(BaseModel):
    """An event as extracted from an email, before any output formatting.

    Timestamps are local wall-clock strings (``YYYY-MM-DDTHH:MM[:SS]``) in
    the calendar's single zone and may arrive without seconds or a year.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    location: str = ""
    start_time: str = Field(default="", alias="startTime")
    end_time: str = Field(default="", alias="endTime")
    description: str = ""
    source_text: str = Field(default="", alias="emailContent")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        return ""

    def normalized(self, today: date) -> "EventDraft":
        """Return a copy with year-less and second-less timestamps completed.

        Both output channels call this before formatting so they always
        agree on the same input.
        """

        start = complete_year(self.start_time.strip(), today)
        end = complete_end_year(self.end_time.strip(), start, today)
        return self.model_copy(
            update={
                "start_time": ensure_seconds(start),
                "end_time": ensure_seconds(end),
            }
        )


class ParsedEvent(BaseModel):
    """Response shape of ``POST /api/parse``."""

    title: str = ""
    location: str = ""
    startTime: str = ""
    endTime: str = ""
    description: str = ""
