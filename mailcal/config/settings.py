"""Environment-backed settings for mailcal.

Settings are read from the process environment (populated from ``.env`` by
``load_dotenv`` at startup) every time ``load_settings`` is called. Settings
are never cached, so request handlers always see the current configuration
and never share a mutable client object.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel

from mailcal.config.constants import DEFAULT_TIMEZONE


logger = logging.getLogger("mailcal.config")


def _split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


@lru_cache(maxsize=None)
def _resolve_timezone(name: str) -> str:
    """Return ``name`` if it is a known IANA zone, else the default zone."""

    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown CALENDAR_TIMEZONE %r; using %s", name, DEFAULT_TIMEZONE)
        return DEFAULT_TIMEZONE
    return name


class Settings(BaseModel):
    """Runtime configuration."""

    app_env: str = "development"
    port: int = 8080
    hostname: str = "localhost"
    service_url: Optional[str] = None

    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: Optional[str] = None
    oauth_public_hosts: List[str] = []
    google_calendar_id: str = "primary"

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    cors_origins: List[str] = ["http://localhost:8080"]
    session_secret: Optional[str] = None

    calendar_timezone: str = DEFAULT_TIMEZONE

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def load_settings() -> Settings:
    """Build a fresh ``Settings`` from the current environment."""

    port_raw = os.getenv("PORT") or "8080"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8080

    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        port=port,
        hostname=os.getenv("HOSTNAME") or "localhost",
        service_url=os.getenv("SERVICE_URL") or None,
        google_client_id=os.getenv("GOOGLE_CLIENT_ID", ""),
        google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET", ""),
        google_redirect_uri=os.getenv("GOOGLE_REDIRECT_URI") or None,
        oauth_public_hosts=_split_csv(os.getenv("OAUTH_PUBLIC_HOSTS")),
        google_calendar_id=os.getenv("GOOGLE_CALENDAR_ID") or "primary",
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL") or "gpt-4o-mini",
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")) or ["http://localhost:8080"],
        session_secret=os.getenv("SESSION_SECRET") or None,
        calendar_timezone=_resolve_timezone(os.getenv("CALENDAR_TIMEZONE") or DEFAULT_TIMEZONE),
    )
