"""Google Calendar integration: push an extracted event to a calendar."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from mailcal.config.constants import DEFAULT_TIMEZONE, DESCRIPTION_SEPARATOR
from mailcal.models.event import EventDraft
from mailcal.services.google_oauth import OAuthClientConfig, refresh_access_token


logger = logging.getLogger("mailcal.calendar")

EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"


def build_event_body(event: EventDraft, timezone_name: str = DEFAULT_TIMEZONE) -> Dict[str, Any]:
    """Map a normalized draft onto a Calendar v3 event resource.

    The description uses the same separator as the ICS download, unescaped.
    """

    return {
        "summary": event.title,
        "location": event.location,
        "description": f"{event.description}{DESCRIPTION_SEPARATOR}{event.source_text}",
        "start": {"dateTime": event.start_time, "timeZone": timezone_name},
        "end": {"dateTime": event.end_time, "timeZone": timezone_name},
    }


async def calendar_create_event(
    access_token: str,
    body: Dict[str, Any],
    calendar_id: str = "primary",
) -> Dict[str, Any]:
    """Insert ``body`` into ``calendar_id``.

    Returns ``{"success": True, "data": <event>}`` or a failure dict. A 401
    is reported as ``AUTH_ERROR`` so the caller can refresh and retry.
    """

    url = EVENTS_URL.format(calendar_id=calendar_id)
    headers = {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}

    try:
        async with httpx.AsyncClient(timeout=20.0) as client:
            resp = await client.post(url, headers=headers, json=body)
        resp.raise_for_status()
    except httpx.RequestError as exc:
        return {"success": False, "error": f"HTTP_ERROR: {exc!r}"}
    except httpx.HTTPStatusError as exc:
        error_body = exc.response.text
        if exc.response.status_code == 401:
            return {
                "success": False,
                "error": "AUTH_ERROR",
                "message": "Unable to authenticate with Google Calendar. Please reauthorize.",
            }
        logger.error("Calendar API returned %s: %s", exc.response.status_code, error_body)
        return {"success": False, "error": f"API_ERROR: {exc.response.status_code}", "body": error_body}

    return {"success": True, "data": resp.json()}


async def push_event(
    event: EventDraft,
    tokens: Dict[str, Any],
    oauth_config: OAuthClientConfig,
    *,
    timezone_name: str = DEFAULT_TIMEZONE,
    calendar_id: str = "primary",
) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """Create ``event`` with the session's tokens, refreshing once on 401.

    ``event`` must already be normalized. Returns the insert result plus the
    refreshed token record when a refresh happened (``None`` otherwise) so
    the caller can store it back in the session.
    """

    body = build_event_body(event, timezone_name)
    access_token = tokens.get("access_token") or ""
    refresh_token = tokens.get("refresh_token")

    expires_at = tokens.get("expires_at") or 0
    refreshed: Optional[Dict[str, Any]] = None
    if refresh_token and expires_at and time.time() >= expires_at:
        logger.info("Access token expired, refreshing before calendar insert")
        refresh = await refresh_access_token(oauth_config, refresh_token)
        if refresh["success"]:
            refreshed = refresh["data"]
            access_token = refreshed["access_token"]

    result = await calendar_create_event(access_token, body, calendar_id=calendar_id)

    if result.get("error") == "AUTH_ERROR" and refresh_token and refreshed is None:
        logger.warning("Calendar API returned 401, retrying with fresh token...")
        refresh = await refresh_access_token(oauth_config, refresh_token)
        if refresh["success"]:
            refreshed = refresh["data"]
            result = await calendar_create_event(
                refreshed["access_token"], body, calendar_id=calendar_id
            )

    return result, refreshed
