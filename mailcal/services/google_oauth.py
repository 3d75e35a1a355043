"""Google OAuth helpers: authorization URL, code exchange, refresh, identity.

Every call receives an explicit ``OAuthClientConfig`` built for the request
at hand. There is no shared client object, so concurrent requests arriving
on different hosts cannot overwrite each other's redirect URI.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from mailcal.config.settings import Settings


logger = logging.getLogger("mailcal.google_oauth")

AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
TOKENINFO_ENDPOINT = "https://oauth2.googleapis.com/tokeninfo"
USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v2/userinfo"

CALLBACK_PATH = "/auth/google/callback"

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

_VALID_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


@dataclass(frozen=True)
class OAuthClientConfig:
    client_id: str
    client_secret: str
    redirect_uri: str

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


def default_redirect_uri(settings: Settings) -> str:
    """Redirect URI when the request host is not a known public host."""

    if settings.google_redirect_uri:
        return settings.google_redirect_uri
    if settings.hostname == "localhost":
        return f"http://localhost:{settings.port}{CALLBACK_PATH}"
    return f"https://{settings.hostname}{CALLBACK_PATH}"


def oauth_config_for_request(host: Optional[str], settings: Settings) -> OAuthClientConfig:
    """Build the OAuth client configuration for a request to ``host``.

    Hosts listed in ``OAUTH_PUBLIC_HOSTS`` get their own HTTPS callback;
    every other host falls back to ``default_redirect_uri``.
    """

    if host and host in settings.oauth_public_hosts:
        redirect_uri = f"https://{host}{CALLBACK_PATH}"
    else:
        redirect_uri = default_redirect_uri(settings)

    return OAuthClientConfig(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=redirect_uri,
    )


def build_authorization_url(config: OAuthClientConfig, state: str) -> str:
    params = {
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "access_type": "offline",
        "include_granted_scopes": "true",
        "state": state,
    }
    return AUTH_ENDPOINT + "?" + urlencode(params)


def _token_record(payload: Dict[str, Any], refresh_token: Optional[str] = None) -> Dict[str, Any]:
    """Keep only what the session needs from a token endpoint response."""

    expires_in = payload.get("expires_in")
    try:
        expires_in_int = int(expires_in) if expires_in is not None else 3600
    except (TypeError, ValueError):
        expires_in_int = 3600

    return {
        "access_token": payload.get("access_token"),
        "refresh_token": payload.get("refresh_token") or refresh_token,
        "scope": payload.get("scope"),
        "expires_at": time.time() + max(0, expires_in_int - 60),
    }


async def _post_token_endpoint(data: Dict[str, str]) -> Dict[str, Any]:
    try:
        async with httpx.AsyncClient(timeout=20.0) as client:
            resp = await client.post(TOKEN_ENDPOINT, data=data)
        resp.raise_for_status()
    except httpx.RequestError as exc:
        logger.warning("Network error calling Google token endpoint: %r", exc)
        return {"success": False, "error": f"HTTP_ERROR: {exc!r}"}
    except httpx.HTTPStatusError as exc:
        logger.error(
            "Google token endpoint returned %s: %s",
            exc.response.status_code,
            exc.response.text,
        )
        return {"success": False, "error": f"TOKEN_ERROR: {exc.response.status_code}"}

    payload = resp.json() or {}
    if not payload.get("access_token"):
        logger.error("Token endpoint response missing access_token")
        return {"success": False, "error": "TOKEN_ERROR: missing access_token"}
    return {"success": True, "data": payload}


async def exchange_code(config: OAuthClientConfig, code: str) -> Dict[str, Any]:
    """Exchange an authorization code for tokens."""

    result = await _post_token_endpoint(
        {
            "code": code,
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "redirect_uri": config.redirect_uri,
            "grant_type": "authorization_code",
        }
    )
    if not result["success"]:
        return result
    return {"success": True, "data": _token_record(result["data"])}


async def refresh_access_token(config: OAuthClientConfig, refresh_token: str) -> Dict[str, Any]:
    """Use ``refresh_token`` to obtain a new access token."""

    result = await _post_token_endpoint(
        {
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
    )
    if not result["success"]:
        return result
    return {"success": True, "data": _token_record(result["data"], refresh_token=refresh_token)}


async def fetch_userinfo(access_token: str) -> Dict[str, Any]:
    """Return the signed-in user's email and name."""

    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.get(USERINFO_ENDPOINT, headers=headers)
        resp.raise_for_status()
    except httpx.RequestError as exc:
        return {"success": False, "error": f"HTTP_ERROR: {exc!r}"}
    except httpx.HTTPStatusError as exc:
        return {"success": False, "error": f"API_ERROR: {exc.response.status_code}"}

    data = resp.json() or {}
    return {"success": True, "data": {"email": data.get("email"), "name": data.get("name")}}


async def verify_id_token(id_token: str, client_id: str) -> Dict[str, Any]:
    """Validate a Google Sign-In ID token via the tokeninfo endpoint.

    Google checks signature and expiry; the audience and issuer are checked
    here. Returns ``{"success": True, "data": <claims>}`` on success.
    """

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.get(TOKENINFO_ENDPOINT, params={"id_token": id_token})
    except httpx.RequestError as exc:
        logger.warning("Network error verifying ID token: %r", exc)
        return {"success": False, "error": f"HTTP_ERROR: {exc!r}"}

    if resp.status_code != 200:
        return {"success": False, "error": "INVALID_TOKEN"}

    claims = resp.json() or {}
    if not client_id or claims.get("aud") != client_id:
        return {"success": False, "error": "AUDIENCE_MISMATCH"}
    if claims.get("iss") not in _VALID_ISSUERS:
        return {"success": False, "error": "ISSUER_MISMATCH"}
    return {"success": True, "data": claims}
