"""Main entrypoint for the mailcal FastAPI application.

Routes:
- ``POST /api/parse``: extract an event from email text with the LLM
- ``POST /api/create-ics``: download the event as an ``.ics`` file
- ``GET /auth/google`` and ``GET /auth/google/callback``: Google sign-in
- ``POST /api/google-calendar-create``: push the event to Google Calendar
"""

import re
import secrets
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.responses import HTMLResponse
from fastapi.responses import JSONResponse
from fastapi.responses import PlainTextResponse
from fastapi.responses import RedirectResponse
from fastapi.responses import Response
from starlette.middleware.sessions import SessionMiddleware

from mailcal import __version__
from mailcal.config.constants import ICS_CONTENT_TYPE, ICS_FILENAME
from mailcal.config.settings import load_settings
from mailcal.core.llm import LLMConfig
from mailcal.ics.builder import build_ics
from mailcal.models.event import EventDraft
from mailcal.services.calendar import push_event
from mailcal.services.extraction import ExtractionError, extract_event
from mailcal.services.google_oauth import build_authorization_url
from mailcal.services.google_oauth import exchange_code
from mailcal.services.google_oauth import fetch_userinfo
from mailcal.services.google_oauth import oauth_config_for_request
from mailcal.services.google_oauth import verify_id_token
from mailcal.services.time_service import current_date
from mailcal.utils.logger import generate_request_id
from mailcal.utils.logger import get_logger
from mailcal.utils.logger import log_error
from mailcal.utils.logger import log_info
from mailcal.utils.logger import log_warn


load_dotenv()
get_logger()

PUBLIC_DIR = Path(__file__).parent / "public"

_startup_settings = load_settings()

app = FastAPI(title="mailcal", version=__version__)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


_session_secret = _startup_settings.session_secret
if not _session_secret:
    log_warn("SESSION_SECRET is not set; sessions will not survive a restart")
    _session_secret = secrets.token_urlsafe(32)

app.add_middleware(
    SessionMiddleware,
    secret_key=_session_secret,
    session_cookie="mailcal_session",
    same_site="lax",
    https_only=not _startup_settings.is_development,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_startup_settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
)


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> dict:
    """Health check endpoint to verify that the service is running."""

    return {"status": "ok"}


@app.get("/")
async def index(request: Request):
    if not request.session.get("user"):
        return RedirectResponse(url="/auth/google", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return FileResponse(PUBLIC_DIR / "index.html", media_type="text/html")


@app.get("/api/config")
async def client_config(request: Request) -> dict:
    """Values the sign-in front end needs before it can initialize."""

    settings = load_settings()
    return {
        "googleClientId": settings.google_client_id,
        "serviceUrl": settings.service_url or str(request.base_url).rstrip("/"),
    }


@app.get("/secured")
async def secured(request: Request) -> PlainTextResponse:
    auth_header = request.headers.get("authorization") or ""
    id_token = re.sub(r"^Bearer\s+", "", auth_header).strip()
    if not id_token:
        return PlainTextResponse("Missing token", status_code=status.HTTP_401_UNAUTHORIZED)

    result = await verify_id_token(id_token, load_settings().google_client_id)
    if not result["success"]:
        log_warn("ID token rejected", request_id=_request_id(request), reason=result.get("error"))
        return PlainTextResponse("Invalid or expired token", status_code=status.HTTP_401_UNAUTHORIZED)

    return PlainTextResponse(f"Hello, {result['data'].get('email')}")


@app.post("/api/parse")
async def parse_email(request: Request):
    """Extract event fields from ``emailContent`` with the language model."""

    payload = await _json_body(request)
    email_content = payload.get("emailContent")
    if not email_content or not isinstance(email_content, str):
        return JSONResponse(
            {"error": "No emailContent provided."},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    settings = load_settings()
    log_info("Parsing email", request_id=_request_id(request), length=len(email_content))
    return await extract_event(
        email_content,
        timezone_name=settings.calendar_timezone,
        config=LLMConfig(model=settings.openai_model),
    )


@app.post("/api/create-ics")
async def create_ics(request: Request) -> Response:
    """Return the posted event as a downloadable iCalendar file."""

    payload = await _json_body(request)
    settings = load_settings()
    draft = EventDraft.model_validate(payload)
    ics = build_ics(
        draft,
        timezone_name=settings.calendar_timezone,
        today=current_date(settings.calendar_timezone),
    )
    return Response(
        content=ics.encode("utf-8"),
        media_type=ICS_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{ICS_FILENAME}"'},
    )


@app.get("/auth/google", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
async def google_oauth_start(request: Request):
    settings = load_settings()
    host = request.headers.get("host")
    oauth_config = oauth_config_for_request(host, settings)
    if not oauth_config.client_id:
        log_error("GOOGLE_CLIENT_ID is not configured", request_id=_request_id(request))
        return HTMLResponse(
            "Google sign-in is not configured",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    state = secrets.token_urlsafe(24)
    request.session["oauth_state"] = state

    log_info(
        "Starting Google OAuth",
        request_id=_request_id(request),
        host=host,
        redirect_uri=oauth_config.redirect_uri,
        client_secret="configured" if oauth_config.client_secret else "missing",
    )
    url = build_authorization_url(oauth_config, state)
    return RedirectResponse(url=url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@app.get("/auth/google/callback")
async def google_oauth_callback(request: Request):
    error = request.query_params.get("error")
    if error:
        return HTMLResponse(f"OAuth error: {error}", status_code=status.HTTP_400_BAD_REQUEST)

    code = request.query_params.get("code")
    if not code:
        return HTMLResponse("No code returned from Google", status_code=status.HTTP_400_BAD_REQUEST)

    state = request.query_params.get("state") or ""
    expected_state = request.session.pop("oauth_state", None)
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        return HTMLResponse("Invalid state", status_code=status.HTTP_400_BAD_REQUEST)

    settings = load_settings()
    oauth_config = oauth_config_for_request(request.headers.get("host"), settings)

    tokens = await exchange_code(oauth_config, code)
    if not tokens["success"]:
        log_error("Token exchange failed", request_id=_request_id(request), error=tokens.get("error"))
        return HTMLResponse("Authentication Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    userinfo = await fetch_userinfo(tokens["data"]["access_token"])
    if not userinfo["success"]:
        log_error("Fetching user info failed", request_id=_request_id(request), error=userinfo.get("error"))
        return HTMLResponse("Authentication Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    request.session["google_tokens"] = tokens["data"]
    request.session["user"] = userinfo["data"]
    log_info("Google sign-in complete", user=userinfo["data"].get("email"), request_id=_request_id(request))

    return RedirectResponse(url="/?auth_success=true", status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@app.post("/api/google-calendar-create")
async def google_calendar_create(request: Request) -> JSONResponse:
    tokens = request.session.get("google_tokens")
    if not tokens:
        return JSONResponse(
            {"error": "Not authenticated with Google."},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    payload = await _json_body(request)
    settings = load_settings()
    draft = EventDraft.model_validate(payload).normalized(current_date(settings.calendar_timezone))
    oauth_config = oauth_config_for_request(request.headers.get("host"), settings)

    result, refreshed = await push_event(
        draft,
        tokens,
        oauth_config,
        timezone_name=settings.calendar_timezone,
        calendar_id=settings.google_calendar_id,
    )
    if refreshed is not None:
        request.session["google_tokens"] = refreshed

    if not result.get("success"):
        log_error(
            "Google Calendar insert failed",
            request_id=_request_id(request),
            error=result.get("error"),
        )
        return JSONResponse(
            {
                "error": "Failed to create event",
                "details": result.get("message") or result.get("error"),
            },
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    event = result.get("data") or {}
    return JSONResponse({"message": "Event created in Google Calendar.", "eventId": event.get("id")})


def _error_response(request: Request, exc: Exception) -> JSONResponse:
    log_error("Unhandled exception", request_id=_request_id(request), error=repr(exc))
    message = str(exc) if load_settings().is_development else "Something went wrong"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error", "message": message},
    )


@app.exception_handler(ExtractionError)
async def extraction_exception_handler(request: Request, exc: ExtractionError):
    return _error_response(request, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for uncaught exceptions."""

    return _error_response(request, exc)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=_startup_settings.port)
