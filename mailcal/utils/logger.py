"""Logging utilities for mailcal.

This module centralizes logger configuration and the structured log helpers
used by the HTTP layer.
"""

import json
import logging
import uuid
from typing import Optional


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a configured logger instance."""

    logger_name = name or "mailcal"
    logger = logging.getLogger(logger_name)

    # Configure a basic console handler once so logs are visible when the
    # app runs under plain uvicorn.
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    # Module loggers (mailcal.llm, mailcal.time_service, ...) inherit this.
    package_logger = logging.getLogger("mailcal")
    if package_logger.level == logging.NOTSET:
        package_logger.setLevel(logging.INFO)

    return logger


def generate_request_id() -> str:
    """Generate a unique request identifier for correlating logs."""

    return str(uuid.uuid4())


def _format_structured_message(
    message: str,
    user: Optional[str] = None,
    request_id: Optional[str] = None,
    extra: Optional[dict] = None,
) -> str:
    """Format a log message as a JSON structured string."""

    payload: dict = {"message": f"[MAILCAL] {message}"}
    if user is not None:
        payload["user"] = user
    if request_id is not None:
        payload["request_id"] = request_id
    if extra:
        payload["extra"] = extra
    return json.dumps(payload, default=str, ensure_ascii=False)


def log_info(
    msg: str,
    user: Optional[str] = None,
    request_id: Optional[str] = None,
    **extra: object,
) -> None:
    """Log an informational message for request-level activity."""

    get_logger("mailcal.http").info(
        _format_structured_message(msg, user=user, request_id=request_id, extra=extra or None)
    )


def log_warn(
    msg: str,
    user: Optional[str] = None,
    request_id: Optional[str] = None,
    **extra: object,
) -> None:
    """Log a warning for request-level activity."""

    get_logger("mailcal.http").warning(
        _format_structured_message(msg, user=user, request_id=request_id, extra=extra or None)
    )


def log_error(
    msg: str,
    user: Optional[str] = None,
    request_id: Optional[str] = None,
    **extra: object,
) -> None:
    """Log an error for request-level activity."""

    get_logger("mailcal.http").error(
        _format_structured_message(msg, user=user, request_id=request_id, extra=extra or None)
    )
