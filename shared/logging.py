"""
Structured logging for QuickPick.

Provides:
- get_logger(): the logger factory every module uses
- setup_logging(): configure stdlib logging + structlog from LoggingSettings
- redact_sensitive_fields(): processor that masks credentials in log events

Development gets a coloured console renderer; production gets JSON lines.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

# Sensitive fields to redact from logs
REDACTED_FIELDS = {
    "password",
    "password_hash",
    "new_password",
    "confirm_password",
    "token",
    "access_token",
    "refresh_token",
    "otp",
    "forgot_password_otp",
    "authorization",
    "cookie",
    "secret",
    "api_key",
}

# "token" and "key" only count as a suffix, so token_type or key_count stay visible
_SENSITIVE_FRAGMENTS = ("password", "otp", "secret")
_SENSITIVE_SUFFIXES = ("_token", "_key")
_PROTECTED_KEYS = {"level", "event", "timestamp", "logger"}

_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "pymongo",
    "pymongo.connection",
    "pymongo.serverSelection",
    "pymongo.command",
    "pymongo.topology",
)


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("user_login", user_id="123", method="password")
    """
    return structlog.get_logger(name)


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format UTC timestamp to event dict."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _PROTECTED_KEYS:
            continue
        lowered = key.lower()
        if (
            lowered in REDACTED_FIELDS
            or lowered.endswith(_SENSITIVE_SUFFIXES)
            or any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS)
        ):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str = "console") -> None:
    """Configure structlog processors for *log_format* (``json`` or ``console``)."""
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(), pad_event=15, sort_keys=False
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(log_level: str = "INFO") -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(settings: Optional[object] = None, *, env: str = "development") -> None:
    """
    Initialize logging for the application.

    Args:
        settings: a ``LoggingSettings`` instance; defaults are used when None.
        env: deployment environment, included in the startup event.
    """
    log_level = getattr(settings, "log_level", "INFO")
    log_format = getattr(settings, "log_format", "console")

    configure_stdlib_logging(log_level)
    configure_structlog(log_format)

    get_logger(__name__).info(
        "logging_initialized", env=env, log_level=log_level, log_format=log_format
    )
