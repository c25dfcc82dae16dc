"""Structured logging configuration.

Production renders one JSON object per event; other environments use the
console renderer. Every event logged while a user is bound (see
core.identity) carries that user's id, so client log lines can be matched
with the backend's request logs.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

from src.dealdesk.config import Environment, Settings, get_settings
from src.dealdesk.core.identity import MissingIdentityError, get_current_user

# httpx logs every request at INFO; the API client already logs failures.
_QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler")


def add_user_id(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Attach the bound user's id, if any, to the event."""
    if "user_id" not in event_dict:
        try:
            event_dict["user_id"] = get_current_user().user_id
        except MissingIdentityError:
            pass
    return event_dict


def configure_structlog(settings: Settings | None = None) -> None:
    """Configure stdlib logging and the structlog processor chain."""
    settings = settings or get_settings()
    level = settings.LOG_LEVEL.upper()

    logging.basicConfig(format="%(message)s", level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_user_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if settings.ENVIRONMENT == Environment.production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
