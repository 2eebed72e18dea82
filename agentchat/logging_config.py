"""Structured logging configuration."""

import logging
from typing import Any

import structlog

from agentchat.config import settings

SECRET_KEYS = ("api_key", "authorization", "token", "password", "secret")


def mask_secrets_processor(logger_obj: Any, method_name: str, event_dict: dict) -> dict:
    """Replace values of secret-looking keys before rendering."""
    for key in list(event_dict):
        if any(marker in key.lower() for marker in SECRET_KEYS):
            value = event_dict[key]
            if isinstance(value, str) and value:
                event_dict[key] = value[:4] + "***"
    return event_dict


def configure_logging() -> None:
    """Configure structlog for the application.

    JSON output in production, colored console output otherwise. Debug level
    when ``APP_DEBUG`` is set.
    """
    if settings.is_production:
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=not settings.is_testing)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            mask_secrets_processor,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if settings.app_debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
