"""
Structured logging for the billing sync client.

Events are plain snake_case names with key/value context. The signed-in
user and the record operation in progress are bound through
``structlog.contextvars`` so every event emitted while they are active
carries them. Credentials never reach a renderer.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from billing_sync.config.settings import get_settings

# Event keys whose values are masked before rendering
SECRET_KEYS = frozenset({"token", "refresh_token", "authorization", "password"})
SESSION_KEYS = ("user_id", "role")


def add_client_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    settings = get_settings()
    event_dict.setdefault("client", settings.app_name)
    event_dict.setdefault("client_version", settings.app_version)
    return event_dict


def redact_secrets(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values, including inside header dicts."""
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_KEYS and value:
            event_dict[key] = "***"
        elif isinstance(value, dict):
            event_dict[key] = {
                k: "***" if str(k).lower() in SECRET_KEYS and v else v for k, v in value.items()
            }
    return event_dict


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and the stdlib bridge.

    Args:
        level: Log level override (defaults to ``LOG_LEVEL``)
        json_output: Force JSON rendering; defaults to JSON outside development
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.environment != "development"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_client_context,
        redact_secrets,
    ]

    renderer: Processor
    if json_output:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level))

    # One line per request otherwise
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def bind_session(user_id: str | None, role: str | None) -> None:
    """Attach the signed-in user to every subsequent event."""
    structlog.contextvars.bind_contextvars(user_id=user_id, role=role)


def clear_session() -> None:
    structlog.contextvars.unbind_contextvars(*SESSION_KEYS)


@contextmanager
def operation_context(kind: str, action: str, **extra: Any) -> Iterator[None]:
    """Bind the record kind and action for the duration of one operation."""
    with structlog.contextvars.bound_contextvars(kind=kind, action=action, **extra):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
