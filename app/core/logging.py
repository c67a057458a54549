"""Structured logging configuration."""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any

import structlog

from app.core.config import settings

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

REDACTED = "***REDACTED***"

_JWT_RE = re.compile(r"\beyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\b")
_BEARER_RE = re.compile(r"(?i)\bBearer\s+([A-Za-z0-9_\-\.=]+)")
_KV_RE = re.compile(
    r"(?i)\b(access_token|refresh_token|password|secret|token)\b\s*=\s*([^\s,;&]+)"
)
_SENSITIVE_KEYS = frozenset(
    {"password", "new_password", "access_token", "refresh_token", "token", "authorization"}
)


def set_request_id(request_id: str | None) -> None:
    request_id_var.set(request_id)


def redact(value: str) -> str:
    """Mask JWTs, bearer credentials and secret key=value pairs in a string."""
    value = _JWT_RE.sub(REDACTED, value)
    value = _BEARER_RE.sub(f"Bearer {REDACTED}", value)
    return _KV_RE.sub(lambda m: f"{m.group(1)}={REDACTED}", value)


def redact_event(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in list(event_dict.items()):
        if key.lower() in _SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            event_dict[key] = redact(value)
    return event_dict


def add_request_id(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    request_id = request_id_var.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Route structlog and stdlib logging through one formatter.

    Args:
        level: Log level name, defaults to LOG_LEVEL
        json_logs: Render JSON lines instead of console output, defaults to LOG_JSON
    """
    level = (level or settings.LOG_LEVEL).upper()
    json_logs = settings.LOG_JSON if json_logs is None else json_logs

    shared_processors: list[Any] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_request_id,
        redact_event,
    ]

    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # uvicorn installs its own handlers; let records propagate to ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
