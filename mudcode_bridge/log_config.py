"""
Structured JSON logging for the bridge daemon.

Every line is one JSON object written to stderr:

    {"component": "dispatcher", "event": "hook.send_files", "level": "info", ...}

Loggers are bound to a component name plus optional context, and call sites
log dotted event names with keyword fields rather than formatted strings.
"""

import logging
import os
import sys
from typing import Any

import structlog

DEFAULT_LEVEL = "INFO"
LEVEL_ENV_VAR = "MUDCODE_LOG_LEVEL"


def _render_exception(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Flatten an ``exc=`` field into ``error`` and ``error_type``."""
    exc = event_dict.pop("exc", None)
    if exc is not None:
        event_dict["error"] = str(exc)
        event_dict["error_type"] = type(exc).__name__
    return event_dict


def _resolve_level(level: str | None) -> int:
    name = (level or os.environ.get(LEVEL_ENV_VAR) or DEFAULT_LEVEL).strip().upper()
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        return logging.INFO
    return value


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for JSON output at the requested level."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _render_exception,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(level)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **context: Any) -> Any:
    """Return a logger bound to ``component`` and any extra context."""
    return structlog.get_logger(component=component, **context)
