"""Structured logging setup shared by the API and background helpers."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

_REDACTED_KEYS = {
    "authorization",
    "claim_token",
    "password",
    "secret",
    "token",
}

_configured = False


def _add_timestamp(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("ts", datetime.now(timezone.utc).isoformat(timespec="milliseconds"))
    return event_dict


def _add_service(service_name: str):
    def _inner(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return _inner


def _redact_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in list(event_dict):
        if str(key).lower() in _REDACTED_KEYS:
            event_dict[key] = "***redacted***"
    return event_dict


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    service_name: str = "greenhouse",
    *,
    level: str | int = logging.INFO,
    json_output: bool = True,
) -> None:
    """Install the process-wide logging setup.

    Safe to call more than once; the latest call wins. Standard library loggers
    (uvicorn, sqlalchemy) are routed to stderr with the same level, replacing
    any root handlers already installed. Only the application entrypoint
    should call this.
    """

    level = _coerce_level(level)
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)
    _configure_structlog(service_name, level=level, json_output=json_output)


def _configure_structlog(service_name: str, *, level: int, json_output: bool) -> None:
    global _configured

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _add_timestamp,
            _add_service(service_name),
            _redact_secrets,
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger.

    The first call installs the default structlog chain but leaves the
    standard library's root handlers alone.
    """

    if not _configured:
        _configure_structlog("greenhouse", level=logging.INFO, json_output=True)
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


__all__ = ["configure_logging", "get_logger"]
