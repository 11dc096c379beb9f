"""Structured logging: structlog rendered through stdlib logging handlers."""

from __future__ import annotations

import logging
import logging.config
import os
from typing import Any

import structlog

_SECRET_KEYS = frozenset({"api_key", "apikey", "x-apikey", "x_apikey"})
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def redact_secrets(
    _logger: Any, _method: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask API keys that end up in an event's fields."""
    for key in event_dict:
        if key.lower() in _SECRET_KEYS and event_dict[key]:
            value = str(event_dict[key])
            event_dict[key] = f"{value[:4]}…" if len(value) > 8 else "***"
    return event_dict


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def _handlers(log_file: str | None) -> dict[str, dict[str, Any]]:
    handlers: dict[str, dict[str, Any]] = {
        "stderr": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "formatter": "structlog",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
            "formatter": "structlog",
        }
    return handlers


def setup_logging(level: str | None = None) -> None:
    """Configure structlog and stdlib logging for the CLI and the API.

    Environment:
        VTWATCH_LOG_LEVEL: level name, INFO by default (*level* wins)
        VTWATCH_LOG_FORMAT: ``console`` or ``json``
        VTWATCH_LOG_FILE: also write to this file, rotated at 5 MiB
    """
    log_level = (level or os.environ.get("VTWATCH_LOG_LEVEL", "INFO")).upper()
    log_format = os.environ.get("VTWATCH_LOG_FORMAT", "console").lower()
    log_file = os.environ.get("VTWATCH_LOG_FILE") or None

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers = _handlers(log_file)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(log_format),
                    ],
                },
            },
            "handlers": handlers,
            "root": {"handlers": list(handlers), "level": log_level},
            "loggers": {
                "vtwatch": {"level": log_level},
                # httpx logs every request URL at INFO
                **{name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
            },
        }
    )
