"""Structured logging configuration for reliefdesk.

Environment variables:
    RD_LOG_FORMAT  -- ``json`` for one JSON object per line, ``text`` (default) otherwise.
    RD_LOG_LEVEL   -- Python log level name (default: ``INFO``).

Audit events (``reliefdesk.audit``) and request logs carry their context as
``extra=`` fields; in JSON mode those become top-level keys.
"""

from __future__ import annotations

import logging
import os
import traceback
from typing import Any

from pythonjsonlogger.json import JsonFormatter

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

#: Record attributes always emitted as top-level JSON keys when set.
STRUCTURED_FIELDS: tuple[str, ...] = (
    "request_id",
    "path",
    "method",
    "status_code",
    "duration_ms",
    "principal_id",
    "role",
    "permissions",
    "action",
)


def _log_format() -> str:
    return os.environ.get("RD_LOG_FORMAT", "text").strip().lower()


def _get_log_level() -> int:
    """Resolve RD_LOG_LEVEL to a numeric level; unknown names mean INFO."""
    name = os.environ.get("RD_LOG_LEVEL", "INFO").strip().upper()
    return logging.getLevelNamesMapping().get(name, logging.INFO)


class StructuredJsonFormatter(JsonFormatter):
    """JSON formatter for request and authorization events.

    Exceptions are rendered as a ``traceback`` list of lines instead of the
    single ``exc_info`` string python-json-logger produces by default.
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def add_fields(
        self,
        log_data: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_data, record, message_dict)
        for key in STRUCTURED_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            log_data.pop("exc_info", None)
            log_data["traceback"] = traceback.format_exception(*record.exc_info)


def _build_formatter() -> logging.Formatter:
    if _log_format() == "json":
        return StructuredJsonFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logging() -> None:
    """Install a single stderr handler on the root logger.

    Safe to call repeatedly: previous root handlers are replaced.
    """
    level = _get_log_level()
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(_build_formatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def log_startup_info() -> None:
    """Log the active principal provider and the size of the role tables."""
    import reliefdesk
    from reliefdesk.rbac import Permission, Role

    logging.getLogger("reliefdesk").info(
        "reliefdesk started",
        extra={
            "version": reliefdesk.__version__,
            "auth_provider": os.environ.get("RD_AUTH_PROVIDER", "header").lower(),
            "role_count": len(Role),
            "permission_count": len(Permission),
        },
    )
