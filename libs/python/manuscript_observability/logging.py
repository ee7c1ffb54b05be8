"""JSON logging for the API process and pipeline stages.

Every record carries the service name plus whatever pipeline identifiers are
bound with :func:`log_context` (``project_id``, ``chapter_id``, ``user_id``,
``stage``, ``request_id``, ``provider``). Extras passed through ``extra=`` are
rendered as top-level keys when they can be represented in JSON.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator
from uuid import UUID


_BOUND_FIELDS: ContextVar[Dict[str, Any]] = ContextVar("manuscript_bound_fields", default={})

_UNSET = object()

# Attributes every LogRecord has; anything else was supplied by the caller.
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class ContextFilter(logging.Filter):
    """Copy the fields bound by :func:`log_context` onto each record."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _BOUND_FIELDS.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        if getattr(record, "service", None) is None:
            record.service = self.service_name
        return True


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or key.startswith("_") or value is None:
                continue
            rendered = _jsonable(value)
            if rendered is not _UNSET:
                payload[key] = rendered

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=True)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return _UNSET
    return value


def setup_logging(service_name: str, level: str | int | None = None) -> None:
    """Route the root and uvicorn loggers through the JSON formatter.

    ``level`` defaults to ``MANUSCRIPT_LOG_LEVEL`` (``INFO`` when unset).
    """

    if level is None:
        level = os.getenv("MANUSCRIPT_LOG_LEVEL", "INFO").upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JsonFormatter}},
            "filters": {
                "pipeline_context": {"()": ContextFilter, "service_name": service_name}
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "json",
                    "filters": ["pipeline_context"],
                }
            },
            "root": {"level": level, "handlers": ["stdout"]},
            "loggers": {
                name: {"handlers": ["stdout"], "level": level, "propagate": False}
                for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
            },
        }
    )


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind pipeline identifiers to every record logged inside the block.

    Passing ``None`` for a field unbinds it for the duration of the block.
    """

    bound = {**_BOUND_FIELDS.get(), **fields}
    token = _BOUND_FIELDS.set({key: value for key, value in bound.items() if value is not None})
    try:
        yield
    finally:
        _BOUND_FIELDS.reset(token)
