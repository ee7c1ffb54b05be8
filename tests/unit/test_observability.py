"""Tests for JSON logging and log context propagation."""

import json
import logging
from uuid import uuid4

from manuscript_observability import log_context
from manuscript_observability.logging import ContextFilter, JsonFormatter


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_includes_bound_context() -> None:
    project_id = uuid4()
    context_filter = ContextFilter("api")
    with log_context(stage="generate_outline", project_id=project_id):
        record = _record("Stage started")
        context_filter.filter(record)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Stage started"
    assert payload["service"] == "api"
    assert payload["stage"] == "generate_outline"
    assert payload["project_id"] == str(project_id)


def test_context_is_restored_after_block() -> None:
    context_filter = ContextFilter("api")
    with log_context(stage="expand_topic"):
        with log_context(stage=None, chapter_id="c1"):
            inner = _record("inner")
            context_filter.filter(inner)
    outer = _record("outer")
    context_filter.filter(outer)

    assert not hasattr(inner, "stage")
    assert inner.chapter_id == "c1"
    assert not hasattr(outer, "stage")


def test_formatter_drops_unserialisable_extras() -> None:
    record = _record("hello", estimated_tokens=5000, payload=object())
    payload = json.loads(JsonFormatter().format(record))
    assert payload["estimated_tokens"] == 5000
    assert "payload" not in payload
