"""Shared observability helpers used by the manuscript services."""

from .logging import log_context, setup_logging
from .metrics import (
    observe_provider_response,
    observe_stage_duration,
    record_budget_rejection,
    record_charged_tokens,
    record_provider_fallback,
    setup_fastapi_metrics,
)

__all__ = [
    "setup_logging",
    "log_context",
    "setup_fastapi_metrics",
    "observe_provider_response",
    "observe_stage_duration",
    "record_budget_rejection",
    "record_charged_tokens",
    "record_provider_fallback",
]
