"""Errors raised by the manuscript client."""

from __future__ import annotations


class StageRequestError(RuntimeError):
    """An API call failed; ``status`` is ``0`` when no response arrived."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    @property
    def is_budget_exhausted(self) -> bool:
        return self.status == 429


class SessionBusyError(RuntimeError):
    """Raised when a stage action starts while another is in flight."""
