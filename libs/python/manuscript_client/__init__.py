"""Client orchestrator for the manuscript API."""

from .client import ManuscriptClient
from .exceptions import SessionBusyError, StageRequestError
from .session import WizardSession

__all__ = [
    "ManuscriptClient",
    "SessionBusyError",
    "StageRequestError",
    "WizardSession",
]
