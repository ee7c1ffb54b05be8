"""Error taxonomy surfaced by the stage handlers."""

from __future__ import annotations

from fastapi import status


class PipelineError(RuntimeError):
    """Base error carrying the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Generation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(PipelineError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFoundError(PipelineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConceptUnavailableError(PipelineError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "No concept found"


class TokenLimitExceededError(PipelineError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Token limit exceeded. Please upgrade your plan."


class StorageFailureError(PipelineError):
    default_message = "Storage upload failed"
