"""Custom exceptions used by provider adapters."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """Base error raised for provider failures."""


class ProviderConfigError(ProviderError):
    """Raised when configuration is missing or invalid."""


class ProviderCapabilityError(ProviderError):
    """Raised when a provider is asked for something it cannot do."""


class ProviderResponseError(ProviderError):
    """Raised when a provider returns an unusable response."""


class MalformedResponseError(ProviderResponseError):
    """Raised when structured output cannot be parsed or validated.

    Surfaced to the caller as-is; the pipeline never retries on it.
    """


class ProviderUnavailableError(ProviderError):
    """Raised when no provider in the chain produced a response."""

    def __init__(self, message: str, attempts: list[tuple[str, str]] | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts or []
