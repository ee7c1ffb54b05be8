"""Ordered provider chain with automatic fallback."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from .base import (
    ImageRequest,
    ImageResponse,
    LLMProvider,
    ProviderCapabilities,
    ProviderRequest,
    ProviderResponse,
)
from .exceptions import ProviderUnavailableError

logger = logging.getLogger(__name__)

FailureHook = Callable[[str, str, BaseException], None]


class FallbackProvider(LLMProvider):
    """Try each provider in order and return the first successful response.

    Any exception raised by a member (SDK network errors, non-2xx statuses,
    :class:`ProviderResponseError`) moves on to the next member. When the
    chain is exhausted a :class:`ProviderUnavailableError` is raised.
    """

    name = "fallback"

    def __init__(
        self,
        providers: Sequence[LLMProvider],
        *,
        on_failure: FailureHook | None = None,
    ) -> None:
        self._providers = list(providers)
        self._on_failure = on_failure

    @property
    def providers(self) -> list[LLMProvider]:
        return list(self._providers)

    def capabilities(self) -> ProviderCapabilities:
        caps = [provider.capabilities() for provider in self._providers]
        return ProviderCapabilities(
            supports_json_mode=any(cap.supports_json_mode for cap in caps),
            supports_images=any(cap.supports_images for cap in caps),
            max_output_tokens=max(
                (cap.max_output_tokens for cap in caps if cap.max_output_tokens),
                default=None,
            ),
        )

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        attempts: list[tuple[str, str]] = []
        for provider in self._providers:
            try:
                return await provider.generate(request)
            except Exception as exc:
                self._record_failure(provider, "text", exc, attempts)
        raise ProviderUnavailableError(self._summarise("text generation", attempts), attempts)

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        attempts: list[tuple[str, str]] = []
        for provider in self._providers:
            if not provider.capabilities().supports_images:
                continue
            try:
                return await provider.generate_image(request)
            except Exception as exc:
                self._record_failure(provider, "image", exc, attempts)
        raise ProviderUnavailableError(self._summarise("image generation", attempts), attempts)

    def _record_failure(
        self,
        provider: LLMProvider,
        kind: str,
        exc: BaseException,
        attempts: list[tuple[str, str]],
    ) -> None:
        attempts.append((provider.name, str(exc) or exc.__class__.__name__))
        logger.warning(
            "Provider call failed, falling through",
            extra={"provider": provider.name, "call_kind": kind, "error": str(exc)},
        )
        if self._on_failure is not None:
            self._on_failure(provider.name, kind, exc)

    @staticmethod
    def _summarise(kind: str, attempts: list[tuple[str, str]]) -> str:
        if not attempts:
            return f"No AI provider configured for {kind}"
        tried = ", ".join(name for name, _ in attempts)
        return f"All AI providers failed for {kind} (tried: {tried})"


__all__ = ["FallbackProvider"]
