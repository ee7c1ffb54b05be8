"""Factory utilities for instantiating providers."""

from __future__ import annotations

import logging
from typing import Dict, Type

from .anthropic import AnthropicProvider
from .base import LLMProvider
from .config import ProviderConfig, load_provider_config, provider_chain_names
from .exceptions import ProviderConfigError
from .fallback import FailureHook, FallbackProvider
from .gemini import GeminiProvider
from .mock import MockProvider
from .openai import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDER_MAP: Dict[str, Type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
    "mock": MockProvider,
}


class ProviderFactory:
    """Factory for creating providers based on configuration."""

    @staticmethod
    def create(config: ProviderConfig) -> LLMProvider:
        provider_cls = PROVIDER_MAP.get(config.name.lower())
        if provider_cls is None:
            raise ProviderConfigError(f"Unknown provider: {config.name}")
        return provider_cls(config)

    @staticmethod
    def create_chain(
        names: list[str] | None = None,
        *,
        on_failure: FailureHook | None = None,
    ) -> FallbackProvider:
        """Build a :class:`FallbackProvider` from ``LLM_PROVIDER_CHAIN``.

        Providers whose credentials are missing are skipped so that a
        deployment with only one key configured still works.
        """

        members: list[LLMProvider] = []
        for name in names if names is not None else provider_chain_names():
            try:
                members.append(ProviderFactory.create(load_provider_config(prefix=name)))
            except ProviderConfigError as exc:
                logger.warning(
                    "Skipping unconfigured provider",
                    extra={"provider": name, "error": str(exc)},
                )
        if not members:
            logger.error("No AI provider configured; generation calls will fail")
        return FallbackProvider(members, on_failure=on_failure)
