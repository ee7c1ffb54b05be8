"""Unified provider abstraction for OpenAI, Anthropic and Gemini with fallback."""

from .base import (
    ImageRequest,
    ImageResponse,
    LLMProvider,
    ProviderCapabilities,
    ProviderRequest,
    ProviderResponse,
)
from .config import ProviderConfig, ProviderSettings, load_provider_config, provider_chain_names
from .factory import ProviderFactory
from .fallback import FallbackProvider
from .mock import MockProvider

__all__ = [
    "ImageRequest",
    "ImageResponse",
    "LLMProvider",
    "ProviderCapabilities",
    "ProviderRequest",
    "ProviderResponse",
    "ProviderConfig",
    "ProviderSettings",
    "load_provider_config",
    "provider_chain_names",
    "ProviderFactory",
    "FallbackProvider",
    "MockProvider",
]
