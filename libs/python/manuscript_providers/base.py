"""Core interfaces and dataclasses for provider interactions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, MutableMapping

from .exceptions import ProviderCapabilityError

DEFAULT_ASPECT_RATIO = "3:4"


@dataclass(slots=True)
class ProviderRequest:
    """Normalized text request passed to providers."""

    prompt: str
    system_prompt: str | None = None
    json_mode: bool = False
    model: str | None = None
    temperature: float | None = None
    max_output_tokens: int | None = None
    metadata: MutableMapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ProviderResponse:
    """Standard text response returned by providers."""

    text: str
    raw: Any
    model: str
    prompt_tokens: int
    completion_tokens: int
    provider: str = "unknown"
    cost_usd: float | None = None
    latency_ms: float | None = None
    received_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(slots=True)
class ImageRequest:
    """Image generation request; providers map the aspect ratio to a native size."""

    prompt: str
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    model: str | None = None
    metadata: MutableMapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ImageResponse:
    image_bytes: bytes
    model: str
    provider: str = "unknown"
    mime_type: str = "image/png"
    latency_ms: float | None = None


@dataclass(slots=True)
class ProviderCapabilities:
    """Capability flags used when choosing a provider."""

    supports_json_mode: bool = False
    supports_images: bool = False
    max_output_tokens: int | None = None


class LLMProvider(ABC):
    """Abstract base class implemented by concrete providers."""

    name: str

    @abstractmethod
    def capabilities(self) -> ProviderCapabilities:
        """Return capability metadata."""

    @abstractmethod
    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        """Generate text or JSON response for the provided prompt."""

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        """Generate a single image; providers without image support refuse."""

        raise ProviderCapabilityError(f"{self.name} does not support image generation")
