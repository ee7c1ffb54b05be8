"""Google Gemini provider implementation (text and Imagen)."""

from __future__ import annotations

import time
from typing import Any, Dict

from google import genai
from google.genai import types

from .base import (
    ImageRequest,
    ImageResponse,
    LLMProvider,
    ProviderCapabilities,
    ProviderRequest,
    ProviderResponse,
)
from .config import ProviderConfig
from .exceptions import ProviderResponseError
from .pricing import estimate_cost


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        self._client = genai.Client(api_key=config.api_key)

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_json_mode=True,
            supports_images=bool(self._config.image_model),
            max_output_tokens=self._config.settings.max_output_tokens,
        )

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        temperature = (
            request.temperature
            if request.temperature is not None
            else self._config.settings.temperature
        )
        config_kwargs: Dict[str, Any] = {"temperature": temperature}
        if request.system_prompt:
            config_kwargs["system_instruction"] = request.system_prompt

        max_output = (
            request.max_output_tokens
            if request.max_output_tokens is not None
            else self._config.settings.max_output_tokens
        )
        if max_output:
            config_kwargs["max_output_tokens"] = max_output

        if request.json_mode or self._config.settings.json_mode:
            config_kwargs["response_mime_type"] = "application/json"

        model = self._config.model
        start = time.perf_counter()
        response = await self._client.aio.models.generate_content(
            model=model,
            contents=request.prompt,
            config=types.GenerateContentConfig(**config_kwargs),
        )
        latency_ms = (time.perf_counter() - start) * 1000

        text = getattr(response, "text", None) or ""
        if not text.strip():
            raise ProviderResponseError("Gemini response missing text content")

        usage = getattr(response, "usage_metadata", None)
        prompt_tokens = (getattr(usage, "prompt_token_count", 0) or 0) if usage else 0
        completion_tokens = (getattr(usage, "candidates_token_count", 0) or 0) if usage else 0
        cost_usd = estimate_cost(
            provider=self.name,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

        return ProviderResponse(
            text=text,
            raw=response,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            provider=self.name,
            cost_usd=cost_usd,
            latency_ms=latency_ms,
        )

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        model = request.model or self._config.image_model
        if not model:
            return await super().generate_image(request)

        start = time.perf_counter()
        response = await self._client.aio.models.generate_images(
            model=model,
            prompt=request.prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                aspect_ratio=request.aspect_ratio,
                output_mime_type="image/png",
            ),
        )
        latency_ms = (time.perf_counter() - start) * 1000

        try:
            image_bytes = response.generated_images[0].image.image_bytes
        except (IndexError, AttributeError, TypeError) as err:
            raise ProviderResponseError("Gemini image response missing data") from err
        if not image_bytes:
            raise ProviderResponseError("Gemini image response missing data")

        return ImageResponse(
            image_bytes=image_bytes,
            model=model,
            provider=self.name,
            latency_ms=latency_ms,
        )
