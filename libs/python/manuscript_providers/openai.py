"""OpenAI provider implementation (chat completions and image generation)."""

from __future__ import annotations

import base64
import binascii
import time
from typing import Any, Dict, List

from openai import AsyncOpenAI

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

# DALL-E 3 only renders three sizes; portrait ratios map to the tall one.
_IMAGE_SIZES: dict[str, str] = {
    "1:1": "1024x1024",
    "3:4": "1024x1792",
    "2:3": "1024x1792",
    "9:16": "1024x1792",
    "4:3": "1792x1024",
    "16:9": "1792x1024",
}


class OpenAIProvider(LLMProvider):
    name = "openai"

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        self._client = AsyncOpenAI(api_key=config.api_key)

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_json_mode=True,
            supports_images=bool(self._config.image_model),
            max_output_tokens=self._config.settings.max_output_tokens,
        )

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        messages: List[Dict[str, Any]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})

        temperature = (
            request.temperature
            if request.temperature is not None
            else self._config.settings.temperature
        )
        model = request.model or self._config.model

        params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }

        max_output = (
            request.max_output_tokens
            if request.max_output_tokens is not None
            else self._config.settings.max_output_tokens
        )
        if max_output:
            params["max_tokens"] = max_output

        if request.json_mode or self._config.settings.json_mode:
            params["response_format"] = {"type": "json_object"}

        start = time.perf_counter()
        response = await self._client.chat.completions.create(**params)
        latency_ms = (time.perf_counter() - start) * 1000

        try:
            text = response.choices[0].message.content or ""
        except (IndexError, AttributeError) as err:
            raise ProviderResponseError("OpenAI response missing content") from err
        if not text.strip():
            raise ProviderResponseError("OpenAI returned an empty completion")

        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", 0) if usage else 0
        completion_tokens = getattr(usage, "completion_tokens", 0) if usage else 0
        cost_usd = estimate_cost(
            provider=self.name,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

        return ProviderResponse(
            text=text,
            raw=response,
            model=getattr(response, "model", model),
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

        size = _IMAGE_SIZES.get(request.aspect_ratio, _IMAGE_SIZES["3:4"])
        start = time.perf_counter()
        response = await self._client.images.generate(
            model=model,
            prompt=request.prompt,
            n=1,
            size=size,
            response_format="b64_json",
        )
        latency_ms = (time.perf_counter() - start) * 1000

        try:
            encoded = response.data[0].b64_json
        except (IndexError, AttributeError, TypeError) as err:
            raise ProviderResponseError("OpenAI image response missing data") from err
        if not encoded:
            raise ProviderResponseError("OpenAI image response missing data")
        try:
            image_bytes = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as err:
            raise ProviderResponseError("OpenAI image payload was not valid base64") from err

        return ImageResponse(
            image_bytes=image_bytes,
            model=model,
            provider=self.name,
            latency_ms=latency_ms,
        )
