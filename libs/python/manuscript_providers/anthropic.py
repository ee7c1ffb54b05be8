"""Anthropic Claude provider implementation (text only)."""

from __future__ import annotations

import time
from typing import Any, Dict

from anthropic import AsyncAnthropic

from .base import LLMProvider, ProviderCapabilities, ProviderRequest, ProviderResponse
from .config import ProviderConfig
from .exceptions import ProviderResponseError
from .pricing import estimate_cost

# The Messages API requires an explicit output ceiling.
_DEFAULT_MAX_TOKENS = 2000


class AnthropicProvider(LLMProvider):
    name = "anthropic"

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        self._client = AsyncAnthropic(api_key=config.api_key)

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_json_mode=False,
            supports_images=False,
            max_output_tokens=self._config.settings.max_output_tokens,
        )

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        temperature = (
            request.temperature
            if request.temperature is not None
            else self._config.settings.temperature
        )
        max_output = (
            request.max_output_tokens
            or self._config.settings.max_output_tokens
            or _DEFAULT_MAX_TOKENS
        )
        # Fallback models keep their own configured model; the request model
        # names an OpenAI/Gemini model and is not portable.
        model = self._config.model

        system_prompt = request.system_prompt or ""
        if request.json_mode:
            system_prompt = (
                f"{system_prompt}\n\nRespond with valid JSON only, without markdown fences."
            ).strip()

        params: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_output,
            "temperature": temperature,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if system_prompt:
            params["system"] = system_prompt

        start = time.perf_counter()
        response = await self._client.messages.create(**params)
        latency_ms = (time.perf_counter() - start) * 1000

        text_parts = [
            block.text for block in getattr(response, "content", []) or []
            if getattr(block, "type", None) == "text"
        ]
        text = "".join(text_parts)
        if not text.strip():
            raise ProviderResponseError("Anthropic response missing text content")

        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "input_tokens", 0) if usage else 0
        completion_tokens = getattr(usage, "output_tokens", 0) if usage else 0
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
