"""Deterministic mock provider for tests and offline development."""

from __future__ import annotations

import base64
import json
from typing import Any

from .base import (
    ImageRequest,
    ImageResponse,
    LLMProvider,
    ProviderCapabilities,
    ProviderRequest,
    ProviderResponse,
)
from .config import ProviderConfig, mock_provider_config

DEFAULT_TEXT = "Mock response generated for testing."

# 1x1 transparent PNG.
MOCK_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

_ARC = ("Foundations", "Complexity", "Application", "Future")


def _stage_payload(stage: str | None, prompt: str) -> Any:
    if stage == "expand_topic":
        return {
            "thesis": "Mock thesis: the seed topic reshapes how its audience thinks.",
            "topics": ["history", "economics", "ethics", "technology", "culture"],
            "researchQuestions": [
                "What drove the topic's emergence?",
                "How do its effects differ across industries?",
                "Which groups benefit most?",
                "How can practitioners apply it today?",
                "Where will it be in ten years?",
            ],
        }
    if stage == "generate_concepts":
        return {
            "concepts": [
                {
                    "title": f"Mock Concept {index}",
                    "tagline": f"A sharp promise for concept {index}",
                    "description": "A mock book concept bridging research and market appeal.",
                    "targetMarket": "Curious professionals with some prior exposure.",
                }
                for index in range(1, 4)
            ]
        }
    if stage == "generate_outline":
        return {
            "chapters": [
                {
                    "id": f"ch{index}",
                    "title": f"{_ARC[(index - 1) * len(_ARC) // 8]}: Mock Chapter {index}",
                    "summary": f"Narrative goal of mock chapter {index}.",
                    "sections": [f"Section {index}.{sub}" for sub in range(1, 4)],
                }
                for index in range(1, 9)
            ]
        }
    return {"message": DEFAULT_TEXT, "echo": prompt[:50]}


class MockProvider(LLMProvider):
    name = "mock"

    def __init__(self, config: ProviderConfig | None = None) -> None:
        self._config = config or mock_provider_config()

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_json_mode=True,
            supports_images=True,
            max_output_tokens=8000,
        )

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        payload: Any
        if request.json_mode:
            payload = _stage_payload(request.metadata.get("stage"), request.prompt)
            text = json.dumps(payload)
        else:
            text = f"{DEFAULT_TEXT}\nPrompt: {request.prompt[:80]}"
            payload = text
        return ProviderResponse(
            text=text,
            raw={"mock": True, "payload": payload},
            model="mock",
            prompt_tokens=len(request.prompt.split()),
            completion_tokens=len(text.split()),
            provider=self.name,
            cost_usd=0.0,
            latency_ms=1.0,
        )

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        return ImageResponse(
            image_bytes=MOCK_PNG,
            model="mock",
            provider=self.name,
            latency_ms=1.0,
        )
