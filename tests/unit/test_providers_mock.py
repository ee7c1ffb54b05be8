"""Tests for the mock provider, factory and fallback chain."""

import json

import pytest

from manuscript_providers import (
    FallbackProvider,
    ImageRequest,
    LLMProvider,
    MockProvider,
    ProviderCapabilities,
    ProviderConfig,
    ProviderFactory,
    ProviderRequest,
    ProviderResponse,
    ProviderSettings,
)
from manuscript_providers.exceptions import (
    ProviderCapabilityError,
    ProviderConfigError,
    ProviderUnavailableError,
)
from manuscript_providers.mock import MOCK_PNG
from manuscript_providers.pricing import estimate_cost


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def anyio_backend():
    return "asyncio"


class _FailingProvider(LLMProvider):
    name = "failing"

    def __init__(self) -> None:
        self.calls = 0

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(supports_json_mode=True, supports_images=True)

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        self.calls += 1
        raise RuntimeError("upstream returned 503")

    async def generate_image(self, request: ImageRequest):
        self.calls += 1
        raise RuntimeError("upstream returned 503")


class _TextOnlyProvider(LLMProvider):
    name = "text-only"

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(supports_json_mode=True)

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        return ProviderResponse(
            text="{}", raw=None, model="text-only", prompt_tokens=1, completion_tokens=1
        )


async def test_mock_generate_text() -> None:
    provider = MockProvider()
    response = await provider.generate(ProviderRequest(prompt="Summarise the project"))
    assert response.model == "mock"
    assert "Mock response" in response.text
    assert response.prompt_tokens > 0


async def test_mock_json_mode_returns_stage_payload() -> None:
    provider = MockProvider()
    request = ProviderRequest(
        prompt="List concepts", json_mode=True, metadata={"stage": "generate_concepts"}
    )
    response = await provider.generate(request)
    payload = json.loads(response.text)
    assert len(payload["concepts"]) == 3


async def test_mock_image_returns_png() -> None:
    response = await MockProvider().generate_image(ImageRequest(prompt="A cover"))
    assert response.image_bytes == MOCK_PNG
    assert response.image_bytes.startswith(b"\x89PNG")


def test_factory_creates_mock_when_config_provided() -> None:
    config = ProviderConfig(
        name="mock",
        api_key="mock",
        model="mock",
        settings=ProviderSettings(),
    )
    provider = ProviderFactory.create(config)
    assert isinstance(provider, MockProvider)


def test_factory_rejects_unknown_provider() -> None:
    with pytest.raises(ProviderConfigError):
        ProviderFactory.create(ProviderConfig(name="mystery", api_key="x", model="y"))


def test_chain_skips_unconfigured_providers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    chain = ProviderFactory.create_chain(["openai", "mock"])
    assert [provider.name for provider in chain.providers] == ["mock"]


def test_chain_skips_provider_with_out_of_range_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "key")
    monkeypatch.setenv("OPENAI_MAX_OUTPUT_TOKENS", "8")
    chain = ProviderFactory.create_chain(["openai", "mock"])
    assert [provider.name for provider in chain.providers] == ["mock"]


async def test_fallback_uses_next_provider_and_reports_failure() -> None:
    failures = []
    failing = _FailingProvider()
    chain = FallbackProvider(
        [failing, MockProvider()],
        on_failure=lambda name, kind, exc: failures.append((name, kind)),
    )

    response = await chain.generate(ProviderRequest(prompt="Hello"))

    assert response.provider == "mock"
    assert failing.calls == 1
    assert failures == [("failing", "text")]


async def test_fallback_exhausted_raises_unavailable() -> None:
    chain = FallbackProvider([_FailingProvider(), _FailingProvider()])
    with pytest.raises(ProviderUnavailableError) as excinfo:
        await chain.generate(ProviderRequest(prompt="Hello"))
    assert len(excinfo.value.attempts) == 2


async def test_empty_chain_raises_unavailable() -> None:
    with pytest.raises(ProviderUnavailableError):
        await FallbackProvider([]).generate(ProviderRequest(prompt="Hello"))


async def test_image_fallback_skips_text_only_members() -> None:
    text_only = _TextOnlyProvider()
    chain = FallbackProvider([text_only, MockProvider()])
    response = await chain.generate_image(ImageRequest(prompt="A cover"))
    assert response.provider == "mock"
    with pytest.raises(ProviderCapabilityError):
        await text_only.generate_image(ImageRequest(prompt="A cover"))


def test_cost_estimate_matches_dated_model_names() -> None:
    assert estimate_cost("mock", "mock", 1000, 1000) == 0.0
    assert estimate_cost("openai", "gpt-4o-2024-08-06", 1_000_000, 0) == 2.5
    assert estimate_cost("openai", "gpt-4o-mini", 1_000_000, 1_000_000) == 0.75
    assert estimate_cost("openai", "davinci", 10, 10) is None
