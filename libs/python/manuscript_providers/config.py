"""Configuration models and helpers for provider selection."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ProviderConfigError

PROVIDER_CHAIN_ENV_VAR = "LLM_PROVIDER_CHAIN"
DEFAULT_PROVIDER_CHAIN = "openai,anthropic"

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o",
    "anthropic": "claude-sonnet-4-5-20250929",
    "gemini": "gemini-2.5-flash",
}

DEFAULT_IMAGE_MODELS: dict[str, str] = {
    "openai": "dall-e-3",
    "gemini": "imagen-3.0-generate-002",
}


class ProviderSettings(BaseModel):
    """Per-call default parameters."""

    temperature: float = Field(0.7, ge=0, le=2)
    max_output_tokens: int | None = Field(None, ge=16)
    json_mode: bool = Field(False)


class ProviderConfig(BaseModel):
    """Configuration for a single provider instance."""

    model_config = ConfigDict(frozen=True)

    name: str
    api_key: str
    model: str
    image_model: str | None = None
    settings: ProviderSettings = Field(default_factory=ProviderSettings)


def mock_provider_config() -> ProviderConfig:
    return ProviderConfig(name="mock", api_key="mock", model="mock", image_model="mock")


def load_provider_config(prefix: str) -> ProviderConfig:
    """Load configuration for one provider from environment variables.

    Args:
        prefix: Provider name, also used as the environment variable prefix.

    Environment variables used (assuming prefix "OPENAI"):
        OPENAI_API_KEY
        OPENAI_MODEL (optional, defaults per provider)
        OPENAI_IMAGE_MODEL (optional)
        OPENAI_TEMPERATURE (optional)
        OPENAI_MAX_OUTPUT_TOKENS (optional)

    Returns:
        ProviderConfig object populated from environment variables.

    Raises:
        ProviderConfigError: If the API key is missing or a value is invalid.
    """

    provider_name = prefix.strip().lower()
    if provider_name == "mock":
        return mock_provider_config()
    env_prefix = provider_name.upper()

    def read_env(key: str, default: Any | None = None) -> Any:
        return os.getenv(f"{env_prefix}_{key}", default)

    api_key = read_env("API_KEY")
    if not api_key:
        raise ProviderConfigError(f"{env_prefix}_API_KEY is not configured")

    model = read_env("MODEL") or DEFAULT_MODELS.get(provider_name)
    if not model:
        raise ProviderConfigError(f"{env_prefix}_MODEL is not configured")

    try:
        temperature = float(read_env("TEMPERATURE", 0.7))
    except ValueError as exc:
        raise ProviderConfigError(f"{env_prefix}_TEMPERATURE must be a float") from exc

    max_output_raw = read_env("MAX_OUTPUT_TOKENS")
    max_output_tokens = None
    if max_output_raw not in (None, ""):
        try:
            parsed_max = int(str(max_output_raw).strip())
        except (TypeError, ValueError) as exc:
            raise ProviderConfigError(
                f"{env_prefix}_MAX_OUTPUT_TOKENS must be a positive integer"
            ) from exc
        max_output_tokens = parsed_max if parsed_max > 0 else None

    image_model = read_env("IMAGE_MODEL") or DEFAULT_IMAGE_MODELS.get(provider_name)

    try:
        settings = ProviderSettings(temperature=temperature, max_output_tokens=max_output_tokens)
    except ValidationError as exc:
        raise ProviderConfigError(f"{env_prefix} settings are out of range: {exc}") from exc
    return ProviderConfig(
        name=provider_name,
        api_key=api_key,
        model=model,
        image_model=image_model,
        settings=settings,
    )


def provider_chain_names(raw: str | None = None) -> list[str]:
    """Return the ordered provider names from ``LLM_PROVIDER_CHAIN``."""

    value = raw if raw is not None else os.getenv(PROVIDER_CHAIN_ENV_VAR, DEFAULT_PROVIDER_CHAIN)
    names: list[str] = []
    for item in value.split(","):
        name = item.strip().lower()
        if name and name not in names:
            names.append(name)
    return names
