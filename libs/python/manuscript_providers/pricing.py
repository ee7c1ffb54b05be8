"""USD price estimates for the text models used by the pipeline."""

from __future__ import annotations

from typing import NamedTuple


class TokenPrice(NamedTuple):
    input_per_million: float
    output_per_million: float


# Keys are model-name prefixes; providers report dated variants such as
# "gpt-4o-2024-08-06", which price the same as their alias.
TEXT_PRICES: dict[tuple[str, str], TokenPrice] = {
    ("openai", "gpt-4o-mini"): TokenPrice(0.15, 0.60),
    ("openai", "gpt-4o"): TokenPrice(2.50, 10.0),
    ("openai", "gpt-4.1"): TokenPrice(2.0, 8.0),
    ("anthropic", "claude-haiku-4-5"): TokenPrice(1.0, 5.0),
    ("anthropic", "claude-sonnet-4-5"): TokenPrice(3.0, 15.0),
    ("gemini", "gemini-2.5-flash"): TokenPrice(0.30, 2.5),
    ("gemini", "gemini-2.5-pro"): TokenPrice(1.25, 10.0),
}


def _lookup(provider: str, model: str) -> TokenPrice | None:
    candidates = [
        (prefix, price)
        for (name, prefix), price in TEXT_PRICES.items()
        if name == provider and model.startswith(prefix)
    ]
    if not candidates:
        return None
    # "gpt-4o-mini" must win over "gpt-4o".
    return max(candidates, key=lambda item: len(item[0]))[1]


def estimate_cost(
    provider: str,
    model: str,
    prompt_tokens: int | float | None,
    completion_tokens: int | float | None,
) -> float | None:
    """Approximate the USD cost of one text completion.

    Returns ``0.0`` for the mock provider and ``None`` for unpriced models.
    """

    provider = (provider or "").lower()
    if provider == "mock":
        return 0.0
    price = _lookup(provider, (model or "").lower())
    if price is None:
        return None
    billed_in = max(float(prompt_tokens or 0), 0.0)
    billed_out = max(float(completion_tokens or 0), 0.0)
    return round(
        (billed_in * price.input_per_million + billed_out * price.output_per_million) / 1_000_000,
        6,
    )


__all__ = ["estimate_cost"]
