"""Provider chain construction for the pipeline service."""

from __future__ import annotations

from manuscript_observability import record_provider_fallback
from manuscript_providers import FallbackProvider, ProviderFactory, provider_chain_names


def build_provider_chain(service_name: str, names: list[str] | None = None) -> FallbackProvider:
    """Create the fallback chain from ``LLM_PROVIDER_CHAIN`` with fallback metrics."""

    def _on_failure(provider: str, call_kind: str, _exc: BaseException) -> None:
        record_provider_fallback(service_name=service_name, provider=provider, call_kind=call_kind)

    return ProviderFactory.create_chain(
        names if names is not None else provider_chain_names(),
        on_failure=_on_failure,
    )
