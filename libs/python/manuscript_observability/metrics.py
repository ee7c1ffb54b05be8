"""Prometheus metrics for the API and the manuscript pipeline."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

if TYPE_CHECKING:  # pragma: no cover
    from manuscript_providers.base import ProviderResponse


HTTP_REQUESTS = Counter(
    "manuscript_http_requests_total",
    "HTTP requests by route and response status",
    labelnames=("service", "method", "route", "status"),
)
HTTP_LATENCY = Histogram(
    "manuscript_http_request_duration_seconds",
    "HTTP request latency",
    labelnames=("service", "method", "route"),
)

# Chapter drafting routinely takes over a minute, hence the long tail.
STAGE_DURATION = Histogram(
    "manuscript_stage_duration_seconds",
    "Wall time of a pipeline stage from admission to persistence",
    labelnames=("service", "stage"),
    buckets=(0.5, 1, 2.5, 5, 10, 20, 40, 60, 120, 300),
)
STAGE_RUNS = Counter(
    "manuscript_stage_runs_total",
    "Pipeline stage executions by outcome",
    labelnames=("service", "stage", "status"),
)

PROVIDER_TOKENS = Counter(
    "manuscript_llm_tokens_total",
    "Tokens reported by the provider that served a stage",
    labelnames=("service", "stage", "provider", "token_type"),
)
PROVIDER_COST = Counter(
    "manuscript_llm_cost_usd_total",
    "Estimated provider spend in USD",
    labelnames=("service", "stage", "provider"),
)
PROVIDER_LATENCY = Histogram(
    "manuscript_llm_latency_seconds",
    "Latency of the successful provider call",
    labelnames=("service", "stage", "provider"),
)
PROVIDER_FALLBACKS = Counter(
    "manuscript_provider_fallbacks_total",
    "Provider calls that failed and fell through to the next provider",
    labelnames=("service", "provider", "call_kind"),
)

BUDGET_REJECTIONS = Counter(
    "manuscript_budget_rejections_total",
    "Stage requests refused because the estimate exceeded the remaining allowance",
    labelnames=("service", "stage"),
)
CHARGED_TOKENS = Counter(
    "manuscript_charged_tokens_total",
    "Fixed stage estimates charged against account budgets",
    labelnames=("service", "stage"),
)


def _route_label(request: Request) -> str:
    # Use the route template so /projects/{project_id} is one series.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count requests and time them per route template."""

    def __init__(self, app: FastAPI, service_name: str) -> None:
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        started = perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            route = _route_label(request)
            HTTP_REQUESTS.labels(self.service_name, request.method, route, str(status)).inc()
            HTTP_LATENCY.labels(self.service_name, request.method, route).observe(
                perf_counter() - started
            )


def setup_fastapi_metrics(app: FastAPI, service_name: str, endpoint: str = "/metrics") -> None:
    """Install the request middleware and expose ``endpoint`` for scraping."""

    if getattr(app.state, "metrics_configured", False):
        return

    app.add_middleware(PrometheusMiddleware, service_name=service_name)

    @app.get(endpoint, include_in_schema=False)
    async def _metrics_endpoint() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.state.metrics_configured = True


def observe_stage_duration(
    stage: str,
    duration_seconds: float,
    *,
    service_name: str,
    status: str = "success",
) -> None:
    STAGE_DURATION.labels(service_name, stage).observe(max(duration_seconds, 0.0))
    STAGE_RUNS.labels(service_name, stage, status).inc()


def observe_provider_response(
    *,
    stage: str,
    service_name: str,
    response: "ProviderResponse | None",
) -> None:
    """Export usage reported by the provider that answered a stage.

    These figures are informational; budgets are charged from the fixed stage
    estimates instead.
    """

    if response is None:
        return
    provider = response.provider or "unknown"
    for token_type, count in (
        ("prompt", response.prompt_tokens),
        ("completion", response.completion_tokens),
    ):
        if count:
            PROVIDER_TOKENS.labels(service_name, stage, provider, token_type).inc(count)
    if response.latency_ms is not None and response.latency_ms >= 0:
        PROVIDER_LATENCY.labels(service_name, stage, provider).observe(response.latency_ms / 1000)
    if response.cost_usd:
        PROVIDER_COST.labels(service_name, stage, provider).inc(response.cost_usd)


def record_provider_fallback(*, service_name: str, provider: str, call_kind: str) -> None:
    PROVIDER_FALLBACKS.labels(service_name, provider, call_kind).inc()


def record_budget_rejection(*, service_name: str, stage: str) -> None:
    BUDGET_REJECTIONS.labels(service_name, stage).inc()


def record_charged_tokens(*, service_name: str, stage: str, tokens: int) -> None:
    if tokens > 0:
        CHARGED_TOKENS.labels(service_name, stage).inc(tokens)
