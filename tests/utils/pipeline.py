"""Fixtures shared by pipeline tests: scripted providers and seeded stores."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from manuscript_providers import (
    ImageRequest,
    ImageResponse,
    MockProvider,
    ProviderRequest,
    ProviderResponse,
)
from manuscript_schemas import Project, ProjectSettings, UserAccount

from services.pipeline.app.session import StageContext
from services.pipeline.app.store import InMemoryStore, LocalObjectStore


class ScriptedProvider(MockProvider):
    """Mock provider that records requests and can replay canned text per stage."""

    def __init__(self, responses: Optional[dict[str, str]] = None) -> None:
        super().__init__()
        self.responses = dict(responses or {})
        self.requests: list[ProviderRequest] = []
        self.image_requests: list[ImageRequest] = []
        self.fail_with: Optional[Exception] = None

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        canned = self.responses.get(request.metadata.get("stage"))
        if canned is None:
            return await super().generate(request)
        return ProviderResponse(
            text=canned,
            raw={"scripted": True},
            model="mock",
            prompt_tokens=len(request.prompt.split()),
            completion_tokens=len(canned.split()),
            provider=self.name,
        )

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        self.image_requests.append(request)
        return await super().generate_image(request)

    @property
    def call_count(self) -> int:
        return len(self.requests) + len(self.image_requests)


def seed_account(
    store: InMemoryStore, email: str = "author@example.com", token_limit: int = 1_000_000
) -> UserAccount:
    return store.create_account(email, token_limit=token_limit)


def seed_project(store: InMemoryStore, account: UserAccount, **overrides) -> Project:
    settings = ProjectSettings(
        keyword=overrides.pop("keyword", "urban beekeeping"),
        description=overrides.pop("description", "A practical guide to rooftop hives."),
        **overrides,
    )
    return store.create_project(account.id, settings)


def make_context(
    store: InMemoryStore,
    account: UserAccount,
    provider: MockProvider,
    storage_root: Path,
) -> StageContext:
    return StageContext(
        account=account,
        store=store,
        provider=provider,
        objects=LocalObjectStore(storage_root, "http://assets.test"),
        request_id="test-request",
        service_name="test",
    )
