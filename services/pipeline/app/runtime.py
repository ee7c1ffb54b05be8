"""Process-level wiring of store, providers and object storage."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from manuscript_providers import LLMProvider
from manuscript_schemas import UserAccount

from .config import PipelineSettings, load_settings
from .providers import build_provider_chain
from .session import StageContext
from .store import ObjectStore, PipelineStore, build_object_store, build_store

logger = logging.getLogger(__name__)


@dataclass
class PipelineRuntime:
    """Long-lived collaborators shared by every request."""

    settings: PipelineSettings
    store: PipelineStore
    provider: LLMProvider
    objects: ObjectStore
    service_name: str = "api"

    def context_for(self, account: UserAccount, request_id: Optional[str] = None) -> StageContext:
        ctx = StageContext(
            account=account,
            store=self.store,
            provider=self.provider,
            objects=self.objects,
            service_name=self.service_name,
        )
        if request_id:
            ctx.request_id = request_id
        return ctx

    def close(self) -> None:
        self.store.close()


def build_runtime(
    settings: Optional[PipelineSettings] = None, *, service_name: str = "api"
) -> PipelineRuntime:
    settings = settings or load_settings()
    runtime = PipelineRuntime(
        settings=settings,
        store=build_store(settings),
        provider=build_provider_chain(service_name),
        objects=build_object_store(settings),
        service_name=service_name,
    )
    logger.info(
        "Pipeline runtime initialised",
        extra={
            "store": type(runtime.store).__name__,
            "object_store": settings.object_store,
        },
    )
    return runtime
