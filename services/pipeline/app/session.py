"""Per-request context handed to every stage handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4

from manuscript_providers import LLMProvider
from manuscript_schemas import UserAccount

from .store.base import PipelineStore
from .store.objects import ObjectStore


@dataclass
class StageContext:
    """Authenticated caller plus the collaborators a stage may touch."""

    account: UserAccount
    store: PipelineStore
    provider: LLMProvider
    objects: ObjectStore
    request_id: str = field(default_factory=lambda: uuid4().hex)
    service_name: str = "api"
