"""Environment-driven settings for the pipeline service."""

from __future__ import annotations

import os
from datetime import timedelta
from typing import Literal

from pydantic import BaseModel, Field

MEMORY_DATABASE_URL = "memory://"


class PipelineSettings(BaseModel):
    database_url: str = MEMORY_DATABASE_URL
    object_store: Literal["local", "s3"] = "local"
    storage_root: str = Field(default_factory=lambda: os.path.join(os.getcwd(), "storage"))
    public_asset_base_url: str = "http://localhost:8000/assets"
    s3_bucket: str | None = None
    aws_region: str | None = None
    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    session_ttl_minutes: int = Field(720, ge=1)

    @property
    def uses_memory_store(self) -> bool:
        return self.database_url.startswith(MEMORY_DATABASE_URL)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(minutes=self.session_ttl_minutes)

    @property
    def pg_conninfo(self) -> str:
        # psycopg connection URLs do not use SQLAlchemy's driver suffix.
        return self.database_url.replace("+psycopg", "")


def load_settings() -> PipelineSettings:
    origins = [
        origin.strip()
        for origin in os.getenv("MANUSCRIPT_ALLOWED_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]
    values: dict[str, object] = {
        "database_url": os.getenv("DATABASE_URL", MEMORY_DATABASE_URL),
        "object_store": os.getenv("OBJECT_STORE", "local").lower(),
        "public_asset_base_url": os.getenv("PUBLIC_ASSET_BASE_URL", "http://localhost:8000/assets"),
        "s3_bucket": os.getenv("S3_BUCKET"),
        "aws_region": os.getenv("AWS_REGION"),
        "allowed_origins": origins,
        "session_ttl_minutes": int(os.getenv("MANUSCRIPT_SESSION_TTL_MINUTES", "720")),
    }
    storage_root = os.getenv("STORAGE_ROOT")
    if storage_root:
        values["storage_root"] = storage_root
    return PipelineSettings(**values)
