"""Request bodies exchanged between the client and the stage endpoints."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from .book import CamelModel


class ProjectStageRequest(CamelModel):
    project_id: UUID


class OutlineRequest(CamelModel):
    project_id: UUID
    concept_index: int = Field(0, description="Index into the stored concepts; falls back to 0")


class ChapterRequest(CamelModel):
    chapter_id: UUID


class StepUpdate(CamelModel):
    step: int = Field(..., ge=0, le=6)
