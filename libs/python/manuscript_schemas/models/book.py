"""Domain models describing projects, concepts, chapters and covers."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..enums import (
    BookGenre,
    ChapterStatus,
    CoverStyle,
    CreationStep,
    ProjectStatus,
    WritingStyle,
)

logger = logging.getLogger(__name__)

DEFAULT_TARGET_WORD_COUNT = 2000
CONCEPT_WRAPPER_KEYS = ("concepts", "data")


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectSettings(CamelModel):
    """Fields supplied by the author when creating a project."""

    title: str = Field("Untitled Project", min_length=1, max_length=200)
    keyword: str = Field(..., min_length=1, description="Seed keyword or topic")
    description: str = Field("", description="Free-form description of the book idea")
    genre: BookGenre = BookGenre.NON_FICTION
    target_audience: str = Field("", max_length=500)
    writing_style: WritingStyle = WritingStyle.FORMAL
    cover_style: CoverStyle = CoverStyle.MINIMALIST
    word_count_goal: int = Field(50_000, ge=1_000, le=500_000)

    @field_validator("keyword")
    @classmethod
    def validate_keyword(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Keyword must not be blank")
        return value


class ProjectUpdate(CamelModel):
    """Editable project fields; omitted fields are left untouched."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    keyword: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    genre: Optional[BookGenre] = None
    target_audience: Optional[str] = Field(None, max_length=500)
    writing_style: Optional[WritingStyle] = None
    cover_style: Optional[CoverStyle] = None
    word_count_goal: Optional[int] = Field(None, ge=1_000, le=500_000)

    def changes(self) -> dict[str, Any]:
        return {
            key: value.value if hasattr(value, "value") else value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


class Project(CamelModel):
    """Persisted book project owned by a single user."""

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    title: str = "Untitled Project"
    keyword: str = ""
    description: str = ""
    genre: str = BookGenre.NON_FICTION.value
    target_audience: str = ""
    writing_style: str = WritingStyle.FORMAL.value
    cover_style: str = CoverStyle.MINIMALIST.value
    word_count_goal: int = 50_000
    current_step: int = Field(CreationStep.SETUP.value, ge=0, le=6)
    status: ProjectStatus = ProjectStatus.SETUP
    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class BrainstormResult(CamelModel):
    """Expanded topic returned by the brainstorm stage."""

    thesis: str = Field(..., min_length=1)
    topics: list[str] = Field(default_factory=list)
    research_questions: list[str] = Field(default_factory=list)


class BookConcept(CamelModel):
    """A candidate book concept."""

    title: str = Field(..., min_length=1, max_length=300)
    tagline: str = ""
    description: str = ""
    target_market: str = ""


class ConceptSet(CamelModel):
    """Brainstorm map, candidate concepts and the selected concept for a project."""

    id: UUID = Field(default_factory=uuid4)
    project_id: UUID
    thesis_statement: Optional[str] = None
    brainstorm: Optional[BrainstormResult] = None
    concepts: Any = Field(
        default=None, description="Raw stored concepts JSON; normalised on read"
    )
    selected_title: Optional[str] = None
    selected_tagline: Optional[str] = None
    selected_description: Optional[str] = None
    market_positioning: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def research_questions(self) -> list[str]:
        return list(self.brainstorm.research_questions) if self.brainstorm else []

    def concept_list(self) -> list[BookConcept]:
        return normalise_concepts(self.concepts)


def normalise_concepts(raw: Any) -> list[BookConcept]:
    """Normalise a persisted concepts payload; invalid entries are dropped.

    Accepts a list, an object wrapping a list, or a single bare concept.
    """

    if isinstance(raw, list):
        items = raw
    elif isinstance(raw, dict):
        items = next(
            (raw[key] for key in CONCEPT_WRAPPER_KEYS if isinstance(raw.get(key), list)),
            [raw] if raw.get("title") else [],
        )
    else:
        items = []

    concepts: list[BookConcept] = []
    for item in items:
        try:
            concepts.append(BookConcept.model_validate(item))
        except ValidationError:
            logger.warning("Skipping invalid stored concept", extra={"concept": str(item)[:200]})
    return concepts


class OutlineChapter(CamelModel):
    """One chapter entry in a generated outline."""

    id: str = ""
    title: str = Field(..., min_length=1, max_length=300)
    summary: str = ""
    sections: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ChapterRecord(CamelModel):
    """Persisted chapter with its drafting state."""

    id: UUID = Field(default_factory=uuid4)
    project_id: UUID
    title: str
    order_index: int = Field(..., ge=0)
    summary: str = ""
    sections: list[str] = Field(default_factory=list)
    content: Optional[str] = None
    target_word_count: int = DEFAULT_TARGET_WORD_COUNT
    word_count: int = 0
    status: ChapterStatus = ChapterStatus.DRAFT
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ChapterDraft(CamelModel):
    """Result of drafting a single chapter."""

    content: str
    word_count: int = Field(..., ge=0)


class CoverDesign(CamelModel):
    """Append-only cover record; the latest row is the current cover."""

    id: UUID = Field(default_factory=uuid4)
    project_id: UUID
    prompt: str
    image_url: str
    storage_path: str
    style: str = CoverStyle.MINIMALIST.value
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CoverResult(CamelModel):
    image_url: str
    prompt: str


class ProjectSnapshot(CamelModel):
    """Everything a client needs to resume a project."""

    project: Project
    concept_set: Optional[ConceptSet] = None
    chapters: list[ChapterRecord] = Field(default_factory=list)
    cover: Optional[CoverDesign] = None
