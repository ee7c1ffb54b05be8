"""Prompt inputs derived from stored project state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from manuscript_schemas import ChapterRecord, Project
from manuscript_schemas.models.book import DEFAULT_TARGET_WORD_COUNT
from manuscript_schemas.utils.validators import clip_text

KEYWORD_CHAR_LIMIT = 500
DESCRIPTION_CHAR_LIMIT = 2000
CHAPTER_WORD_CEILING = 3000


@dataclass(frozen=True)
class ProjectBrief:
    """Project fields used in prompts, clipped to safe lengths."""

    keyword: str
    description: str
    genre: str
    audience: str
    style: str
    cover_style: str

    @classmethod
    def from_project(cls, project: Project) -> "ProjectBrief":
        return cls(
            keyword=clip_text(project.keyword, limit=KEYWORD_CHAR_LIMIT),
            description=clip_text(project.description, limit=DESCRIPTION_CHAR_LIMIT),
            genre=project.genre,
            audience=project.target_audience,
            style=project.writing_style,
            cover_style=project.cover_style,
        )


def chapter_target_words(stored: Optional[int]) -> int:
    return min(stored or DEFAULT_TARGET_WORD_COUNT, CHAPTER_WORD_CEILING)


def continuity_summary(previous: Optional[ChapterRecord]) -> str:
    """Summary of the preceding chapter, or an empty string."""

    if previous is None:
        return ""
    return (previous.summary or "").strip()
