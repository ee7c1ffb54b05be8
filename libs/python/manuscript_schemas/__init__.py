"""Shared data contracts for the manuscript pipeline."""

from .enums import (
    TIER_TOKEN_LIMITS,
    BookGenre,
    ChapterStatus,
    CoverStyle,
    CreationStep,
    PipelineStage,
    ProjectStatus,
    SubscriptionTier,
    WritingStyle,
)
from .models.account import UsageSnapshot, UserAccount
from .models.book import (
    BookConcept,
    BrainstormResult,
    ChapterDraft,
    ChapterRecord,
    ConceptSet,
    CoverDesign,
    CoverResult,
    OutlineChapter,
    Project,
    ProjectSettings,
    ProjectSnapshot,
    ProjectUpdate,
    normalise_concepts,
)
from .models.messages import ChapterRequest, OutlineRequest, ProjectStageRequest, StepUpdate

__all__ = [
    "TIER_TOKEN_LIMITS",
    "BookGenre",
    "ChapterStatus",
    "CoverStyle",
    "CreationStep",
    "PipelineStage",
    "ProjectStatus",
    "SubscriptionTier",
    "WritingStyle",
    "UsageSnapshot",
    "UserAccount",
    "BookConcept",
    "BrainstormResult",
    "ChapterDraft",
    "ChapterRecord",
    "ConceptSet",
    "CoverDesign",
    "CoverResult",
    "OutlineChapter",
    "Project",
    "ProjectSettings",
    "ProjectSnapshot",
    "ProjectUpdate",
    "normalise_concepts",
    "ChapterRequest",
    "OutlineRequest",
    "ProjectStageRequest",
    "StepUpdate",
]
