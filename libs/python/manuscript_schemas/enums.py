"""Enum definitions shared across the pipeline, API and client."""

from __future__ import annotations

from enum import Enum


class ProjectStatus(str, Enum):
    SETUP = "setup"
    BRAINSTORM = "brainstorm"
    CONCEPT = "concept"
    OUTLINE = "outline"
    WRITING = "writing"
    DESIGN = "design"
    FINALIZE = "finalize"


class CreationStep(int, Enum):
    """Wizard position; the integer value is what gets persisted."""

    SETUP = 0
    BRAINSTORM = 1
    CONCEPT = 2
    OUTLINE = 3
    WRITING = 4
    DESIGN = 5
    FINALIZE = 6

    @property
    def status(self) -> ProjectStatus:
        return ProjectStatus[self.name]

    def next(self) -> "CreationStep":
        return CreationStep(min(self.value + 1, CreationStep.FINALIZE.value))

    def previous(self) -> "CreationStep":
        return CreationStep(max(self.value - 1, CreationStep.SETUP.value))


class PipelineStage(str, Enum):
    EXPAND_TOPIC = "expand_topic"
    GENERATE_CONCEPTS = "generate_concepts"
    GENERATE_OUTLINE = "generate_outline"
    GENERATE_CHAPTER = "generate_chapter"
    GENERATE_COVER = "generate_cover"


class ChapterStatus(str, Enum):
    DRAFT = "draft"
    GENERATING = "generating"
    GENERATED = "generated"


class BookGenre(str, Enum):
    NON_FICTION = "Non-Fiction"
    FICTION = "Fiction"
    ACADEMIC = "Academic"
    BUSINESS = "Business"
    SELF_HELP = "Self-Help"
    TEXTBOOK = "Textbook"


class WritingStyle(str, Enum):
    FORMAL = "Formal"
    CONVERSATIONAL = "Conversational"
    ACADEMIC = "Academic"
    NARRATIVE = "Narrative"
    TECHNICAL = "Technical"
    INSPIRATIONAL = "Inspirational"


class CoverStyle(str, Enum):
    MINIMALIST = "Minimalist"
    VIBRANT = "Vibrant"
    CLASSIC = "Classic"
    DARK_AND_MOODY = "Dark & Moody"
    HIGH_TECH = "High-Tech"


class SubscriptionTier(str, Enum):
    FREE = "Free"
    CREATOR = "Creator"
    PRO_AUTHOR = "Pro Author"
    STUDIO = "Studio"
    ENTERPRISE = "Enterprise"


TIER_TOKEN_LIMITS: dict[SubscriptionTier, int] = {
    SubscriptionTier.FREE: 50_000,
    SubscriptionTier.CREATOR: 1_000_000,
    SubscriptionTier.PRO_AUTHOR: 5_000_000,
    SubscriptionTier.STUDIO: 20_000_000,
    SubscriptionTier.ENTERPRISE: 100_000_000,
}
