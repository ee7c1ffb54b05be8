"""Storage interface shared by the PostgreSQL and in-memory backends."""

from __future__ import annotations

import hashlib
import secrets
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from manuscript_schemas import (
    BookConcept,
    BrainstormResult,
    ChapterRecord,
    ConceptSet,
    CoverDesign,
    CreationStep,
    OutlineChapter,
    Project,
    ProjectSettings,
    ProjectSnapshot,
    SubscriptionTier,
    UserAccount,
)

RECENT_PROJECTS_LIMIT = 10

EDITABLE_PROJECT_FIELDS = frozenset(
    {
        "title",
        "keyword",
        "description",
        "genre",
        "target_audience",
        "writing_style",
        "cover_style",
        "word_count_goal",
    }
)


def generate_session_token() -> str:
    return secrets.token_urlsafe(48)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class PipelineStore(ABC):
    """Blocking persistence operations used by the stage handlers.

    Every method that stores a stage artifact also advances the owning
    project's step in the same unit of work. Step advances are monotonic:
    the stored step becomes ``max(current, advance_to)`` and the status
    follows the resulting step. :meth:`save_step` is the only way to move a
    project backwards.
    """

    # Accounts and sessions -------------------------------------------------

    @abstractmethod
    def get_account(self, user_id: UUID) -> Optional[UserAccount]:
        ...

    @abstractmethod
    def create_account(
        self,
        email: str,
        *,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        token_limit: int | None = None,
    ) -> UserAccount:
        ...

    @abstractmethod
    def increment_token_usage(self, user_id: UUID, tokens: int) -> None:
        """Atomically add ``tokens`` to the monthly and lifetime counters."""

    @abstractmethod
    def issue_session(self, user_id: UUID, ttl: timedelta) -> str:
        """Create a bearer session and return the plaintext token."""

    @abstractmethod
    def resolve_session(self, token: str) -> Optional[UserAccount]:
        """Return the account behind a live session token, if any."""

    # Projects --------------------------------------------------------------

    @abstractmethod
    def create_project(self, user_id: UUID, settings: ProjectSettings) -> Project:
        """Insert a project at step 0 and bump the owner's project count."""

    @abstractmethod
    def get_project(self, project_id: UUID) -> Optional[Project]:
        """Return a non-deleted project."""

    @abstractmethod
    def list_projects(self, user_id: UUID, limit: int = RECENT_PROJECTS_LIMIT) -> list[Project]:
        ...

    @abstractmethod
    def update_project(self, project_id: UUID, changes: dict[str, Any]) -> Project:
        ...

    @abstractmethod
    def save_step(self, project_id: UUID, step: CreationStep) -> Project:
        ...

    @abstractmethod
    def soft_delete_project(self, project_id: UUID) -> None:
        ...

    # Concept sets ----------------------------------------------------------

    @abstractmethod
    def get_concept_set(self, project_id: UUID) -> Optional[ConceptSet]:
        ...

    @abstractmethod
    def save_brainstorm(
        self, project_id: UUID, result: BrainstormResult, *, advance_to: CreationStep
    ) -> ConceptSet:
        """Upsert the brainstorm fields of the project's single concept set."""

    @abstractmethod
    def save_concepts(
        self, project_id: UUID, concepts: list[BookConcept], *, advance_to: CreationStep
    ) -> ConceptSet:
        """Overwrite the candidate concepts, creating the concept set when missing."""

    # Chapters --------------------------------------------------------------

    @abstractmethod
    def list_chapters(self, project_id: UUID) -> list[ChapterRecord]:
        """Return chapters ordered by ``order_index``."""

    @abstractmethod
    def get_chapter(self, chapter_id: UUID) -> Optional[ChapterRecord]:
        ...

    @abstractmethod
    def get_chapter_by_index(self, project_id: UUID, order_index: int) -> Optional[ChapterRecord]:
        ...

    @abstractmethod
    def replace_outline(
        self,
        project_id: UUID,
        concept: BookConcept,
        chapters: list[OutlineChapter],
        *,
        advance_to: CreationStep,
    ) -> list[ChapterRecord]:
        """Select ``concept`` and swap the whole chapter set in one transaction.

        The project's display title becomes the concept title. New chapters
        receive contiguous indices starting at 0, status ``draft`` and the
        default target word count.
        """

    @abstractmethod
    def mark_chapter_generating(self, chapter_id: UUID) -> None:
        ...

    @abstractmethod
    def complete_chapter(
        self,
        chapter_id: UUID,
        content: str,
        word_count: int,
        *,
        advance_to: CreationStep,
    ) -> ChapterRecord:
        ...

    # Covers ----------------------------------------------------------------

    @abstractmethod
    def append_cover(
        self,
        project_id: UUID,
        *,
        prompt: str,
        image_url: str,
        storage_path: str,
        style: str,
        advance_to: CreationStep,
    ) -> CoverDesign:
        ...

    @abstractmethod
    def latest_cover(self, project_id: UUID) -> Optional[CoverDesign]:
        ...

    # Aggregates ------------------------------------------------------------

    def snapshot(self, project_id: UUID) -> Optional[ProjectSnapshot]:
        project = self.get_project(project_id)
        if project is None:
            return None
        return ProjectSnapshot(
            project=project,
            concept_set=self.get_concept_set(project_id),
            chapters=self.list_chapters(project_id),
            cover=self.latest_cover(project_id),
        )

    def close(self) -> None:
        """Release backend resources."""
