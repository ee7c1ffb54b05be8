"""Dict-backed store for tests and offline development."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID, uuid4

from manuscript_schemas import (
    TIER_TOKEN_LIMITS,
    BookConcept,
    BrainstormResult,
    ChapterRecord,
    ChapterStatus,
    ConceptSet,
    CoverDesign,
    CreationStep,
    OutlineChapter,
    Project,
    ProjectSettings,
    SubscriptionTier,
    UserAccount,
)

from ..errors import NotFoundError
from .base import (
    EDITABLE_PROJECT_FIELDS,
    RECENT_PROJECTS_LIMIT,
    PipelineStore,
    generate_session_token,
    hash_token,
)


class InMemoryStore(PipelineStore):
    """Thread-safe implementation mirroring :class:`PostgresStore` semantics.

    Records are copied on the way in and out so callers never share mutable
    state with the store.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._accounts: dict[UUID, UserAccount] = {}
        self._sessions: dict[str, tuple[UUID, datetime]] = {}
        self._projects: dict[UUID, Project] = {}
        self._concept_sets: dict[UUID, ConceptSet] = {}
        self._chapters: dict[UUID, ChapterRecord] = {}
        self._covers: list[CoverDesign] = []

    # Accounts and sessions -------------------------------------------------

    def get_account(self, user_id: UUID) -> Optional[UserAccount]:
        with self._lock:
            account = self._accounts.get(user_id)
            return account.model_copy() if account else None

    def create_account(
        self,
        email: str,
        *,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        token_limit: int | None = None,
    ) -> UserAccount:
        account = UserAccount(
            email=email.strip().lower(),
            tier=tier,
            token_limit=TIER_TOKEN_LIMITS[tier] if token_limit is None else token_limit,
        )
        with self._lock:
            self._accounts[account.id] = account
        return account.model_copy()

    def set_usage(self, user_id: UUID, *, tokens_this_month: int, token_limit: int | None = None) -> None:
        """Overwrite usage counters; billing-side fixture for tests."""

        with self._lock:
            account = self._accounts[user_id]
            account.tokens_this_month = tokens_this_month
            if token_limit is not None:
                account.token_limit = token_limit

    def increment_token_usage(self, user_id: UUID, tokens: int) -> None:
        with self._lock:
            account = self._accounts.get(user_id)
            if account is None:
                return
            account.tokens_used += tokens
            account.tokens_this_month += tokens

    def issue_session(self, user_id: UUID, ttl: timedelta) -> str:
        token = generate_session_token()
        with self._lock:
            self._sessions[hash_token(token)] = (user_id, datetime.utcnow() + ttl)
        return token

    def resolve_session(self, token: str) -> Optional[UserAccount]:
        token_hash = hash_token(token)
        with self._lock:
            entry = self._sessions.get(token_hash)
            if entry is None:
                return None
            user_id, expires_at = entry
            if expires_at < datetime.utcnow():
                del self._sessions[token_hash]
                return None
            return self.get_account(user_id)

    # Projects --------------------------------------------------------------

    def create_project(self, user_id: UUID, settings: ProjectSettings) -> Project:
        project = Project(user_id=user_id, **settings.model_dump(mode="json"))
        with self._lock:
            self._projects[project.id] = project
            account = self._accounts.get(user_id)
            if account is not None:
                account.project_count += 1
        return project.model_copy()

    def get_project(self, project_id: UUID) -> Optional[Project]:
        with self._lock:
            project = self._projects.get(project_id)
            if project is None or project.deleted_at is not None:
                return None
            return project.model_copy()

    def list_projects(self, user_id: UUID, limit: int = RECENT_PROJECTS_LIMIT) -> list[Project]:
        with self._lock:
            owned = [
                project
                for project in self._projects.values()
                if project.user_id == user_id and project.deleted_at is None
            ]
        owned.sort(key=lambda project: project.updated_at, reverse=True)
        return [project.model_copy() for project in owned[:limit]]

    def update_project(self, project_id: UUID, changes: dict[str, Any]) -> Project:
        with self._lock:
            project = self._require_project(project_id)
            for key, value in changes.items():
                if key in EDITABLE_PROJECT_FIELDS:
                    setattr(project, key, value)
            project.updated_at = datetime.utcnow()
            return project.model_copy()

    def save_step(self, project_id: UUID, step: CreationStep) -> Project:
        with self._lock:
            project = self._require_project(project_id)
            project.current_step = step.value
            project.status = step.status
            project.updated_at = datetime.utcnow()
            return project.model_copy()

    def soft_delete_project(self, project_id: UUID) -> None:
        with self._lock:
            project = self._require_project(project_id)
            project.deleted_at = datetime.utcnow()

    # Concept sets ----------------------------------------------------------

    def get_concept_set(self, project_id: UUID) -> Optional[ConceptSet]:
        with self._lock:
            concept_set = self._concept_sets.get(project_id)
            return concept_set.model_copy(deep=True) if concept_set else None

    def save_brainstorm(
        self, project_id: UUID, result: BrainstormResult, *, advance_to: CreationStep
    ) -> ConceptSet:
        with self._lock:
            project = self._require_project(project_id)
            concept_set = self._concept_set_for(project_id)
            concept_set.thesis_statement = result.thesis
            concept_set.brainstorm = result.model_copy()
            concept_set.updated_at = datetime.utcnow()
            self._advance(project, advance_to)
            return concept_set.model_copy(deep=True)

    def save_concepts(
        self, project_id: UUID, concepts: list[BookConcept], *, advance_to: CreationStep
    ) -> ConceptSet:
        with self._lock:
            project = self._require_project(project_id)
            concept_set = self._concept_set_for(project_id)
            concept_set.concepts = [concept.model_dump(by_alias=True) for concept in concepts]
            concept_set.updated_at = datetime.utcnow()
            self._advance(project, advance_to)
            return concept_set.model_copy(deep=True)

    def store_raw_concepts(self, project_id: UUID, raw: Any) -> None:
        """Persist an arbitrary concepts payload, as legacy rows may hold."""

        with self._lock:
            self._concept_set_for(project_id).concepts = raw

    # Chapters --------------------------------------------------------------

    def list_chapters(self, project_id: UUID) -> list[ChapterRecord]:
        with self._lock:
            chapters = [c for c in self._chapters.values() if c.project_id == project_id]
        chapters.sort(key=lambda chapter: chapter.order_index)
        return [chapter.model_copy() for chapter in chapters]

    def get_chapter(self, chapter_id: UUID) -> Optional[ChapterRecord]:
        with self._lock:
            chapter = self._chapters.get(chapter_id)
            return chapter.model_copy() if chapter else None

    def get_chapter_by_index(self, project_id: UUID, order_index: int) -> Optional[ChapterRecord]:
        with self._lock:
            for chapter in self._chapters.values():
                if chapter.project_id == project_id and chapter.order_index == order_index:
                    return chapter.model_copy()
        return None

    def replace_outline(
        self,
        project_id: UUID,
        concept: BookConcept,
        chapters: list[OutlineChapter],
        *,
        advance_to: CreationStep,
    ) -> list[ChapterRecord]:
        records = [
            ChapterRecord(
                project_id=project_id,
                title=entry.title,
                order_index=index,
                summary=entry.summary,
                sections=list(entry.sections),
            )
            for index, entry in enumerate(chapters)
        ]
        with self._lock:
            project = self._require_project(project_id)
            concept_set = self._concept_set_for(project_id)
            concept_set.selected_title = concept.title
            concept_set.selected_tagline = concept.tagline
            concept_set.selected_description = concept.description
            concept_set.market_positioning = concept.target_market
            concept_set.updated_at = datetime.utcnow()
            self._chapters = {
                chapter_id: chapter
                for chapter_id, chapter in self._chapters.items()
                if chapter.project_id != project_id
            }
            for record in records:
                self._chapters[record.id] = record
            project.title = concept.title
            self._advance(project, advance_to)
        return [record.model_copy() for record in records]

    def mark_chapter_generating(self, chapter_id: UUID) -> None:
        with self._lock:
            chapter = self._require_chapter(chapter_id)
            chapter.status = ChapterStatus.GENERATING
            chapter.updated_at = datetime.utcnow()

    def complete_chapter(
        self,
        chapter_id: UUID,
        content: str,
        word_count: int,
        *,
        advance_to: CreationStep,
    ) -> ChapterRecord:
        with self._lock:
            chapter = self._require_chapter(chapter_id)
            project = self._require_project(chapter.project_id)
            chapter.content = content
            chapter.word_count = word_count
            chapter.status = ChapterStatus.GENERATED
            chapter.updated_at = datetime.utcnow()
            self._advance(project, advance_to)
            return chapter.model_copy()

    # Covers ----------------------------------------------------------------

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
        cover = CoverDesign(
            project_id=project_id,
            prompt=prompt,
            image_url=image_url,
            storage_path=storage_path,
            style=style,
        )
        with self._lock:
            project = self._require_project(project_id)
            self._covers.append(cover)
            self._advance(project, advance_to)
        return cover.model_copy()

    def latest_cover(self, project_id: UUID) -> Optional[CoverDesign]:
        with self._lock:
            for cover in reversed(self._covers):
                if cover.project_id == project_id:
                    return cover.model_copy()
        return None

    def covers(self, project_id: UUID) -> list[CoverDesign]:
        with self._lock:
            return [cover.model_copy() for cover in self._covers if cover.project_id == project_id]

    # Internals -------------------------------------------------------------

    def _require_project(self, project_id: UUID) -> Project:
        project = self._projects.get(project_id)
        if project is None or project.deleted_at is not None:
            raise NotFoundError("Project not found")
        return project

    def _require_chapter(self, chapter_id: UUID) -> ChapterRecord:
        chapter = self._chapters.get(chapter_id)
        if chapter is None:
            raise NotFoundError("Chapter not found")
        return chapter

    def _concept_set_for(self, project_id: UUID) -> ConceptSet:
        concept_set = self._concept_sets.get(project_id)
        if concept_set is None:
            concept_set = ConceptSet(id=uuid4(), project_id=project_id)
            self._concept_sets[project_id] = concept_set
        return concept_set

    @staticmethod
    def _advance(project: Project, step: CreationStep) -> None:
        target = CreationStep(max(project.current_step, step.value))
        project.current_step = target.value
        project.status = target.status
        project.updated_at = datetime.utcnow()
