"""Client-side wizard state driving the five generation stages."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID

from manuscript_schemas import (
    BookConcept,
    BrainstormResult,
    ChapterDraft,
    CoverResult,
    CoverStyle,
    CreationStep,
    OutlineChapter,
    Project,
    ProjectSettings,
    ProjectSnapshot,
    ProjectUpdate,
    UsageSnapshot,
)

from .client import ManuscriptClient, concept_index
from .exceptions import SessionBusyError

logger = logging.getLogger(__name__)


class WizardSession:
    """Authoritative local state for one project being written.

    Stage actions are serialised through a busy flag. A failed action records
    ``last_error`` and re-raises, leaving the local state and step as they
    were before the call.
    """

    def __init__(self, client: ManuscriptClient, settings: Optional[ProjectSettings] = None) -> None:
        self.client = client
        self.settings = settings
        self.project: Optional[Project] = None
        self.brainstorm: Optional[BrainstormResult] = None
        self.concepts: list[BookConcept] = []
        self.selected_concept: Optional[BookConcept] = None
        self.outline: list[OutlineChapter] = []
        self.manuscript: dict[str, ChapterDraft] = {}
        self.cover: Optional[CoverResult] = None
        self.active_chapter_id: Optional[str] = None
        self.step = CreationStep.SETUP
        self.usage: Optional[UsageSnapshot] = None
        self.busy = False
        self.busy_label: Optional[str] = None
        self.last_error: Optional[str] = None

    @property
    def project_id(self) -> UUID:
        if self.project is None:
            raise RuntimeError("No project has been created or loaded")
        return self.project.id

    @asynccontextmanager
    async def _action(self, label: str) -> AsyncIterator[None]:
        if self.busy:
            raise SessionBusyError(f"Cannot start '{label}' while '{self.busy_label}' is running")
        self.busy = True
        self.busy_label = label
        self.last_error = None
        try:
            yield
        except Exception as exc:
            self.last_error = getattr(exc, "message", None) or str(exc)
            logger.warning("Action failed: %s", label, extra={"error": self.last_error})
            raise
        finally:
            self.busy = False
            self.busy_label = None

    async def refresh_usage(self) -> Optional[UsageSnapshot]:
        """Fetch current usage; failures are logged and the old value kept."""

        try:
            self.usage = await self.client.get_usage()
        except Exception:
            logger.warning("Failed to refresh usage", exc_info=True)
        return self.usage

    # Stage actions -----------------------------------------------------------

    async def start_brainstorm(self) -> BrainstormResult:
        async with self._action("Synthesizing Intellectual Foundation..."):
            if self.project is None:
                if self.settings is None:
                    raise RuntimeError("Project settings are required to start a project")
                snapshot = await self.client.create_project(self.settings)
                self.project = snapshot.project
            result = await self.client.expand_topic(self.project.id)
            self.brainstorm = result
            await self.refresh_usage()
            self.step = CreationStep.BRAINSTORM
            return result

    async def generate_concepts(self) -> list[BookConcept]:
        async with self._action("Generating Market Positioning Concepts..."):
            concepts = await self.client.generate_concepts(self.project_id)
            self.concepts = concepts
            await self.refresh_usage()
            self.step = CreationStep.CONCEPT
            return concepts

    async def select_concept(self, concept: BookConcept) -> list[OutlineChapter]:
        async with self._action("Architecting Manuscript Structure..."):
            outline = await self.client.generate_outline(
                self.project_id, concept_index(self.concepts, concept)
            )
            self.selected_concept = concept
            self.outline = outline
            self.manuscript = {}
            self.active_chapter_id = outline[0].id if outline else None
            await self.refresh_usage()
            self.step = CreationStep.OUTLINE
            return outline

    async def generate_chapter(self, chapter: OutlineChapter) -> ChapterDraft:
        async with self._action(f"Drafting: {chapter.title}..."):
            draft = await self.client.generate_chapter(chapter.id)
            self.manuscript[chapter.id] = draft
            self.active_chapter_id = chapter.id
            await self.refresh_usage()
            return draft

    async def generate_cover(self) -> CoverResult:
        async with self._action("Generating Visual Identity..."):
            cover = await self.client.generate_cover(self.project_id)
            self.cover = cover
            await self.refresh_usage()
            return cover

    async def set_cover_style(self, style: CoverStyle) -> None:
        snapshot = await self.client.update_project(self.project_id, ProjectUpdate(cover_style=style))
        self.project = snapshot.project

    # Navigation --------------------------------------------------------------

    def next_step(self) -> CreationStep:
        self.step = self.step.next()
        return self.step

    def previous_step(self) -> CreationStep:
        self.step = self.step.previous()
        return self.step

    async def save_step(self) -> ProjectSnapshot:
        snapshot = await self.client.save_step(self.project_id, self.step.value)
        self.project = snapshot.project
        return snapshot

    async def load_project(self, project_id: UUID) -> ProjectSnapshot:
        snapshot = await self.client.get_project(project_id)
        self._apply_snapshot(snapshot)
        return snapshot

    def _apply_snapshot(self, snapshot: ProjectSnapshot) -> None:
        self.project = snapshot.project
        self.step = CreationStep(snapshot.project.current_step)

        concept_set = snapshot.concept_set
        self.brainstorm = concept_set.brainstorm if concept_set else None
        self.concepts = concept_set.concept_list() if concept_set else []
        self.selected_concept = None
        if concept_set and concept_set.selected_title:
            self.selected_concept = next(
                (c for c in self.concepts if c.title == concept_set.selected_title),
                BookConcept(
                    title=concept_set.selected_title,
                    tagline=concept_set.selected_tagline or "",
                    description=concept_set.selected_description or "",
                    target_market=concept_set.market_positioning or "",
                ),
            )

        self.outline = [
            OutlineChapter(id=str(c.id), title=c.title, summary=c.summary, sections=c.sections)
            for c in snapshot.chapters
        ]
        self.manuscript = {
            str(c.id): ChapterDraft(content=c.content, word_count=c.word_count)
            for c in snapshot.chapters
            if c.content
        }
        self.active_chapter_id = self.outline[0].id if self.outline else None

        cover = snapshot.cover
        self.cover = CoverResult(image_url=cover.image_url, prompt=cover.prompt) if cover else None
