"""Stage handlers: load state, admit, generate, persist, charge.

Each handler persists its artifact together with the project step advance in
a single store call and only charges the budget once that call succeeds.
Handlers never retry; a failed stage can be re-invoked by the caller.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from time import perf_counter
from typing import AsyncIterator, Optional
from uuid import UUID, uuid4

from fastapi.concurrency import run_in_threadpool

from manuscript_observability import log_context, observe_provider_response, observe_stage_duration
from manuscript_providers import ProviderResponse
from manuscript_schemas import (
    BrainstormResult,
    BookConcept,
    ChapterDraft,
    ChapterRequest,
    CoverResult,
    OutlineChapter,
    OutlineRequest,
    PipelineStage,
    Project,
    ProjectStageRequest,
)

from .brainstorm.engine import expand_topic as run_brainstorm
from .budget import admit_stage, charge_stage
from .chapter.engine import draft_chapter
from .concepts.engine import generate_concepts as run_concepts
from .context import ProjectBrief, chapter_target_words, continuity_summary
from .cover.engine import design_cover
from .errors import NotFoundError, PipelineError
from .outline.engine import generate_outline as run_outline
from .parsing import resolve_concept
from .session import StageContext
from .stages import STAGE_TARGET_STEP, STAGE_TOKEN_ESTIMATES
from .store.objects import object_key

logger = logging.getLogger(__name__)

COVER_CONTENT_TYPE = "image/png"


@asynccontextmanager
async def stage_scope(
    ctx: StageContext,
    stage: PipelineStage,
    *,
    project_id: Optional[UUID] = None,
    chapter_id: Optional[UUID] = None,
) -> AsyncIterator[None]:
    """Bind log context and record duration and outcome for one stage call."""

    start_time = perf_counter()
    outcome = "success"
    with log_context(
        stage=stage.value,
        request_id=ctx.request_id,
        user_id=str(ctx.account.id),
        project_id=str(project_id) if project_id else None,
        chapter_id=str(chapter_id) if chapter_id else None,
    ):
        logger.info("Stage started")
        try:
            yield
        except PipelineError as exc:
            outcome = "rejected" if exc.status_code < 500 else "failure"
            if outcome == "failure":
                logger.exception("Stage failed")
            else:
                logger.warning("Stage rejected", extra={"error": exc.message})
            raise
        except Exception:
            outcome = "failure"
            logger.exception("Stage failed")
            raise
        finally:
            observe_stage_duration(
                stage.value,
                perf_counter() - start_time,
                service_name=ctx.service_name,
                status=outcome,
            )
        logger.info("Stage completed")


def _observe_provider(ctx: StageContext, stage: PipelineStage, response: ProviderResponse) -> None:
    observe_provider_response(stage=stage.value, service_name=ctx.service_name, response=response)
    logger.info(
        "Provider call completed",
        extra={
            "provider": response.provider,
            "model": response.model,
            "prompt_tokens": response.prompt_tokens,
            "completion_tokens": response.completion_tokens,
            "estimated_tokens": STAGE_TOKEN_ESTIMATES[stage],
            "cost_usd": response.cost_usd,
            "latency_ms": response.latency_ms,
        },
    )


async def _load_project(ctx: StageContext, project_id: UUID) -> Project:
    project = await run_in_threadpool(ctx.store.get_project, project_id)
    if project is None or project.user_id != ctx.account.id:
        raise NotFoundError("Project not found")
    return project


async def expand_topic(ctx: StageContext, request: ProjectStageRequest) -> BrainstormResult:
    stage = PipelineStage.EXPAND_TOPIC
    async with stage_scope(ctx, stage, project_id=request.project_id):
        project = await _load_project(ctx, request.project_id)
        await admit_stage(ctx, stage)

        outcome = await run_brainstorm(ctx.provider, ProjectBrief.from_project(project))
        _observe_provider(ctx, stage, outcome.response)

        await run_in_threadpool(
            ctx.store.save_brainstorm,
            project.id,
            outcome.result,
            advance_to=STAGE_TARGET_STEP[stage],
        )
        await charge_stage(ctx, stage)
        return outcome.result


async def generate_concepts(ctx: StageContext, request: ProjectStageRequest) -> list[BookConcept]:
    stage = PipelineStage.GENERATE_CONCEPTS
    async with stage_scope(ctx, stage, project_id=request.project_id):
        project = await _load_project(ctx, request.project_id)
        await admit_stage(ctx, stage)

        concept_set = await run_in_threadpool(ctx.store.get_concept_set, project.id)
        outcome = await run_concepts(
            ctx.provider,
            ProjectBrief.from_project(project),
            thesis=(concept_set.thesis_statement if concept_set else None) or "",
            research_questions=concept_set.research_questions if concept_set else [],
        )
        _observe_provider(ctx, stage, outcome.response)

        await run_in_threadpool(
            ctx.store.save_concepts,
            project.id,
            outcome.concepts,
            advance_to=STAGE_TARGET_STEP[stage],
        )
        await charge_stage(ctx, stage)
        return outcome.concepts


async def generate_outline(ctx: StageContext, request: OutlineRequest) -> list[OutlineChapter]:
    stage = PipelineStage.GENERATE_OUTLINE
    async with stage_scope(ctx, stage, project_id=request.project_id):
        project = await _load_project(ctx, request.project_id)
        await admit_stage(ctx, stage)

        concept_set = await run_in_threadpool(ctx.store.get_concept_set, project.id)
        concept = resolve_concept(
            concept_set.concepts if concept_set else None, request.concept_index
        )
        outcome = await run_outline(ctx.provider, concept, ProjectBrief.from_project(project))
        _observe_provider(ctx, stage, outcome.response)

        records = await run_in_threadpool(
            ctx.store.replace_outline,
            project.id,
            concept,
            outcome.chapters,
            advance_to=STAGE_TARGET_STEP[stage],
        )
        await charge_stage(ctx, stage)
        return [
            OutlineChapter(
                id=str(record.id),
                title=record.title,
                summary=record.summary,
                sections=record.sections,
            )
            for record in records
        ]


async def generate_chapter(ctx: StageContext, request: ChapterRequest) -> ChapterDraft:
    """Draft one chapter.

    The chapter is marked ``generating`` before the provider call and stays
    in that state if the call or the final write fails.
    """

    stage = PipelineStage.GENERATE_CHAPTER
    async with stage_scope(ctx, stage, chapter_id=request.chapter_id):
        chapter = await run_in_threadpool(ctx.store.get_chapter, request.chapter_id)
        if chapter is None:
            raise NotFoundError("Chapter not found")
        project = await run_in_threadpool(ctx.store.get_project, chapter.project_id)
        if project is None or project.user_id != ctx.account.id:
            raise NotFoundError("Project not found")
        await admit_stage(ctx, stage)

        await run_in_threadpool(ctx.store.mark_chapter_generating, chapter.id)

        previous = None
        if chapter.order_index > 0:
            previous = await run_in_threadpool(
                ctx.store.get_chapter_by_index, project.id, chapter.order_index - 1
            )
        concept_set = await run_in_threadpool(ctx.store.get_concept_set, project.id)

        with log_context(project_id=str(project.id)):
            outcome = await draft_chapter(
                ctx.provider,
                book_title=(concept_set.selected_title if concept_set else None) or "",
                brief=ProjectBrief.from_project(project),
                chapter=chapter,
                target_words=chapter_target_words(chapter.target_word_count),
                previous_summary=continuity_summary(previous),
            )
            _observe_provider(ctx, stage, outcome.response)

            await run_in_threadpool(
                ctx.store.complete_chapter,
                chapter.id,
                outcome.draft.content,
                outcome.draft.word_count,
                advance_to=STAGE_TARGET_STEP[stage],
            )
            await charge_stage(ctx, stage)
        return outcome.draft


async def generate_cover(ctx: StageContext, request: ProjectStageRequest) -> CoverResult:
    stage = PipelineStage.GENERATE_COVER
    async with stage_scope(ctx, stage, project_id=request.project_id):
        project = await _load_project(ctx, request.project_id)
        await admit_stage(ctx, stage)

        concept_set = await run_in_threadpool(ctx.store.get_concept_set, project.id)
        outcome = await design_cover(
            ctx.provider,
            brief=ProjectBrief.from_project(project),
            concept_set=concept_set,
        )
        _observe_provider(ctx, stage, outcome.response)

        filename = f"cover_{int(time.time() * 1000)}_{uuid4().hex[:8]}.png"
        storage_path = object_key(ctx.account.id, project.id, filename)
        image_url = await run_in_threadpool(
            ctx.objects.put, storage_path, outcome.image.image_bytes, COVER_CONTENT_TYPE
        )
        await run_in_threadpool(
            ctx.store.append_cover,
            project.id,
            prompt=outcome.prompt,
            image_url=image_url,
            storage_path=storage_path,
            style=outcome.style.value,
            advance_to=STAGE_TARGET_STEP[stage],
        )
        await charge_stage(ctx, stage)
        return CoverResult(image_url=image_url, prompt=outcome.prompt)
