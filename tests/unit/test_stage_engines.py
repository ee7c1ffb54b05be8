"""Tests for prompt construction and per-stage request parameters."""

from __future__ import annotations

from uuid import uuid4

import pytest

from manuscript_schemas import BookConcept, ChapterRecord, ConceptSet, CoverStyle, Project

from services.pipeline.app.brainstorm.engine import expand_topic
from services.pipeline.app.chapter.engine import build_chapter_prompt
from services.pipeline.app.context import ProjectBrief, chapter_target_words, continuity_summary
from services.pipeline.app.cover.engine import design_cover, resolve_cover_style
from services.pipeline.app.cover.prompts import COVER_STYLE_GUIDANCE
from services.pipeline.app.outline.engine import generate_outline
from tests.utils.pipeline import ScriptedProvider


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _brief(**overrides) -> ProjectBrief:
    fields = {"keyword": "bees", "description": "Rooftop hives", **overrides}
    project = Project(user_id=uuid4(), **fields)
    return ProjectBrief.from_project(project)


def test_brief_clips_long_inputs() -> None:
    brief = _brief(keyword="k" * 900, description="d" * 5000)
    assert len(brief.keyword) == 500
    assert len(brief.description) == 2000


def test_chapter_target_is_capped() -> None:
    assert chapter_target_words(None) == 2000
    assert chapter_target_words(2500) == 2500
    assert chapter_target_words(9000) == 3000


def test_continuity_summary_is_empty_without_previous() -> None:
    assert continuity_summary(None) == ""
    previous = ChapterRecord(project_id=uuid4(), title="One", order_index=0, summary=" Setup. ")
    assert continuity_summary(previous) == "Setup."


def test_chapter_prompt_mentions_sections_and_target() -> None:
    chapter = ChapterRecord(
        project_id=uuid4(), title="Swarm Season", order_index=1, sections=["Signs", "Capture"]
    )
    prompt = build_chapter_prompt(
        book_title="Hive Minds",
        brief=_brief(),
        chapter=chapter,
        target_words=2000,
        previous_summary="",
    )
    assert "Swarm Season" in prompt
    assert "Signs, Capture" in prompt
    assert "2000" in prompt
    assert "Previous Chapter Summary" not in prompt


async def test_expand_topic_request_parameters() -> None:
    provider = ScriptedProvider()
    await expand_topic(provider, _brief())

    request = provider.requests[0]
    assert request.json_mode is True
    assert request.temperature == 0.7
    assert request.max_output_tokens == 2000
    assert "bees" in request.prompt


async def test_outline_request_uses_concept() -> None:
    provider = ScriptedProvider()
    outcome = await generate_outline(provider, BookConcept(title="Hive Minds"), _brief())

    assert len(outcome.chapters) == 8
    assert "Hive Minds" in provider.requests[0].prompt
    assert provider.requests[0].max_output_tokens == 4000


def test_unknown_cover_style_falls_back() -> None:
    assert resolve_cover_style("Dark & Moody") is CoverStyle.DARK_AND_MOODY
    assert resolve_cover_style("Watercolour") is CoverStyle.MINIMALIST
    assert set(COVER_STYLE_GUIDANCE) == set(CoverStyle)


async def test_cover_uses_style_guidance() -> None:
    provider = ScriptedProvider({"generate_cover": "  A hive at dawn  "})
    concept_set = ConceptSet(project_id=uuid4(), selected_title="Hive Minds")

    outcome = await design_cover(
        provider, brief=_brief(cover_style="High-Tech"), concept_set=concept_set
    )

    assert outcome.prompt == "A hive at dawn"
    assert outcome.style is CoverStyle.HIGH_TECH
    text_request = provider.requests[0]
    assert COVER_STYLE_GUIDANCE[CoverStyle.HIGH_TECH] in text_request.system_prompt
    assert "Hive Minds" in text_request.prompt
    assert text_request.max_output_tokens == 500
    assert provider.image_requests[0].prompt.startswith(
        "Generate a professional book cover background based on this concept: A hive at dawn."
    )
