"""Chapter drafting with continuity from the preceding chapter."""

from __future__ import annotations

from dataclasses import dataclass

from manuscript_providers import LLMProvider, ProviderResponse
from manuscript_providers.exceptions import MalformedResponseError
from manuscript_schemas import ChapterDraft, ChapterRecord, PipelineStage
from manuscript_schemas.utils.validators import count_words

from ..context import ProjectBrief
from ..stages import build_request
from .prompts import CHAPTER_SYSTEM_PROMPT, CHAPTER_USER_PROMPT, CONTINUITY_BLOCK


@dataclass
class ChapterOutcome:
    draft: ChapterDraft
    response: ProviderResponse


def build_chapter_prompt(
    *,
    book_title: str,
    brief: ProjectBrief,
    chapter: ChapterRecord,
    target_words: int,
    previous_summary: str,
) -> str:
    prompt = CHAPTER_USER_PROMPT.format(
        book_title=book_title,
        description=brief.description,
        chapter_title=chapter.title,
        sections=", ".join(chapter.sections),
        style=brief.style,
        audience=brief.audience,
        target_words=target_words,
    )
    if previous_summary:
        prompt += CONTINUITY_BLOCK.format(summary=previous_summary)
    return prompt


async def draft_chapter(
    provider: LLMProvider,
    *,
    book_title: str,
    brief: ProjectBrief,
    chapter: ChapterRecord,
    target_words: int,
    previous_summary: str,
) -> ChapterOutcome:
    request = build_request(
        PipelineStage.GENERATE_CHAPTER,
        system_prompt=CHAPTER_SYSTEM_PROMPT.format(target_words=target_words),
        prompt=build_chapter_prompt(
            book_title=book_title,
            brief=brief,
            chapter=chapter,
            target_words=target_words,
            previous_summary=previous_summary,
        ),
        json_mode=False,
    )
    response = await provider.generate(request)
    content = response.text.strip()
    if not content:
        raise MalformedResponseError("Chapter response was empty")
    return ChapterOutcome(
        draft=ChapterDraft(content=content, word_count=count_words(content)),
        response=response,
    )
