"""Chapter outline generation for a selected concept."""

from __future__ import annotations

from dataclasses import dataclass

from manuscript_providers import LLMProvider, ProviderResponse
from manuscript_schemas import BookConcept, OutlineChapter, PipelineStage

from ..context import ProjectBrief
from ..parsing import parse_outline
from ..stages import build_request
from .prompts import OUTLINE_SYSTEM_PROMPT, OUTLINE_USER_PROMPT


@dataclass
class OutlineOutcome:
    chapters: list[OutlineChapter]
    response: ProviderResponse


async def generate_outline(
    provider: LLMProvider, concept: BookConcept, brief: ProjectBrief
) -> OutlineOutcome:
    request = build_request(
        PipelineStage.GENERATE_OUTLINE,
        system_prompt=OUTLINE_SYSTEM_PROMPT,
        prompt=OUTLINE_USER_PROMPT.format(
            title=concept.title,
            tagline=concept.tagline,
            description=brief.description,
            concept_description=concept.description,
        ),
        json_mode=True,
    )
    response = await provider.generate(request)
    return OutlineOutcome(chapters=parse_outline(response.text), response=response)
