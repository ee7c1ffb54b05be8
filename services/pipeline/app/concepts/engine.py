"""Candidate book concept generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from manuscript_providers import LLMProvider, ProviderResponse
from manuscript_schemas import BookConcept, PipelineStage

from ..context import ProjectBrief
from ..parsing import parse_concepts
from ..stages import build_request
from .prompts import CONCEPTS_SYSTEM_PROMPT, CONCEPTS_USER_PROMPT


@dataclass
class ConceptsOutcome:
    concepts: list[BookConcept]
    response: ProviderResponse


async def generate_concepts(
    provider: LLMProvider,
    brief: ProjectBrief,
    *,
    thesis: str,
    research_questions: Sequence[str],
) -> ConceptsOutcome:
    """Ask for 3-5 concepts; the returned list holds at least one."""

    request = build_request(
        PipelineStage.GENERATE_CONCEPTS,
        system_prompt=CONCEPTS_SYSTEM_PROMPT,
        prompt=CONCEPTS_USER_PROMPT.format(
            keyword=brief.keyword,
            description=brief.description,
            thesis=thesis,
            research_questions="\n".join(research_questions),
        ),
        json_mode=True,
    )
    response = await provider.generate(request)
    return ConceptsOutcome(concepts=parse_concepts(response.text), response=response)
