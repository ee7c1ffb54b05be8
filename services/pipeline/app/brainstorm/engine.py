"""Topic expansion: thesis, adjacent topics and research questions."""

from __future__ import annotations

from dataclasses import dataclass

from manuscript_providers import LLMProvider, ProviderResponse
from manuscript_schemas import BrainstormResult, PipelineStage

from ..context import ProjectBrief
from ..parsing import parse_brainstorm
from ..stages import build_request
from .prompts import BRAINSTORM_SYSTEM_PROMPT, BRAINSTORM_USER_PROMPT


@dataclass
class BrainstormOutcome:
    result: BrainstormResult
    response: ProviderResponse


async def expand_topic(provider: LLMProvider, brief: ProjectBrief) -> BrainstormOutcome:
    request = build_request(
        PipelineStage.EXPAND_TOPIC,
        system_prompt=BRAINSTORM_SYSTEM_PROMPT,
        prompt=BRAINSTORM_USER_PROMPT.format(
            keyword=brief.keyword,
            description=brief.description,
            genre=brief.genre,
            audience=brief.audience,
            style=brief.style,
        ),
        json_mode=True,
    )
    response = await provider.generate(request)
    return BrainstormOutcome(result=parse_brainstorm(response.text), response=response)
