"""Two-step cover design: an image prompt, then the image itself."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from manuscript_providers import ImageRequest, ImageResponse, LLMProvider, ProviderResponse
from manuscript_providers.base import DEFAULT_ASPECT_RATIO
from manuscript_providers.exceptions import MalformedResponseError
from manuscript_schemas import ConceptSet, CoverStyle, PipelineStage

from ..context import ProjectBrief
from ..stages import build_request
from .prompts import (
    COVER_IMAGE_PROMPT,
    COVER_STYLE_GUIDANCE,
    COVER_SYSTEM_PROMPT,
    COVER_USER_PROMPT,
)

logger = logging.getLogger(__name__)


@dataclass
class CoverOutcome:
    prompt: str
    style: CoverStyle
    image: ImageResponse
    response: ProviderResponse


def resolve_cover_style(value: Optional[str]) -> CoverStyle:
    """Map a stored style name to a preset; unknown names fall back to Minimalist."""

    try:
        return CoverStyle(value)
    except ValueError:
        logger.warning("Unknown cover style; using Minimalist", extra={"cover_style": value})
        return CoverStyle.MINIMALIST


async def design_cover(
    provider: LLMProvider,
    *,
    brief: ProjectBrief,
    concept_set: Optional[ConceptSet],
) -> CoverOutcome:
    style = resolve_cover_style(brief.cover_style)
    request = build_request(
        PipelineStage.GENERATE_COVER,
        system_prompt=COVER_SYSTEM_PROMPT.format(
            style=style.value, guidance=COVER_STYLE_GUIDANCE[style]
        ),
        prompt=COVER_USER_PROMPT.format(
            title=(concept_set.selected_title if concept_set else None) or "",
            tagline=(concept_set.selected_tagline if concept_set else None) or "",
            description=brief.description,
            genre=brief.genre,
            style=style.value,
        ),
        json_mode=False,
    )
    response = await provider.generate(request)
    cover_prompt = response.text.strip()
    if not cover_prompt:
        raise MalformedResponseError("Cover prompt response was empty")

    image = await provider.generate_image(
        ImageRequest(
            prompt=COVER_IMAGE_PROMPT.format(prompt=cover_prompt),
            aspect_ratio=DEFAULT_ASPECT_RATIO,
            metadata={"stage": PipelineStage.GENERATE_COVER.value},
        )
    )
    return CoverOutcome(prompt=cover_prompt, style=style, image=image, response=response)
