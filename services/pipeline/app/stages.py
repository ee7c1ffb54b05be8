"""Per-stage constants: budget estimates, output limits and step targets."""

from __future__ import annotations

from manuscript_providers import ProviderRequest
from manuscript_schemas.enums import CreationStep, PipelineStage

STAGE_TEMPERATURE = 0.7

STAGE_TOKEN_ESTIMATES: dict[PipelineStage, int] = {
    PipelineStage.EXPAND_TOPIC: 5_000,
    PipelineStage.GENERATE_CONCEPTS: 10_000,
    PipelineStage.GENERATE_OUTLINE: 11_000,
    PipelineStage.GENERATE_CHAPTER: 45_000,
    PipelineStage.GENERATE_COVER: 7_000,
}

STAGE_MAX_OUTPUT_TOKENS: dict[PipelineStage, int] = {
    PipelineStage.EXPAND_TOPIC: 2_000,
    PipelineStage.GENERATE_CONCEPTS: 3_000,
    PipelineStage.GENERATE_OUTLINE: 4_000,
    PipelineStage.GENERATE_CHAPTER: 8_000,
    PipelineStage.GENERATE_COVER: 500,
}

STAGE_TARGET_STEP: dict[PipelineStage, CreationStep] = {
    PipelineStage.EXPAND_TOPIC: CreationStep.BRAINSTORM,
    PipelineStage.GENERATE_CONCEPTS: CreationStep.CONCEPT,
    PipelineStage.GENERATE_OUTLINE: CreationStep.OUTLINE,
    PipelineStage.GENERATE_CHAPTER: CreationStep.WRITING,
    PipelineStage.GENERATE_COVER: CreationStep.DESIGN,
}


def build_request(
    stage: PipelineStage,
    *,
    prompt: str,
    system_prompt: str,
    json_mode: bool,
) -> ProviderRequest:
    return ProviderRequest(
        prompt=prompt,
        system_prompt=system_prompt,
        json_mode=json_mode,
        temperature=STAGE_TEMPERATURE,
        max_output_tokens=STAGE_MAX_OUTPUT_TOKENS[stage],
        metadata={"stage": stage.value},
    )
