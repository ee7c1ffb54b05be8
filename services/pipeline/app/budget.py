"""Token budget admission check and post-stage charging.

Stages are charged a fixed per-stage estimate, not the usage the provider
reports. Actual usage is exported as metrics next to the charged amount.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi.concurrency import run_in_threadpool

from manuscript_observability import record_budget_rejection, record_charged_tokens
from manuscript_schemas import PipelineStage, UserAccount

from .errors import NotFoundError, TokenLimitExceededError
from .session import StageContext
from .stages import STAGE_TOKEN_ESTIMATES
from .store.base import PipelineStore

logger = logging.getLogger(__name__)


def check_budget(store: PipelineStore, user_id: UUID, estimated_tokens: int) -> UserAccount:
    """Reject when ``tokens_this_month + estimated_tokens`` exceeds the limit.

    A missing account profile raises :class:`NotFoundError`. Nothing is mutated.
    """

    account = store.get_account(user_id)
    if account is None:
        raise NotFoundError("User profile not found")
    if account.tokens_this_month + estimated_tokens > account.token_limit:
        raise TokenLimitExceededError()
    return account


def charge(store: PipelineStore, user_id: UUID, tokens: int) -> None:
    store.increment_token_usage(user_id, tokens)


async def admit_stage(ctx: StageContext, stage: PipelineStage) -> UserAccount:
    estimate = STAGE_TOKEN_ESTIMATES[stage]
    try:
        return await run_in_threadpool(check_budget, ctx.store, ctx.account.id, estimate)
    except TokenLimitExceededError:
        record_budget_rejection(service_name=ctx.service_name, stage=stage.value)
        logger.warning("Stage rejected by token budget", extra={"estimated_tokens": estimate})
        raise


async def charge_stage(ctx: StageContext, stage: PipelineStage) -> None:
    estimate = STAGE_TOKEN_ESTIMATES[stage]
    await run_in_threadpool(charge, ctx.store, ctx.account.id, estimate)
    record_charged_tokens(service_name=ctx.service_name, stage=stage.value, tokens=estimate)
