"""Tests for the token budget guard."""

from uuid import uuid4

import pytest

from manuscript_schemas import PipelineStage

from services.pipeline.app.budget import admit_stage, charge_stage, check_budget
from services.pipeline.app.errors import NotFoundError, TokenLimitExceededError
from services.pipeline.app.stages import STAGE_TOKEN_ESTIMATES
from services.pipeline.app.store import InMemoryStore
from tests.utils.pipeline import ScriptedProvider, make_context


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def anyio_backend():
    return "asyncio"


def test_stage_estimates() -> None:
    assert STAGE_TOKEN_ESTIMATES == {
        PipelineStage.EXPAND_TOPIC: 5_000,
        PipelineStage.GENERATE_CONCEPTS: 10_000,
        PipelineStage.GENERATE_OUTLINE: 11_000,
        PipelineStage.GENERATE_CHAPTER: 45_000,
        PipelineStage.GENERATE_COVER: 7_000,
    }


def test_budget_allows_exact_limit() -> None:
    store = InMemoryStore()
    account = store.create_account("a@example.com", token_limit=50_000)
    store.set_usage(account.id, tokens_this_month=5_000)

    assert check_budget(store, account.id, 45_000).id == account.id


def test_budget_rejects_over_limit_without_mutation() -> None:
    store = InMemoryStore()
    account = store.create_account("a@example.com", token_limit=50_000)
    store.set_usage(account.id, tokens_this_month=48_000)

    with pytest.raises(TokenLimitExceededError):
        check_budget(store, account.id, 45_000)
    assert store.get_account(account.id).tokens_this_month == 48_000


def test_budget_reports_missing_profile() -> None:
    with pytest.raises(NotFoundError) as excinfo:
        check_budget(InMemoryStore(), uuid4(), 1)
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "User profile not found"


async def test_charge_stage_adds_fixed_estimate(tmp_path) -> None:
    store = InMemoryStore()
    account = store.create_account("a@example.com", token_limit=1_000_000)
    ctx = make_context(store, account, ScriptedProvider(), tmp_path)

    await admit_stage(ctx, PipelineStage.GENERATE_OUTLINE)
    await charge_stage(ctx, PipelineStage.GENERATE_OUTLINE)

    refreshed = store.get_account(account.id)
    assert refreshed.tokens_this_month == 11_000
    assert refreshed.tokens_used == 11_000
