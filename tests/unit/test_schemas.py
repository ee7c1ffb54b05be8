"""Smoke tests for Pydantic schema validation."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from manuscript_schemas import (
    TIER_TOKEN_LIMITS,
    BookConcept,
    CoverStyle,
    CreationStep,
    OutlineChapter,
    OutlineRequest,
    ProjectSettings,
    ProjectStatus,
    ProjectUpdate,
    StepUpdate,
    SubscriptionTier,
    UsageSnapshot,
    UserAccount,
)
from manuscript_schemas.utils import clip_text, count_words


def test_project_settings_accept_camel_case() -> None:
    settings = ProjectSettings.model_validate(
        {"keyword": "bees", "targetAudience": "hobbyists", "coverStyle": "Dark & Moody"}
    )
    assert settings.target_audience == "hobbyists"
    assert settings.cover_style is CoverStyle.DARK_AND_MOODY
    assert settings.title == "Untitled Project"


def test_project_settings_require_keyword() -> None:
    with pytest.raises(ValidationError):
        ProjectSettings(keyword="   ")


def test_project_update_changes_only_set_fields() -> None:
    changes = ProjectUpdate(cover_style=CoverStyle.HIGH_TECH, description=None).changes()
    assert changes == {"cover_style": "High-Tech"}


def test_creation_step_navigation_is_clamped() -> None:
    assert CreationStep.SETUP.previous() is CreationStep.SETUP
    assert CreationStep.FINALIZE.next() is CreationStep.FINALIZE
    assert CreationStep.OUTLINE.next() is CreationStep.WRITING
    assert CreationStep.DESIGN.status is ProjectStatus.DESIGN


def test_step_update_bounds() -> None:
    assert StepUpdate(step=6).step == 6
    with pytest.raises(ValidationError):
        StepUpdate(step=7)


def test_outline_request_defaults_to_first_concept() -> None:
    request = OutlineRequest.model_validate({"projectId": str(uuid4())})
    assert request.concept_index == 0


def test_outline_chapter_serialises_camel_case() -> None:
    chapter = OutlineChapter(id=3, title="Foundations", sections=["a"])
    assert chapter.id == "3"
    concept = BookConcept(title="T", target_market="m")
    assert concept.model_dump(by_alias=True)["targetMarket"] == "m"


def test_usage_snapshot_from_account() -> None:
    account = UserAccount(email="a@example.com", tier=SubscriptionTier.CREATOR, token_limit=1_000_000)
    usage = UsageSnapshot.from_account(account)
    assert usage.token_limit == TIER_TOKEN_LIMITS[SubscriptionTier.CREATOR]
    assert usage.model_dump(by_alias=True)["tokensThisMonth"] == 0


def test_text_helpers() -> None:
    assert count_words("  one two\nthree ") == 3
    assert count_words(None) == 0
    assert clip_text("  abcdef  ", limit=3) == "abc"
    assert clip_text(None, limit=10) == ""
