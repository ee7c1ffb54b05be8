"""Tests for the in-memory store: sessions, projects and step handling."""

from datetime import timedelta
from uuid import uuid4

import pytest

from manuscript_schemas import (
    BookConcept,
    BrainstormResult,
    CreationStep,
    OutlineChapter,
    ProjectSettings,
    ProjectStatus,
)

from services.pipeline.app.errors import NotFoundError
from services.pipeline.app.store import InMemoryStore
from services.pipeline.app.store.base import hash_token


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def account(store):
    return store.create_account("Writer@Example.com")


def test_account_defaults_to_free_tier(account) -> None:
    assert account.email == "writer@example.com"
    assert account.token_limit == 50_000
    assert account.tokens_this_month == 0


def test_session_round_trip_and_expiry(store, account) -> None:
    token = store.issue_session(account.id, timedelta(minutes=5))
    assert token != hash_token(token)
    assert store.resolve_session(token).id == account.id
    assert store.resolve_session("not-a-token") is None

    expired = store.issue_session(account.id, timedelta(minutes=-1))
    assert store.resolve_session(expired) is None


def test_create_project_increments_project_count(store, account) -> None:
    project = store.create_project(account.id, ProjectSettings(keyword="bees"))
    assert project.current_step == CreationStep.SETUP.value
    assert project.title == "Untitled Project"
    assert store.get_account(account.id).project_count == 1


def test_list_projects_excludes_deleted_and_limits(store, account) -> None:
    projects = [
        store.create_project(account.id, ProjectSettings(keyword=f"topic {index}"))
        for index in range(12)
    ]
    store.soft_delete_project(projects[-1].id)

    listed = store.list_projects(account.id)

    assert len(listed) == 10
    assert projects[-1].id not in {project.id for project in listed}
    assert store.get_project(projects[-1].id) is None


def test_update_project_ignores_non_editable_fields(store, account) -> None:
    project = store.create_project(account.id, ProjectSettings(keyword="bees"))
    updated = store.update_project(
        project.id, {"cover_style": "Vibrant", "current_step": 6, "user_id": None}
    )
    assert updated.cover_style == "Vibrant"
    assert updated.current_step == CreationStep.SETUP.value
    assert updated.user_id == account.id


def test_save_step_can_move_backwards(store, account) -> None:
    project = store.create_project(account.id, ProjectSettings(keyword="bees"))
    store.save_step(project.id, CreationStep.WRITING)
    restored = store.save_step(project.id, CreationStep.CONCEPT)
    assert restored.current_step == CreationStep.CONCEPT.value
    assert restored.status == ProjectStatus.CONCEPT


def test_stage_writes_advance_monotonically(store, account) -> None:
    project = store.create_project(account.id, ProjectSettings(keyword="bees"))
    store.save_brainstorm(
        project.id, BrainstormResult(thesis="T"), advance_to=CreationStep.BRAINSTORM
    )
    store.replace_outline(
        project.id,
        BookConcept(title="Chosen"),
        [OutlineChapter(title="One"), OutlineChapter(title="Two")],
        advance_to=CreationStep.OUTLINE,
    )
    store.save_brainstorm(
        project.id, BrainstormResult(thesis="T2"), advance_to=CreationStep.BRAINSTORM
    )

    stored = store.get_project(project.id)
    assert stored.current_step == CreationStep.OUTLINE.value
    assert stored.title == "Chosen"


def test_snapshot_collects_project_state(store, account) -> None:
    project = store.create_project(account.id, ProjectSettings(keyword="bees"))
    store.replace_outline(
        project.id,
        BookConcept(title="Chosen"),
        [OutlineChapter(title="One"), OutlineChapter(title="Two")],
        advance_to=CreationStep.OUTLINE,
    )
    for index in range(2):
        store.append_cover(
            project.id,
            prompt=f"prompt {index}",
            image_url=f"http://assets.test/{index}.png",
            storage_path=f"{index}.png",
            style="Minimalist",
            advance_to=CreationStep.DESIGN,
        )

    snapshot = store.snapshot(project.id)

    assert [chapter.title for chapter in snapshot.chapters] == ["One", "Two"]
    assert snapshot.concept_set.selected_title == "Chosen"
    assert snapshot.cover.prompt == "prompt 1"
    assert len(store.covers(project.id)) == 2


def test_missing_project_raises_not_found(store) -> None:
    with pytest.raises(NotFoundError):
        store.save_step(uuid4(), CreationStep.BRAINSTORM)
