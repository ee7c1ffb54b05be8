"""HTTP contract tests for the API using FastAPI's TestClient."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from apps.api.app import main
from apps.api.app.main import app
from manuscript_providers.exceptions import ProviderUnavailableError
from services.pipeline.app.config import PipelineSettings
from services.pipeline.app.runtime import PipelineRuntime
from services.pipeline.app.store import InMemoryStore, LocalObjectStore
from tests.utils.pipeline import ScriptedProvider, seed_account


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def client(store, provider, tmp_path):
    app.state.runtime = PipelineRuntime(
        settings=PipelineSettings(storage_root=str(tmp_path)),
        store=store,
        provider=provider,
        objects=LocalObjectStore(tmp_path, "http://assets.test"),
        service_name="test",
    )
    with TestClient(app) as test_client:
        yield test_client
    app.state.runtime = None


@pytest.fixture
def account(store):
    return seed_account(store)


@pytest.fixture
def auth(store, account) -> dict[str, str]:
    token = store.issue_session(account.id, timedelta(hours=1))
    return {"Authorization": f"Bearer {token}"}


def _create_project(client, auth, **fields) -> dict:
    body = {"keyword": "urban beekeeping", "description": "Rooftop hives", **fields}
    response = client.post("/projects", json=body, headers=auth)
    assert response.status_code == 201
    return response.json()["project"]


def test_health_needs_no_auth(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_metrics_endpoint_exposes_prometheus_text(client) -> None:
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "manuscript_http_requests_total" in response.text


def test_missing_token_is_unauthorized(client) -> None:
    response = client.post("/stages/expand-topic", json={"projectId": str(uuid4())})
    assert response.status_code == 401
    assert response.json() == {"error": "Missing Authorization header"}


def test_invalid_token_is_unauthorized(client) -> None:
    response = client.get("/projects", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_validation_error_maps_to_400(client, auth) -> None:
    response = client.post("/stages/expand-topic", json={"projectId": "not-a-uuid"}, headers=auth)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request")


def test_full_stage_flow(client, auth, store, account) -> None:
    project = _create_project(client, auth, coverStyle="Vibrant")
    project_id = project["id"]

    brainstorm = client.post("/stages/expand-topic", json={"projectId": project_id}, headers=auth)
    assert brainstorm.status_code == 200
    assert set(brainstorm.json()) == {"thesis", "topics", "researchQuestions"}

    concepts = client.post("/stages/generate-concepts", json={"projectId": project_id}, headers=auth)
    assert concepts.status_code == 200
    assert concepts.json()[0]["targetMarket"]

    outline = client.post(
        "/stages/generate-outline",
        json={"projectId": project_id, "conceptIndex": 1},
        headers=auth,
    )
    assert outline.status_code == 200
    chapters = outline.json()
    assert len(chapters) == 8

    chapter = client.post(
        "/stages/generate-chapter", json={"chapterId": chapters[0]["id"]}, headers=auth
    )
    assert chapter.status_code == 200
    assert chapter.json()["wordCount"] > 0

    cover = client.post("/stages/generate-cover", json={"projectId": project_id}, headers=auth)
    assert cover.status_code == 200
    assert cover.json()["imageUrl"].startswith("http://assets.test/")

    snapshot = client.get(f"/projects/{project_id}", headers=auth).json()
    assert snapshot["project"]["currentStep"] == 5
    assert snapshot["project"]["title"] == "Mock Concept 2"
    assert snapshot["conceptSet"]["selectedTitle"] == "Mock Concept 2"
    assert [c["orderIndex"] for c in snapshot["chapters"]] == list(range(8))
    assert snapshot["chapters"][0]["status"] == "generated"
    assert snapshot["cover"]["style"] == "Vibrant"

    usage = client.get("/account/usage", headers=auth).json()
    assert usage["tokensThisMonth"] == 5_000 + 10_000 + 11_000 + 45_000 + 7_000
    assert usage["projectCount"] == 1


def test_token_limit_maps_to_429(client, auth, store, account, provider) -> None:
    project = _create_project(client, auth)
    store.set_usage(account.id, tokens_this_month=48_000, token_limit=50_000)

    response = client.post("/stages/expand-topic", json={"projectId": project["id"]}, headers=auth)

    assert response.status_code == 429
    assert response.json() == {"error": "Token limit exceeded. Please upgrade your plan."}
    assert provider.call_count == 0


def test_outline_without_concepts_maps_to_400(client, auth) -> None:
    project = _create_project(client, auth)
    response = client.post(
        "/stages/generate-outline", json={"projectId": project["id"]}, headers=auth
    )
    assert response.status_code == 400
    assert response.json() == {"error": "No concept found"}


def test_unknown_chapter_maps_to_404(client, auth) -> None:
    response = client.post("/stages/generate-chapter", json={"chapterId": str(uuid4())}, headers=auth)
    assert response.status_code == 404
    assert response.json() == {"error": "Chapter not found"}


def test_provider_failure_maps_to_500(client, auth, provider) -> None:
    project = _create_project(client, auth)
    provider.fail_with = ProviderUnavailableError("All AI providers failed for text generation")

    response = client.post("/stages/expand-topic", json={"projectId": project["id"]}, headers=auth)

    assert response.status_code == 500
    assert response.json() == {"error": "All AI providers failed for text generation"}


def test_projects_are_scoped_to_owner(client, auth, store) -> None:
    project = _create_project(client, auth)
    stranger = store.create_account("stranger@example.com")
    stranger_auth = {
        "Authorization": f"Bearer {store.issue_session(stranger.id, timedelta(hours=1))}"
    }

    assert client.get(f"/projects/{project['id']}", headers=stranger_auth).status_code == 404
    assert client.get("/projects", headers=stranger_auth).json() == []
    response = client.post(
        "/stages/expand-topic", json={"projectId": project["id"]}, headers=stranger_auth
    )
    assert response.status_code == 404


def test_update_step_and_delete_project(client, auth) -> None:
    project = _create_project(client, auth)
    project_id = project["id"]

    patched = client.patch(
        f"/projects/{project_id}", json={"coverStyle": "High-Tech"}, headers=auth
    )
    assert patched.status_code == 200
    assert patched.json()["project"]["coverStyle"] == "High-Tech"

    stepped = client.put(f"/projects/{project_id}/step", json={"step": 6}, headers=auth)
    assert stepped.json()["project"]["status"] == "finalize"
    back = client.put(f"/projects/{project_id}/step", json={"step": 2}, headers=auth)
    assert back.json()["project"]["currentStep"] == 2

    assert client.put(f"/projects/{project_id}/step", json={"step": 9}, headers=auth).status_code == 400

    assert client.delete(f"/projects/{project_id}", headers=auth).status_code == 204
    assert client.get(f"/projects/{project_id}", headers=auth).status_code == 404
    assert client.get("/projects", headers=auth).json() == []


class _ClosingStore(InMemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    def close(self) -> None:
        self.closed = True


def test_lifespan_builds_and_closes_runtime(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    built = []

    def fake_build_runtime(settings, *, service_name):
        runtime = PipelineRuntime(
            settings=settings,
            store=_ClosingStore(),
            provider=ScriptedProvider(),
            objects=LocalObjectStore(tmp_path, "http://assets.test"),
            service_name=service_name,
        )
        built.append(runtime)
        return runtime

    monkeypatch.setattr(main, "build_runtime", fake_build_runtime)
    app.state.runtime = None

    with TestClient(app) as test_client:
        assert test_client.get("/health").status_code == 200
        assert app.state.runtime is built[0]

    app.state.runtime = None
    assert len(built) == 1
    assert built[0].store.closed is True
    assert built[0].service_name == "api"
