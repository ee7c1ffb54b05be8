"""Async HTTP client for the manuscript API."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional, Sequence
from uuid import UUID

import httpx
from pydantic import BaseModel, TypeAdapter

from manuscript_schemas import (
    BookConcept,
    BrainstormResult,
    ChapterDraft,
    CoverResult,
    OutlineChapter,
    Project,
    ProjectSettings,
    ProjectSnapshot,
    ProjectUpdate,
    UsageSnapshot,
)

from .exceptions import StageRequestError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = os.getenv("MANUSCRIPT_API_URL", "http://localhost:8000")
DEFAULT_TIMEOUT_SECONDS = float(os.getenv("MANUSCRIPT_API_TIMEOUT", "120"))

_CONCEPT_LIST = TypeAdapter(list[BookConcept])
_OUTLINE_LIST = TypeAdapter(list[OutlineChapter])
_PROJECT_LIST = TypeAdapter(list[Project])


def _body(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        message = payload.get("error") or payload.get("detail")
        if message:
            return str(message)
    return response.reason_phrase


class ManuscriptClient:
    """Thin wrapper around every HTTP contract exposed by the API.

    Every non-2xx response is raised as :class:`StageRequestError` with the
    server's ``error`` message. Transport failures and timeouts are raised the
    same way with ``status`` set to ``0``.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def __aenter__(self) -> "ManuscriptClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self, method: str, path: str, *, json: Optional[dict[str, Any]] = None
    ) -> httpx.Response:
        try:
            response = await self._http.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.warning("Request to %s failed", path, extra={"method": method, "route": path})
            raise StageRequestError(0, str(exc) or type(exc).__name__) from exc
        if response.is_error:
            raise StageRequestError(response.status_code, _error_message(response))
        return response

    # Stages ------------------------------------------------------------------

    async def expand_topic(self, project_id: UUID) -> BrainstormResult:
        response = await self._request(
            "POST", "/stages/expand-topic", json={"projectId": str(project_id)}
        )
        return BrainstormResult.model_validate(response.json())

    async def generate_concepts(self, project_id: UUID) -> list[BookConcept]:
        response = await self._request(
            "POST", "/stages/generate-concepts", json={"projectId": str(project_id)}
        )
        return _CONCEPT_LIST.validate_python(response.json())

    async def generate_outline(self, project_id: UUID, concept_index: int = 0) -> list[OutlineChapter]:
        response = await self._request(
            "POST",
            "/stages/generate-outline",
            json={"projectId": str(project_id), "conceptIndex": concept_index},
        )
        return _OUTLINE_LIST.validate_python(response.json())

    async def generate_chapter(self, chapter_id: UUID | str) -> ChapterDraft:
        response = await self._request(
            "POST", "/stages/generate-chapter", json={"chapterId": str(chapter_id)}
        )
        return ChapterDraft.model_validate(response.json())

    async def generate_cover(self, project_id: UUID) -> CoverResult:
        response = await self._request(
            "POST", "/stages/generate-cover", json={"projectId": str(project_id)}
        )
        return CoverResult.model_validate(response.json())

    # Projects ----------------------------------------------------------------

    async def create_project(self, settings: ProjectSettings) -> ProjectSnapshot:
        response = await self._request("POST", "/projects", json=_body(settings))
        return ProjectSnapshot.model_validate(response.json())

    async def list_projects(self) -> list[Project]:
        response = await self._request("GET", "/projects")
        return _PROJECT_LIST.validate_python(response.json())

    async def get_project(self, project_id: UUID) -> ProjectSnapshot:
        response = await self._request("GET", f"/projects/{project_id}")
        return ProjectSnapshot.model_validate(response.json())

    async def update_project(self, project_id: UUID, changes: ProjectUpdate) -> ProjectSnapshot:
        response = await self._request("PATCH", f"/projects/{project_id}", json=_body(changes))
        return ProjectSnapshot.model_validate(response.json())

    async def save_step(self, project_id: UUID, step: int) -> ProjectSnapshot:
        response = await self._request(
            "PUT", f"/projects/{project_id}/step", json={"step": int(step)}
        )
        return ProjectSnapshot.model_validate(response.json())

    async def delete_project(self, project_id: UUID) -> None:
        await self._request("DELETE", f"/projects/{project_id}")

    async def get_usage(self) -> UsageSnapshot:
        response = await self._request("GET", "/account/usage")
        return UsageSnapshot.model_validate(response.json())


def concept_index(concepts: Sequence[BookConcept], concept: BookConcept) -> int:
    """Position of ``concept`` in ``concepts``; unknown concepts map to 0."""

    for index, candidate in enumerate(concepts):
        if candidate is concept or candidate == concept:
            return index
    return 0
