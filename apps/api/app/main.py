"""HTTP API for the manuscript pipeline: stage endpoints and project state."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from manuscript_observability import setup_fastapi_metrics, setup_logging
from manuscript_providers.exceptions import ProviderError
from manuscript_schemas import (
    BookConcept,
    BrainstormResult,
    ChapterDraft,
    ChapterRequest,
    CoverResult,
    CreationStep,
    OutlineChapter,
    OutlineRequest,
    Project,
    ProjectSettings,
    ProjectSnapshot,
    ProjectStageRequest,
    ProjectUpdate,
    StepUpdate,
    UsageSnapshot,
    UserAccount,
)
from services.pipeline.app import handlers
from services.pipeline.app.config import load_settings
from services.pipeline.app.errors import NotFoundError, PipelineError, UnauthorizedError
from services.pipeline.app.runtime import PipelineRuntime, build_runtime
from services.pipeline.app.session import StageContext


SERVICE_NAME = "api"
setup_logging(SERVICE_NAME)
logger = logging.getLogger(__name__)

SETTINGS = load_settings()

bearer_scheme = HTTPBearer(auto_error=False)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the pipeline runtime unless one was installed beforehand."""

    if getattr(app.state, "runtime", None) is None:
        app.state.runtime = build_runtime(SETTINGS, service_name=SERVICE_NAME)
    try:
        yield
    finally:
        app.state.runtime.close()


app = FastAPI(title="Manuscript Studio API", version="0.1.0", lifespan=lifespan)
setup_fastapi_metrics(app, service_name=SERVICE_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if SETTINGS.object_store == "local":
    app.mount(
        "/assets",
        StaticFiles(directory=SETTINGS.storage_root, check_dir=False),
        name="assets",
    )


# Error mapping ---------------------------------------------------------------


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(PipelineError)
async def _pipeline_error_handler(_: Request, exc: PipelineError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(ProviderError)
async def _provider_error_handler(_: Request, exc: ProviderError) -> JSONResponse:
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Generation failed")


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()) if part != 'body')}: {error.get('msg')}"
        for error in exc.errors()
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, f"Invalid request: {details}")


@app.exception_handler(StarletteHTTPException)
async def _http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"route": request.url.path, "method": request.method})
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# Dependencies ----------------------------------------------------------------


def get_runtime(request: Request) -> PipelineRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise RuntimeError("Pipeline runtime is not initialised")
    return runtime


async def current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> UserAccount:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing Authorization header")
    account = await run_in_threadpool(runtime.store.resolve_session, credentials.credentials)
    if account is None:
        raise UnauthorizedError()
    return account


async def stage_context(
    request: Request,
    account: UserAccount = Depends(current_account),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> StageContext:
    return runtime.context_for(account, request_id=request.headers.get("X-Request-ID"))


async def _owned_project(runtime: PipelineRuntime, account: UserAccount, project_id: UUID) -> Project:
    project = await run_in_threadpool(runtime.store.get_project, project_id)
    if project is None or project.user_id != account.id:
        raise NotFoundError("Project not found")
    return project


async def _snapshot(runtime: PipelineRuntime, project_id: UUID) -> ProjectSnapshot:
    snapshot = await run_in_threadpool(runtime.store.snapshot, project_id)
    if snapshot is None:
        raise NotFoundError("Project not found")
    return snapshot


# Health ----------------------------------------------------------------------


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    """Simple readiness check."""

    return {"status": "ok"}


# Stages ----------------------------------------------------------------------


@app.post("/stages/expand-topic", response_model=BrainstormResult, tags=["stages"])
async def expand_topic(
    payload: ProjectStageRequest, ctx: StageContext = Depends(stage_context)
) -> BrainstormResult:
    return await handlers.expand_topic(ctx, payload)


@app.post("/stages/generate-concepts", response_model=list[BookConcept], tags=["stages"])
async def generate_concepts(
    payload: ProjectStageRequest, ctx: StageContext = Depends(stage_context)
) -> list[BookConcept]:
    return await handlers.generate_concepts(ctx, payload)


@app.post("/stages/generate-outline", response_model=list[OutlineChapter], tags=["stages"])
async def generate_outline(
    payload: OutlineRequest, ctx: StageContext = Depends(stage_context)
) -> list[OutlineChapter]:
    return await handlers.generate_outline(ctx, payload)


@app.post("/stages/generate-chapter", response_model=ChapterDraft, tags=["stages"])
async def generate_chapter(
    payload: ChapterRequest, ctx: StageContext = Depends(stage_context)
) -> ChapterDraft:
    return await handlers.generate_chapter(ctx, payload)


@app.post("/stages/generate-cover", response_model=CoverResult, tags=["stages"])
async def generate_cover(
    payload: ProjectStageRequest, ctx: StageContext = Depends(stage_context)
) -> CoverResult:
    return await handlers.generate_cover(ctx, payload)


# Projects --------------------------------------------------------------------


@app.post(
    "/projects",
    response_model=ProjectSnapshot,
    status_code=status.HTTP_201_CREATED,
    tags=["projects"],
)
async def create_project(
    payload: ProjectSettings,
    account: UserAccount = Depends(current_account),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> ProjectSnapshot:
    project = await run_in_threadpool(runtime.store.create_project, account.id, payload)
    logger.info(
        "Project created",
        extra={"project_id": str(project.id), "user_id": str(account.id)},
    )
    return ProjectSnapshot(project=project)


@app.get("/projects", response_model=list[Project], tags=["projects"])
async def list_projects(
    account: UserAccount = Depends(current_account),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> list[Project]:
    return await run_in_threadpool(runtime.store.list_projects, account.id)


@app.get("/projects/{project_id}", response_model=ProjectSnapshot, tags=["projects"])
async def get_project(
    project_id: UUID,
    account: UserAccount = Depends(current_account),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> ProjectSnapshot:
    await _owned_project(runtime, account, project_id)
    return await _snapshot(runtime, project_id)


@app.patch("/projects/{project_id}", response_model=ProjectSnapshot, tags=["projects"])
async def update_project(
    project_id: UUID,
    payload: ProjectUpdate,
    account: UserAccount = Depends(current_account),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> ProjectSnapshot:
    await _owned_project(runtime, account, project_id)
    changes = payload.changes()
    if changes:
        await run_in_threadpool(runtime.store.update_project, project_id, changes)
    return await _snapshot(runtime, project_id)


@app.put("/projects/{project_id}/step", response_model=ProjectSnapshot, tags=["projects"])
async def save_step(
    project_id: UUID,
    payload: StepUpdate,
    account: UserAccount = Depends(current_account),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> ProjectSnapshot:
    await _owned_project(runtime, account, project_id)
    await run_in_threadpool(runtime.store.save_step, project_id, CreationStep(payload.step))
    return await _snapshot(runtime, project_id)


@app.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["projects"])
async def delete_project(
    project_id: UUID,
    account: UserAccount = Depends(current_account),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> Response:
    await _owned_project(runtime, account, project_id)
    await run_in_threadpool(runtime.store.soft_delete_project, project_id)
    logger.info("Project deleted", extra={"project_id": str(project_id), "user_id": str(account.id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Account ---------------------------------------------------------------------


@app.get("/account/usage", response_model=UsageSnapshot, tags=["account"])
async def account_usage(
    account: UserAccount = Depends(current_account),
    runtime: PipelineRuntime = Depends(get_runtime),
) -> UsageSnapshot:
    fresh = await run_in_threadpool(runtime.store.get_account, account.id)
    return UsageSnapshot.from_account(fresh or account)
