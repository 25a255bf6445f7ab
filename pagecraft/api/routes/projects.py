"""
pagecraft.api.routes.projects -- Project lifecycle endpoints
==============================================================

All endpoints require a bearer token and only ever see the caller's own
projects; someone else's project id answers 404 like a missing one.

    GET    /projects                    — List own projects
    POST   /projects                    — Create a draft project
    GET    /projects/{id}               — Fetch (counts a view)
    PUT    /projects/{id}               — Partial update (counts an edit)
    DELETE /projects/{id}               — Delete an unpublished project
    POST   /projects/{id}/duplicate     — Copy into a new draft
    POST   /projects/{id}/publish       — Publish / refresh the snapshot
    POST   /projects/{id}/unpublish     — Back to draft, snapshot removed
    GET    /projects/{id}/stats         — Counters + file total
    GET    /projects/{id}/code          — Editable HTML
    PUT    /projects/{id}/code          — Save editable HTML
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy import Engine

from pagecraft.api.deps import CurrentUser, get_current_user, get_engine, get_request_context
from pagecraft.api.schemas import CamelModel
from pagecraft.database.engine import run_db
from pagecraft.services import project_service
from pagecraft.services.audit_service import RequestContext

router = APIRouter(prefix="/projects", tags=["projects"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ProjectCreate(CamelModel):
    name: str | None = None
    description: str | None = None
    template_id: str | None = None


class ProjectUpdate(CamelModel):
    name: str | None = None
    description: str | None = None
    status: str | None = None
    is_public: bool | None = None
    settings: dict[str, Any] | None = None
    html_code: str | None = None


class CodeUpdate(CamelModel):
    content: str | None = None


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------
@router.get("")
async def list_projects(
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    return await run_db(project_service.list_projects, engine, user.id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    return await run_db(
        project_service.create_project,
        engine,
        user.id,
        name=body.name,
        description=body.description,
        template_id=body.template_id,
        context=ctx,
    )


# ---------------------------------------------------------------------------
# Single project
# ---------------------------------------------------------------------------
@router.get("/{project_id}")
async def get_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    return await run_db(project_service.view_project, engine, project_id, user.id, context=ctx)


@router.put("/{project_id}")
async def update_project(
    project_id: int,
    body: ProjectUpdate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    return await run_db(
        project_service.update_project,
        engine,
        project_id,
        user.id,
        body.model_dump(exclude_unset=True),
        context=ctx,
    )


@router.delete("/{project_id}")
async def delete_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    return await run_db(project_service.delete_project, engine, project_id, user.id, context=ctx)


@router.post("/{project_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    return await run_db(project_service.duplicate_project, engine, project_id, user.id, context=ctx)


# ---------------------------------------------------------------------------
# Publication lifecycle
# ---------------------------------------------------------------------------
@router.post("/{project_id}/publish")
async def publish_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    return await run_db(project_service.publish_project, engine, project_id, user.id, context=ctx)


@router.post("/{project_id}/unpublish")
async def unpublish_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    return await run_db(project_service.unpublish_project, engine, project_id, user.id, context=ctx)


# ---------------------------------------------------------------------------
# Stats & code
# ---------------------------------------------------------------------------
@router.get("/{project_id}/stats")
async def project_stats(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    return await run_db(project_service.get_project_stats, engine, project_id, user.id)


@router.get("/{project_id}/code")
async def get_code(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    return await run_db(project_service.get_project_code, engine, project_id, user.id)


@router.put("/{project_id}/code")
async def save_code(
    project_id: int,
    body: CodeUpdate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    ctx: RequestContext = Depends(get_request_context),
):
    return await run_db(
        project_service.save_project_code, engine, project_id, user.id, body.content, context=ctx
    )
