"""
pagecraft.api.routes.templates -- Template library endpoints
==============================================================

Public endpoints:
    GET  /templates                      — Paginated, filterable listing
    GET  /templates/stats/categories     — Per-category counts and averages
    GET  /templates/{id}                 — Fetch (counts a view)
    POST /templates/{id}/download        — Count a download
    GET  /templates/{id}/preview         — Standalone HTML preview

Authenticated endpoints:
    POST   /templates                    — Create (caller becomes owner)
    PUT    /templates/{id}               — Owner-only update
    DELETE /templates/{id}               — Owner-only delete
    POST   /templates/{id}/like          — Toggle the caller's like
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from pagecraft.api.deps import CurrentUser, get_config, get_current_user, get_engine, get_session
from pagecraft.api.schemas import CamelModel
from pagecraft.config import PagecraftConfig
from pagecraft.database.engine import run_db
from pagecraft.services import like_service, template_service

router = APIRouter(prefix="/templates", tags=["templates"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class TemplateCreate(CamelModel):
    name: str | None = None
    description: str | None = None
    html_content: str | None = None
    css_content: str | None = None
    js_content: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    is_public: bool | None = None
    thumbnail: str | None = None
    version: str | None = None
    status: str | None = None


class TemplateUpdate(TemplateCreate):
    pass


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------
@router.get("")
def list_templates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: str | None = None,
    category: str | None = None,
    status_filter: str | None = Query(None, alias="status"),
    is_public: bool | None = Query(None, alias="isPublic"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("DESC", alias="sortOrder"),
    session: Session = Depends(get_session),
    cfg: PagecraftConfig = Depends(get_config),
):
    return template_service.list_templates(
        session,
        page=page,
        limit=min(limit, cfg.templates_page_size_max),
        search=search,
        category=category,
        status=status_filter,
        is_public=is_public,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/stats/categories")
def category_stats(session: Session = Depends(get_session)):
    return template_service.category_stats(session)


@router.get("/{template_id}")
async def get_template(template_id: int, engine: Engine = Depends(get_engine)):
    return await run_db(template_service.get_template, engine, template_id)


@router.post("/{template_id}/download")
async def download_template(template_id: int, engine: Engine = Depends(get_engine)):
    return await run_db(template_service.download_template, engine, template_id)


@router.get("/{template_id}/preview", response_class=HTMLResponse)
def preview_template(template_id: int, session: Session = Depends(get_session)):
    return HTMLResponse(template_service.render_preview(session, template_id))


# ---------------------------------------------------------------------------
# Authenticated
# ---------------------------------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    return await run_db(
        template_service.create_template, engine, user.id, body.model_dump(exclude_unset=True)
    )


@router.put("/{template_id}")
async def update_template(
    template_id: int,
    body: TemplateUpdate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    return await run_db(
        template_service.update_template,
        engine,
        template_id,
        user.id,
        body.model_dump(exclude_unset=True),
    )


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    return await run_db(template_service.delete_template, engine, template_id, user.id)


@router.post("/{template_id}/like")
async def like_template(
    template_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    """Same toggle as ``POST /likes/template/{id}``."""
    return await run_db(like_service.toggle_like, engine, template_id, user.id)
