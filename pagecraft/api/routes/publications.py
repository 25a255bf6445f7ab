"""
pagecraft.api.routes.publications -- Public gallery endpoints
===============================================================

No authentication.  Mounted ahead of the projects router so that
``/projects/publications`` is not read as a project id.

    GET /projects/publications                         — Paginated gallery
    GET /projects/publications/{publication_id}/code   — Published HTML
    GET /projects/publications/{project_id}/versions   — Version list
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from pagecraft.api.deps import get_config, get_engine, get_session
from pagecraft.config import PagecraftConfig
from pagecraft.database.engine import run_db
from pagecraft.services import publication_service

router = APIRouter(prefix="/projects/publications", tags=["publications"])


@router.get("")
def list_publications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    search: str | None = None,
    session: Session = Depends(get_session),
    cfg: PagecraftConfig = Depends(get_config),
):
    return publication_service.list_publications(
        session,
        page=page,
        limit=min(limit, cfg.publications_page_size_max),
        search=search,
    )


@router.get("/{publication_id}/code")
async def publication_code(
    publication_id: int,
    version: int | None = None,
    engine: Engine = Depends(get_engine),
):
    return await run_db(
        publication_service.get_publication_code, engine, publication_id, version=version
    )


@router.get("/{project_id}/versions")
def publication_versions(project_id: int, session: Session = Depends(get_session)):
    return publication_service.list_publication_versions(session, project_id)
