"""
pagecraft.api.routes.likes -- Template like endpoints
=======================================================

    POST   /likes/template/{id}          — Toggle the caller's like
    DELETE /likes/template/{id}          — Remove the caller's like
    GET    /likes/template/{id}/status   — Has the caller liked it?
    GET    /likes/user                   — Templates the caller liked
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from pagecraft.api.deps import CurrentUser, get_current_user, get_engine, get_session
from pagecraft.database.engine import run_db
from pagecraft.services import like_service

router = APIRouter(prefix="/likes", tags=["likes"])


@router.post("/template/{template_id}")
async def toggle_like(
    template_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    return await run_db(like_service.toggle_like, engine, template_id, user.id)


@router.delete("/template/{template_id}")
async def remove_like(
    template_id: int,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    return await run_db(like_service.remove_like, engine, template_id, user.id)


@router.get("/template/{template_id}/status")
def like_status(
    template_id: int,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return like_service.get_like_status(session, template_id, user.id)


@router.get("/user")
def liked_templates(
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return like_service.list_liked_templates(session, user.id)
