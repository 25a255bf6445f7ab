"""
pagecraft.api.routes.activities -- Dashboard timeline
=======================================================

    GET /activities            — Paginated, filter by type / projectId
    GET /activities/recent     — Latest N for the dashboard
    GET /activities/summary    — Counts per type over the last N days
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pagecraft.api.deps import CurrentUser, get_current_user, get_session
from pagecraft.services import audit_service

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("")
def list_activities(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    activity_type: str | None = Query(None, alias="type"),
    project_id: int | None = Query(None, alias="projectId"),
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return audit_service.list_activities(
        session,
        user.id,
        page=page,
        limit=limit,
        activity_type=activity_type,
        project_id=project_id,
    )


@router.get("/recent")
def recent_activities(
    limit: int = Query(10, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return audit_service.recent_activities(session, user.id, limit=limit)


@router.get("/summary")
def activity_summary(
    days: int = Query(30, ge=1, le=365),
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return audit_service.activity_summary(session, user.id, days=days)
