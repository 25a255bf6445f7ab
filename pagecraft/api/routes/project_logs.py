"""
pagecraft.api.routes.project_logs -- Audit trail
==================================================

Scoped to the caller's own log rows (they carry IP addresses).

    GET /project-logs          — Paginated, filter by action / projectId / dates
    GET /project-logs/stats    — Totals, per-action, per-day, top projects
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pagecraft.api.deps import CurrentUser, get_current_user, get_session
from pagecraft.services import audit_service

router = APIRouter(prefix="/project-logs", tags=["project-logs"])


@router.get("")
def list_project_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    action: str | None = None,
    project_id: int | None = Query(None, alias="projectId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return audit_service.list_project_logs(
        session,
        user.id,
        page=page,
        limit=limit,
        action=action,
        project_id=project_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/stats")
def project_log_stats(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return audit_service.project_log_stats(
        session, user.id, start_date=start_date, end_date=end_date
    )
