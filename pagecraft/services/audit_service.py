"""
pagecraft.services.audit_service — Activity timeline & project audit trail
============================================================================

Two append-only journals are written by every project mutation:

* ``activities``   — user-facing dashboard events (icon/colour derived on read)
* ``project_logs`` — audit records carrying the caller's IP and user agent

Writers open their **own** short transaction, after the business
transaction has committed.  A failing audit insert is logged and swallowed:
a publish that succeeded stays successful even if its audit row is lost.

The read half (timeline, summaries, log search) is owner-scoped and lives
here too so both journals have a single home.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from sqlalchemy import Engine, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pagecraft.database.models import Activity, Project, ProjectLog
from pagecraft.services.serializers import activity_to_dict, project_log_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Network metadata of the HTTP request that triggered an action."""

    ip_address: str | None = None
    user_agent: str | None = None


EMPTY_CONTEXT = RequestContext()


# ---------------------------------------------------------------------------
# Writers (best-effort)
# ---------------------------------------------------------------------------
def record_activity(
    engine: Engine,
    *,
    user_id: int,
    project_id: int | None,
    activity_type: str,
    description: str,
    metadata: dict[str, Any] | None = None,
) -> int | None:
    """Append one Activity row.  Returns its id, or ``None`` if the write failed."""
    try:
        with Session(engine, expire_on_commit=False) as session:
            row = Activity(
                user_id=user_id,
                project_id=project_id,
                type=str(activity_type),
                description=description,
                metadata_=metadata or {},
            )
            session.add(row)
            session.commit()
            return row.id
    except SQLAlchemyError:
        logger.exception(
            "Activity write failed (user=%s project=%s type=%s)",
            user_id, project_id, activity_type,
        )
        return None


def log_project_action(
    engine: Engine,
    *,
    user_id: int,
    project_id: int | None,
    action: str,
    description: str | None = None,
    metadata: dict[str, Any] | None = None,
    context: RequestContext = EMPTY_CONTEXT,
) -> int | None:
    """Append one ProjectLog row.  Returns its id, or ``None`` if the write failed."""
    try:
        with Session(engine, expire_on_commit=False) as session:
            row = ProjectLog(
                user_id=user_id,
                project_id=project_id,
                action=str(action),
                description=description,
                metadata_=metadata or {},
                ip_address=context.ip_address,
                user_agent=context.user_agent,
            )
            session.add(row)
            session.commit()
            return row.id
    except SQLAlchemyError:
        logger.exception(
            "Project log write failed (user=%s project=%s action=%s)",
            user_id, project_id, action,
        )
        return None


# ---------------------------------------------------------------------------
# Activity reads
# ---------------------------------------------------------------------------
def list_activities(
    session: Session,
    user_id: int,
    *,
    page: int = 1,
    limit: int = 20,
    activity_type: str | None = None,
    project_id: int | None = None,
) -> dict[str, Any]:
    """Paginated timeline for *user_id*, newest first."""
    filters = [Activity.user_id == user_id]
    if activity_type:
        filters.append(Activity.type == activity_type)
    if project_id is not None:
        filters.append(Activity.project_id == project_id)

    total = session.scalar(select(func.count(Activity.id)).where(*filters)) or 0
    rows = session.scalars(
        select(Activity)
        .where(*filters)
        .order_by(desc(Activity.created_at), desc(Activity.id))
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return {
        "activities": [activity_to_dict(a) for a in rows],
        "pagination": _pagination(page, limit, total),
    }


def recent_activities(session: Session, user_id: int, *, limit: int = 10) -> list[dict[str, Any]]:
    rows = session.scalars(
        select(Activity)
        .where(Activity.user_id == user_id)
        .order_by(desc(Activity.created_at), desc(Activity.id))
        .limit(limit)
    ).all()
    return [activity_to_dict(a) for a in rows]


def activity_summary(session: Session, user_id: int, *, days: int = 30) -> dict[str, Any]:
    """Count of the user's activities per type over the last *days* days."""
    since = datetime.now(UTC) - timedelta(days=days)
    rows = session.execute(
        select(Activity.type, func.count(Activity.id))
        .where(Activity.user_id == user_id, Activity.created_at >= since)
        .group_by(Activity.type)
    ).all()
    by_type = {activity_type: count for activity_type, count in rows}
    return {
        "periodDays": days,
        "totalActivities": sum(by_type.values()),
        "byType": by_type,
    }


# ---------------------------------------------------------------------------
# ProjectLog reads
# ---------------------------------------------------------------------------
def _date_filters(start_date: date | None, end_date: date | None) -> list:
    filters = []
    if start_date is not None:
        filters.append(ProjectLog.created_at >= datetime.combine(start_date, time.min, UTC))
    if end_date is not None:
        # end date is inclusive
        filters.append(ProjectLog.created_at <= datetime.combine(end_date, time.max, UTC))
    return filters


def list_project_logs(
    session: Session,
    user_id: int,
    *,
    page: int = 1,
    limit: int = 50,
    action: str | None = None,
    project_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, Any]:
    """Paginated audit records written for *user_id*, newest first.

    Each record carries the referenced project's ``{id, name, status}``
    when the project still exists, ``None`` once it has been deleted.
    """
    filters = [ProjectLog.user_id == user_id, *_date_filters(start_date, end_date)]
    if action:
        filters.append(ProjectLog.action == action)
    if project_id is not None:
        filters.append(ProjectLog.project_id == project_id)

    total = session.scalar(select(func.count(ProjectLog.id)).where(*filters)) or 0
    rows = session.execute(
        select(ProjectLog, Project)
        .outerjoin(Project, Project.id == ProjectLog.project_id)
        .where(*filters)
        .order_by(desc(ProjectLog.created_at), desc(ProjectLog.id))
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    logs = []
    for log, project in rows:
        item = project_log_to_dict(log)
        item["project"] = (
            {"id": project.id, "name": project.name, "status": project.status}
            if project is not None else None
        )
        logs.append(item)
    return {"logs": logs, "pagination": _pagination(page, limit, total)}


def project_log_stats(
    session: Session,
    user_id: int,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, Any]:
    """Aggregate view of *user_id*'s audit trail.

    Daily buckets default to the 30 days ending at *end_date* (or today).
    """
    filters = [ProjectLog.user_id == user_id, *_date_filters(start_date, end_date)]

    total = session.scalar(select(func.count(ProjectLog.id)).where(*filters)) or 0

    by_action = {
        action: count
        for action, count in session.execute(
            select(ProjectLog.action, func.count(ProjectLog.id))
            .where(*filters)
            .group_by(ProjectLog.action)
        ).all()
    }

    window_end = end_date or datetime.now(UTC).date()
    window_start = start_date or (window_end - timedelta(days=30))
    day = func.date(ProjectLog.created_at)
    daily_rows = session.execute(
        select(day, ProjectLog.action, func.count(ProjectLog.id))
        .where(ProjectLog.user_id == user_id, *_date_filters(window_start, window_end))
        .group_by(day, ProjectLog.action)
        .order_by(day)
    ).all()
    daily: dict[str, dict[str, Any]] = {}
    for day_value, action, count in daily_rows:
        key = str(day_value)
        bucket = daily.setdefault(key, {"date": key, "count": 0, "actions": {}})
        bucket["count"] += count
        bucket["actions"][action] = count

    log_count = func.count(ProjectLog.id)
    top_rows = session.execute(
        select(ProjectLog.project_id, Project.name, log_count)
        .outerjoin(Project, Project.id == ProjectLog.project_id)
        .where(*filters, ProjectLog.project_id.is_not(None))
        .group_by(ProjectLog.project_id, Project.name)
        .order_by(desc(log_count))
        .limit(10)
    ).all()

    return {
        "totalLogs": total,
        "byAction": by_action,
        "daily": list(daily.values()),
        "topProjects": [
            {"projectId": pid, "projectName": name, "logCount": count}
            for pid, name, count in top_rows
        ],
    }


def _pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": (total + limit - 1) // limit if limit else 0,
    }
