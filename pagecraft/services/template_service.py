"""
pagecraft.services.template_service — Shared template library
===============================================================

Browse, create and maintain the community template library.  Anyone may
read; only a template's owner may change or delete it.  View and download
counters use atomic ``UPDATE … SET col = col + 1``.  Likes are handled by
:mod:`pagecraft.services.like_service`.
"""

from __future__ import annotations

import html
import logging
from typing import Any

from sqlalchemy import Engine, String, asc, cast, delete, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pagecraft.constants import TEMPLATE_SORT_FIELDS
from pagecraft.database.models import Like, Template, TemplateStatus
from pagecraft.errors import (
    ConstraintError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from pagecraft.services.serializers import template_to_dict

logger = logging.getLogger(__name__)

ALLOWED_TEMPLATE_FIELDS: set[str] = {
    "name", "description", "html_content", "css_content", "js_content",
    "category", "tags", "is_public", "thumbnail", "version", "status",
}

# columns that are NOT NULL in the templates table
_REQUIRED_TEMPLATE_FIELDS: set[str] = {
    "name", "html_content", "category", "tags", "is_public", "version", "status",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _get(session: Session, template_id: int) -> Template:
    template = session.get(Template, template_id)
    if template is None:
        raise NotFoundError("Template not found")
    return template


def _get_owned(session: Session, template_id: int, user_id: int, verb: str) -> Template:
    template = _get(session, template_id)
    if template.user_id != user_id:
        raise ForbiddenError(f"You do not have permission to {verb} this template")
    return template


def _bump(session: Session, template_id: int, column: str) -> None:
    session.execute(
        update(Template)
        .where(Template.id == template_id)
        .values({column: getattr(Template, column) + 1})
        .execution_options(synchronize_session=False)
    )


def _check_status(status: str | None) -> None:
    if status is not None and status not in {s.value for s in TemplateStatus}:
        raise ValidationError(
            f"Unknown template status: {status!r}",
            details={"allowed": [s.value for s in TemplateStatus]},
        )


def _reject_nulls(data: dict[str, Any]) -> None:
    nulls = sorted(k for k in _REQUIRED_TEMPLATE_FIELDS if k in data and data[k] is None)
    if nulls:
        raise ValidationError(
            f"Template fields cannot be null: {', '.join(nulls)}",
            details={"fields": nulls},
        )


def _commit(session: Session, action: str) -> None:
    """Commit, translating storage failures into the domain taxonomy."""
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Constraint violation during template %s: %s", action, exc.orig)
        raise ConstraintError.from_integrity_error(exc) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Database failure during template %s", action)
        raise InternalError(f"Could not {action} template") from exc


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_templates(
    session: Session,
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    category: str | None = None,
    status: str | None = None,
    is_public: bool | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "DESC",
) -> dict[str, Any]:
    """Paginated, filterable template listing.

    ``sort_by`` takes the camelCase field names in
    :data:`~pagecraft.constants.TEMPLATE_SORT_FIELDS`; anything else is
    rejected rather than passed to ``ORDER BY``.
    """
    if sort_by not in TEMPLATE_SORT_FIELDS:
        raise ValidationError(
            f"Cannot sort templates by {sort_by!r}",
            details={"allowed": sorted(TEMPLATE_SORT_FIELDS)},
        )
    direction = sort_order.upper()
    if direction not in ("ASC", "DESC"):
        raise ValidationError("sortOrder must be ASC or DESC")

    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(or_(
            Template.name.like(pattern),
            Template.description.like(pattern),
            cast(Template.tags, String).like(pattern),
        ))
    if category:
        filters.append(Template.category == category)
    if status:
        filters.append(Template.status == status)
    if is_public is not None:
        filters.append(Template.is_public == is_public)

    column = getattr(Template, TEMPLATE_SORT_FIELDS[sort_by])
    order = asc(column) if direction == "ASC" else desc(column)

    total = session.scalar(select(func.count(Template.id)).where(*filters)) or 0
    rows = session.scalars(
        select(Template)
        .where(*filters)
        .order_by(order, Template.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return {
        "success": True,
        "data": {
            "templates": [template_to_dict(t) for t in rows],
            "pagination": {
                "currentPage": page,
                "totalPages": (total + limit - 1) // limit,
                "totalItems": total,
                "itemsPerPage": limit,
            },
        },
    }


def get_template(engine: Engine, template_id: int) -> dict[str, Any]:
    """Return a template and count the view."""
    with Session(engine, expire_on_commit=False) as session:
        template = _get(session, template_id)
        _bump(session, template.id, "view_count")
        _commit(session, "view")
        session.refresh(template)
        return {"success": True, "data": template_to_dict(template)}


def render_preview(session: Session, template_id: int) -> str:
    """Standalone HTML page showing the template with a preview banner."""
    template = _get(session, template_id)
    title = html.escape(template.name)
    return f"""<!DOCTYPE html>
<html lang="ko">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title} - Preview</title>
    <style>
        {template.css_content or ''}
        .preview-header {{
            position: fixed;
            top: 0;
            left: 0;
            right: 0;
            background: #333;
            color: white;
            padding: 10px;
            text-align: center;
            z-index: 1000;
        }}
        .preview-content {{
            margin-top: 60px;
        }}
    </style>
</head>
<body>
    <div class="preview-header">
        <strong>{title}</strong> - Template preview
        <button onclick="window.close()" style="margin-left: 20px; padding: 5px 10px;">Close</button>
    </div>
    <div class="preview-content">
        {template.html_content}
    </div>
    <script>
        {template.js_content or ''}
    </script>
</body>
</html>"""


def category_stats(session: Session) -> dict[str, Any]:
    """Per-category template count with average views and downloads."""
    count = func.count(Template.id)
    rows = session.execute(
        select(
            Template.category,
            count,
            func.avg(Template.view_count),
            func.avg(Template.download_count),
        )
        .where(Template.category.is_not(None))
        .group_by(Template.category)
        .order_by(desc(count))
    ).all()
    return {
        "success": True,
        "data": [
            {
                "category": category,
                "count": n,
                "avgViews": round(float(avg_views or 0), 2),
                "avgDownloads": round(float(avg_downloads or 0), 2),
            }
            for category, n, avg_views, avg_downloads in rows
        ],
    }


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def create_template(engine: Engine, user_id: int, data: dict[str, Any]) -> dict[str, Any]:
    if not data.get("name") or not data.get("html_content"):
        raise ValidationError("Template name and HTML content are required")
    _check_status(data.get("status"))

    values = {k: v for k, v in data.items() if k in ALLOWED_TEMPLATE_FIELDS and v is not None}
    values.setdefault("tags", [])
    values.setdefault("is_public", True)
    values.setdefault("version", "1.0.0")
    values.setdefault("status", TemplateStatus.DRAFT)

    with Session(engine, expire_on_commit=False) as session:
        template = Template(user_id=user_id, **values)
        session.add(template)
        _commit(session, "create")
        result = template_to_dict(template)

    logger.info("Template %d created by user %d", result["id"], user_id)
    return {"success": True, "message": "Template created", "data": result}


def update_template(
    engine: Engine, template_id: int, user_id: int, data: dict[str, Any]
) -> dict[str, Any]:
    _check_status(data.get("status"))
    _reject_nulls(data)
    if "name" in data and not data["name"]:
        raise ValidationError("Template name cannot be empty")
    if "html_content" in data and not data["html_content"]:
        raise ValidationError("Template HTML content cannot be empty")

    with Session(engine, expire_on_commit=False) as session:
        template = _get_owned(session, template_id, user_id, "modify")
        for key, value in data.items():
            if key in ALLOWED_TEMPLATE_FIELDS:
                setattr(template, key, value)
        _commit(session, "update")
        result = template_to_dict(template)

    logger.info("Template %d updated by user %d", template_id, user_id)
    return {"success": True, "message": "Template updated", "data": result}


def delete_template(engine: Engine, template_id: int, user_id: int) -> dict[str, Any]:
    with Session(engine, expire_on_commit=False) as session:
        template = _get_owned(session, template_id, user_id, "delete")
        session.execute(delete(Like).where(Like.template_id == template.id))
        session.delete(template)
        _commit(session, "delete")

    logger.info("Template %d deleted by user %d", template_id, user_id)
    return {"success": True, "message": "Template deleted"}


def download_template(engine: Engine, template_id: int) -> dict[str, Any]:
    with Session(engine, expire_on_commit=False) as session:
        template = _get(session, template_id)
        _bump(session, template.id, "download_count")
        _commit(session, "download")
        session.refresh(template)
        return {
            "success": True,
            "message": "Download recorded",
            "data": {
                "id": template.id,
                "name": template.name,
                "downloadCount": template.download_count,
            },
        }
