"""
pagecraft.services.serializers — ORM row → JSON dict converters
=================================================================

Services return plain dicts with camelCase keys so routes can hand them
straight back to FastAPI.  Every converter must be called while the row's
attributes are loaded (inside the session, or after a commit with
``expire_on_commit=False``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pagecraft.constants import activity_display
from pagecraft.database.models import (
    Activity,
    File,
    Project,
    ProjectLog,
    Publication,
    Template,
)


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def project_to_dict(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "templateId": project.template_id,
        "status": project.status,
        "ownerId": project.owner_id,
        "settings": project.settings or {},
        "stats": project.stats,
        "isPublic": project.is_public,
        "createdAt": iso(project.created_at),
        "updatedAt": iso(project.updated_at),
    }


def publication_to_dict(pub: Publication, *, include_content: bool = True) -> dict[str, Any]:
    result = {
        "id": pub.id,
        "projectId": pub.project_id,
        "userId": pub.user_id,
        "version": pub.version,
        "title": pub.title,
        "description": pub.description,
        "publishedAt": iso(pub.published_at),
        "status": pub.status,
        "metadata": pub.metadata_ or {},
        "viewCount": pub.view_count,
        "downloadCount": pub.download_count,
    }
    if include_content:
        result["content"] = pub.content or {}
    return result


def activity_to_dict(activity: Activity) -> dict[str, Any]:
    display = activity_display(activity.type)
    return {
        "id": activity.id,
        "userId": activity.user_id,
        "projectId": activity.project_id,
        "type": activity.type,
        "description": activity.description,
        "metadata": activity.metadata_ or {},
        "icon": display["icon"],
        "color": display["color"],
        "createdAt": iso(activity.created_at),
    }


def project_log_to_dict(log: ProjectLog) -> dict[str, Any]:
    return {
        "id": log.id,
        "projectId": log.project_id,
        "userId": log.user_id,
        "action": log.action,
        "description": log.description,
        "metadata": log.metadata_ or {},
        "ipAddress": log.ip_address,
        "userAgent": log.user_agent,
        "createdAt": iso(log.created_at),
    }


def template_to_dict(template: Template, *, include_content: bool = True) -> dict[str, Any]:
    result = {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "category": template.category,
        "tags": template.tags or [],
        "isPublic": template.is_public,
        "thumbnail": template.thumbnail,
        "version": template.version,
        "downloadCount": template.download_count,
        "viewCount": template.view_count,
        "likeCount": template.like_count,
        "status": template.status,
        "userId": template.user_id,
        "createdAt": iso(template.created_at),
        "updatedAt": iso(template.updated_at),
    }
    if include_content:
        result["htmlContent"] = template.html_content
        result["cssContent"] = template.css_content
        result["jsContent"] = template.js_content
    return result


def file_to_dict(file: File) -> dict[str, Any]:
    return {
        "id": file.id,
        "userId": file.user_id,
        "filename": file.filename,
        "originalName": file.original_name,
        "path": file.path,
        "size": file.size,
        "mimeType": file.mime_type,
        "description": file.description,
        "isPublic": file.is_public,
        "createdAt": iso(file.created_at),
    }
