"""
pagecraft.constants — Shared Constants & Helpers
==================================================

Single source of truth for project defaults and activity presentation.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Project defaults
# ---------------------------------------------------------------------------
DEFAULT_THEME = "default"
DEFAULT_LAYOUT = "standard"

# Appended to the name of a duplicated project ("(copy)" in Korean).
DUPLICATE_SUFFIX = " (복제)"


def default_project_settings() -> dict[str, Any]:
    """Fresh settings blob for a new project (never share the dict)."""
    return {"theme": DEFAULT_THEME, "layout": DEFAULT_LAYOUT, "htmlCode": ""}


# Fields a client may change through ``PUT /projects/{id}``
ALLOWED_PROJECT_FIELDS: set[str] = {
    "name", "description", "status", "is_public", "settings", "html_code",
}


# ---------------------------------------------------------------------------
# Activity presentation (icon + colour per activity type)
# ---------------------------------------------------------------------------
ACTIVITY_DISPLAY: dict[str, dict[str, str]] = {
    "project_created": {"icon": "✨", "color": "green"},
    "project_updated": {"icon": "✏️", "color": "blue"},
    "project_published": {"icon": "\U0001f680", "color": "purple"},
    "project_unpublished": {"icon": "⏸️", "color": "orange"},
    "project_deleted": {"icon": "\U0001f5d1️", "color": "red"},
    "project_duplicated": {"icon": "\U0001f4cb", "color": "orange"},
    "file_uploaded": {"icon": "\U0001f4c1", "color": "teal"},
    "file_updated": {"icon": "\U0001f4dd", "color": "indigo"},
    "code_updated": {"icon": "\U0001f4bb", "color": "cyan"},
    "publication_created": {"icon": "\U0001f4e2", "color": "purple"},
    "publication_archived": {"icon": "\U0001f4e6", "color": "gray"},
}

_FALLBACK_DISPLAY = {"icon": "\U0001f4dd", "color": "gray"}


def activity_display(activity_type: str) -> dict[str, str]:
    """Return the ``{icon, color}`` hint for *activity_type*."""
    return dict(ACTIVITY_DISPLAY.get(activity_type, _FALLBACK_DISPLAY))


# ---------------------------------------------------------------------------
# Template listing
# ---------------------------------------------------------------------------
# Maps the camelCase ``sortBy`` query value to a Template attribute name.
TEMPLATE_SORT_FIELDS: dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "viewCount": "view_count",
    "downloadCount": "download_count",
    "likeCount": "like_count",
}
