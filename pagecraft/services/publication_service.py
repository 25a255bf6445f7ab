"""
pagecraft.services.publication_service — Public gallery reads
===============================================================

Anonymous read side of publishing.  Writes happen only through
:func:`pagecraft.services.project_service.publish_project` and
:func:`~pagecraft.services.project_service.unpublish_project`.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Engine, desc, func, or_, select, update
from sqlalchemy.orm import Session

from pagecraft.database.models import Publication, PublicationStatus
from pagecraft.errors import NotFoundError
from pagecraft.services.serializers import iso, publication_to_dict


def list_publications(
    session: Session,
    *,
    page: int = 1,
    limit: int = 20,
    search: str | None = None,
) -> dict[str, Any]:
    """Active publications, newest first, optionally matching *search*."""
    filters = [Publication.status == PublicationStatus.ACTIVE]
    if search:
        pattern = f"%{search}%"
        filters.append(or_(Publication.title.like(pattern), Publication.description.like(pattern)))

    total = session.scalar(select(func.count(Publication.id)).where(*filters)) or 0
    rows = session.scalars(
        select(Publication)
        .where(*filters)
        .order_by(desc(Publication.published_at), desc(Publication.id))
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return {
        "publications": [publication_to_dict(p, include_content=False) for p in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
    }


def get_publication_code(
    engine: Engine, publication_id: int, *, version: int | None = None
) -> dict[str, Any]:
    """Return the published HTML and count the view."""
    with Session(engine, expire_on_commit=False) as session:
        filters = [
            Publication.id == publication_id,
            Publication.status == PublicationStatus.ACTIVE,
        ]
        if version is not None:
            filters.append(Publication.version == version)
        publication = session.scalars(select(Publication).where(*filters)).first()
        if publication is None:
            raise NotFoundError("Publication not found")

        session.execute(
            update(Publication)
            .where(Publication.id == publication.id)
            .values(view_count=Publication.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.refresh(publication)

        content = publication.content or {}
        return {
            "success": True,
            "publicationId": publication.id,
            "projectId": publication.project_id,
            "title": publication.title,
            "htmlCode": content.get("htmlCode") or "",
            "publishedAt": iso(publication.published_at),
            "version": publication.version,
            "viewCount": publication.view_count,
        }


def list_publication_versions(session: Session, project_id: int) -> dict[str, Any]:
    rows = session.scalars(
        select(Publication)
        .where(
            Publication.project_id == project_id,
            Publication.status == PublicationStatus.ACTIVE,
        )
        .order_by(desc(Publication.version))
    ).all()
    if not rows:
        raise NotFoundError("Publication not found")

    return {
        "success": True,
        "projectId": project_id,
        "title": rows[0].title,
        "versions": [
            {
                "version": p.version,
                "publishedAt": iso(p.published_at),
                "viewCount": p.view_count,
            }
            for p in rows
        ],
    }
