"""
pagecraft.services.project_service — Project lifecycle
========================================================

A project moves ``draft → published → draft → …`` and may be parked in
``archived`` through a plain update.  Publishing keeps **one** Publication
row per project, upserted in place; unpublishing hard-deletes it.  So at
any committed point::

    project.status == "published"  ⇔  a Publication row with its id exists

Every mutating operation follows the same shape:

  1. Open a session, load the project by ``(id, owner_id)``; a missing row
     and someone else's row both raise :class:`NotFoundError`.
  2. Lock the row (``SELECT … FOR UPDATE``) for publish / unpublish / delete.
  3. Apply the change and commit once.
  4. After the commit, append the Activity + ProjectLog records through
     :mod:`pagecraft.services.audit_service` (best-effort, never raises).

Counters are bumped with ``UPDATE … SET col = col + 1`` so concurrent
views and edits never lose increments.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from sqlalchemy import Engine, delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pagecraft.constants import (
    ALLOWED_PROJECT_FIELDS,
    DEFAULT_LAYOUT,
    DEFAULT_THEME,
    DUPLICATE_SUFFIX,
    default_project_settings,
)
from pagecraft.database.models import (
    Activity,
    ActivityType,
    Project,
    ProjectLog,
    ProjectLogAction,
    ProjectStatus,
    Publication,
    PublicationStatus,
    utcnow,
)
from pagecraft.errors import ConflictError, ConstraintError, InternalError, NotFoundError, ValidationError
from pagecraft.services import audit_service, file_service
from pagecraft.services.audit_service import EMPTY_CONTEXT, RequestContext
from pagecraft.services.serializers import iso, project_to_dict, publication_to_dict

logger = logging.getLogger(__name__)

# Wire names used when reporting which fields an update touched
_FIELD_LABELS = {"is_public": "isPublic", "html_code": "htmlCode"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _get_owned(
    session: Session, project_id: int, owner_id: int, *, lock: bool = False
) -> Project:
    stmt = select(Project).where(Project.id == project_id, Project.owner_id == owner_id)
    if lock:
        stmt = stmt.with_for_update()
    project = session.scalars(stmt).first()
    if project is None:
        raise NotFoundError("Project not found")
    return project


def _commit(session: Session, action: str) -> None:
    """Commit, translating storage failures into the domain taxonomy."""
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Constraint violation during %s: %s", action, exc.orig)
        raise ConstraintError.from_integrity_error(exc) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Database failure during %s", action)
        raise InternalError(f"Could not {action} project") from exc


def _bump(session: Session, project_id: int, **columns: Any) -> None:
    """Atomically add to integer counter columns of one project."""
    session.execute(
        update(Project)
        .where(Project.id == project_id)
        .values({name: getattr(Project, name) + amount for name, amount in columns.items()})
        .execution_options(synchronize_session=False)
    )


def _audit(
    engine: Engine,
    *,
    user_id: int,
    project_id: int | None,
    activity_type: ActivityType,
    action: ProjectLogAction,
    description: str,
    metadata: dict[str, Any],
    context: RequestContext,
) -> None:
    audit_service.record_activity(
        engine,
        user_id=user_id,
        project_id=project_id,
        activity_type=activity_type,
        description=description,
        metadata=metadata,
    )
    audit_service.log_project_action(
        engine,
        user_id=user_id,
        project_id=project_id,
        action=action,
        description=description,
        metadata=metadata,
        context=context,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_projects(engine: Engine, owner_id: int) -> list[dict[str, Any]]:
    """Return the owner's projects, most recently updated first."""
    with Session(engine, expire_on_commit=False) as session:
        rows = session.scalars(
            select(Project)
            .where(Project.owner_id == owner_id)
            .order_by(desc(Project.updated_at), desc(Project.id))
        ).all()
        return [project_to_dict(p) for p in rows]


def view_project(
    engine: Engine, project_id: int, owner_id: int, *, context: RequestContext = EMPTY_CONTEXT
) -> dict[str, Any]:
    """Return one owned project and count the view."""
    with Session(engine, expire_on_commit=False) as session:
        project = _get_owned(session, project_id, owner_id)
        _bump(session, project.id, view_count=1)
        _commit(session, "view")
        session.refresh(project)
        result = project_to_dict(project)

    audit_service.log_project_action(
        engine,
        user_id=owner_id,
        project_id=project_id,
        action=ProjectLogAction.VIEWED,
        description=f'Viewed project "{result["name"]}"',
        metadata={"views": result["stats"]["views"]},
        context=context,
    )
    return result


def get_project_stats(engine: Engine, project_id: int, owner_id: int) -> dict[str, Any]:
    with Session(engine, expire_on_commit=False) as session:
        project = _get_owned(session, project_id, owner_id)
        return {
            **project.stats,
            "projectName": project.name,
            "createdAt": iso(project.created_at),
            "updatedAt": iso(project.updated_at),
            "totalFiles": file_service.count_files_for_owner(session, owner_id),
        }


def get_project_code(engine: Engine, project_id: int, owner_id: int) -> dict[str, Any]:
    with Session(engine, expire_on_commit=False) as session:
        project = _get_owned(session, project_id, owner_id)
        settings = project.settings if isinstance(project.settings, dict) else {}
        return {"content": settings.get("htmlCode") or "", "projectId": project.id}


# ---------------------------------------------------------------------------
# Create / update / duplicate
# ---------------------------------------------------------------------------
def create_project(
    engine: Engine,
    owner_id: int,
    *,
    name: str | None,
    description: str | None = None,
    template_id: str | None = None,
    context: RequestContext = EMPTY_CONTEXT,
) -> dict[str, Any]:
    """Create a draft project with default settings and zeroed counters."""
    if not name or not name.strip():
        raise ValidationError("Project name is required")

    with Session(engine, expire_on_commit=False) as session:
        project = Project(
            name=name.strip(),
            description=description or "",
            template_id=template_id,
            status=ProjectStatus.DRAFT,
            owner_id=owner_id,
            settings=default_project_settings(),
            is_public=False,
            view_count=0,
            edit_count=0,
            publication_count=0,
        )
        session.add(project)
        _commit(session, "create")
        result = project_to_dict(project)

    logger.info("Project %d created by user %d", result["id"], owner_id)
    _audit(
        engine,
        user_id=owner_id,
        project_id=result["id"],
        activity_type=ActivityType.PROJECT_CREATED,
        action=ProjectLogAction.CREATED,
        description=f'Created project "{result["name"]}"',
        metadata={"templateId": template_id},
        context=context,
    )
    return result


def update_project(
    engine: Engine,
    project_id: int,
    owner_id: int,
    patch: dict[str, Any],
    *,
    context: RequestContext = EMPTY_CONTEXT,
) -> dict[str, Any]:
    """Apply the provided fields of *patch* and count the edit.

    ``settings`` is merged shallowly into the stored blob and ``html_code``
    lands in ``settings["htmlCode"]``.  The edit counter moves on every
    call, including calls that change nothing.  Status changes into or
    out of ``published`` must go through publish / unpublish.
    """
    changes = {k: v for k, v in patch.items() if k in ALLOWED_PROJECT_FIELDS}

    with Session(engine, expire_on_commit=False) as session:
        project = _get_owned(session, project_id, owner_id)

        if "name" in changes:
            if not changes["name"] or not str(changes["name"]).strip():
                raise ValidationError("Project name cannot be empty")
            project.name = str(changes["name"]).strip()
        if "description" in changes:
            project.description = changes["description"] or ""
        if "is_public" in changes:
            project.is_public = bool(changes["is_public"])
        if "status" in changes:
            new_status = changes["status"]
            if new_status not in {s.value for s in ProjectStatus}:
                raise ValidationError(
                    f"Unknown project status: {new_status!r}",
                    details={"allowed": [s.value for s in ProjectStatus]},
                )
            crosses_publication = ProjectStatus.PUBLISHED in (project.status, new_status)
            if new_status != project.status and crosses_publication:
                raise ConflictError(
                    "Use publish / unpublish to change publication status",
                    details={"currentStatus": project.status, "requestedStatus": new_status},
                )
            project.status = new_status
        if "settings" in changes or "html_code" in changes:
            merged = dict(project.settings or {})
            merged.update(changes.get("settings") or {})
            if "html_code" in changes:
                merged["htmlCode"] = changes["html_code"]
            project.settings = merged

        _bump(session, project.id, edit_count=1)
        _commit(session, "update")
        session.refresh(project)
        result = project_to_dict(project)

    updated_fields = sorted(_FIELD_LABELS.get(k, k) for k in changes)
    logger.info("Project %d updated (%s)", project_id, ", ".join(updated_fields) or "no fields")
    _audit(
        engine,
        user_id=owner_id,
        project_id=project_id,
        activity_type=ActivityType.PROJECT_UPDATED,
        action=ProjectLogAction.UPDATED,
        description=f'Updated project "{result["name"]}"',
        metadata={"updatedFields": updated_fields},
        context=context,
    )
    return result


def save_project_code(
    engine: Engine,
    project_id: int,
    owner_id: int,
    content: str | None,
    *,
    context: RequestContext = EMPTY_CONTEXT,
) -> dict[str, Any]:
    """Store *content* as the project's ``settings.htmlCode``."""
    if content is None:
        raise ValidationError("HTML content is required")

    with Session(engine, expire_on_commit=False) as session:
        project = _get_owned(session, project_id, owner_id)
        settings = dict(project.settings or {})
        settings["htmlCode"] = content
        project.settings = settings
        name = project.name
        _commit(session, "save code of")

    metadata = {"codeLength": len(content), "updateType": "code"}
    _audit(
        engine,
        user_id=owner_id,
        project_id=project_id,
        activity_type=ActivityType.PROJECT_UPDATED,
        action=ProjectLogAction.UPDATED,
        description=f'Updated the code of project "{name}"',
        metadata=metadata,
        context=context,
    )
    return {"success": True, "message": "HTML code saved", "projectId": project_id}


def duplicate_project(
    engine: Engine, project_id: int, owner_id: int, *, context: RequestContext = EMPTY_CONTEXT
) -> dict[str, Any]:
    """Copy an owned project into a fresh draft."""
    with Session(engine, expire_on_commit=False) as session:
        original = _get_owned(session, project_id, owner_id)
        copy_row = Project(
            name=f"{original.name}{DUPLICATE_SUFFIX}",
            description=original.description,
            template_id=original.template_id,
            status=ProjectStatus.DRAFT,
            owner_id=owner_id,
            settings=copy.deepcopy(original.settings or {}),
            is_public=False,
            view_count=0,
            edit_count=0,
            publication_count=0,
        )
        session.add(copy_row)
        original_name = original.name
        _commit(session, "duplicate")
        result = project_to_dict(copy_row)

    logger.info("Project %d duplicated as %d", project_id, result["id"])
    _audit(
        engine,
        user_id=owner_id,
        project_id=result["id"],
        activity_type=ActivityType.PROJECT_DUPLICATED,
        action=ProjectLogAction.DUPLICATED,
        description=f'Duplicated project "{original_name}"',
        metadata={"originalProjectId": project_id, "originalProjectName": original_name},
        context=context,
    )
    return result


# ---------------------------------------------------------------------------
# Publish / unpublish
# ---------------------------------------------------------------------------
def publish_project(
    engine: Engine, project_id: int, owner_id: int, *, context: RequestContext = EMPTY_CONTEXT
) -> dict[str, Any]:
    """Snapshot the project into its Publication and mark it published.

    The Publication upsert and the project status change commit together.
    An existing publication is overwritten in place and keeps its version.
    """
    with Session(engine, expire_on_commit=False) as session:
        project = _get_owned(session, project_id, owner_id, lock=True)
        publication = session.scalars(
            select(Publication).where(Publication.project_id == project.id).with_for_update()
        ).first()

        settings = copy.deepcopy(project.settings or {})
        now = utcnow()
        # null or missing snapshot fields fall back to the project defaults
        content = {
            "htmlCode": settings.get("htmlCode") or "",
            "settings": settings,
            "templateId": project.template_id,
        }
        metadata = {
            "projectStatus": project.status,
            "isPublic": project.is_public,
            "theme": settings.get("theme") or DEFAULT_THEME,
            "layout": settings.get("layout") or DEFAULT_LAYOUT,
        }

        is_update = publication is not None
        if publication is None:
            publication = Publication(project_id=project.id, user_id=owner_id, version=1)
            session.add(publication)
        publication.title = project.name
        publication.description = project.description
        publication.content = content
        publication.metadata_ = metadata
        publication.published_at = now
        publication.status = PublicationStatus.ACTIVE

        project.status = ProjectStatus.PUBLISHED
        project.last_published_at = now
        project.publication_count = 1

        _commit(session, "publish")
        project_dict = project_to_dict(project)
        publication_dict = publication_to_dict(publication)

    logger.info(
        "Project %d published (publication %d, v%d, %s)",
        project_id, publication_dict["id"], publication_dict["version"],
        "updated" if is_update else "created",
    )
    _audit(
        engine,
        user_id=owner_id,
        project_id=project_id,
        activity_type=ActivityType.PROJECT_PUBLISHED,
        action=ProjectLogAction.PUBLISHED,
        description=f'Published project "{project_dict["name"]}"',
        metadata={
            "publicationId": publication_dict["id"],
            "version": publication_dict["version"],
            "isUpdate": is_update,
        },
        context=context,
    )
    return {
        "success": True,
        "message": "Project published",
        "project": project_dict,
        "publication": publication_dict,
    }


def unpublish_project(
    engine: Engine, project_id: int, owner_id: int, *, context: RequestContext = EMPTY_CONTEXT
) -> dict[str, Any]:
    """Return a published project to draft and drop its Publication row."""
    with Session(engine, expire_on_commit=False) as session:
        project = _get_owned(session, project_id, owner_id, lock=True)
        if project.status != ProjectStatus.PUBLISHED:
            raise ConflictError(
                "Project is not published (already draft)",
                details={"projectId": project.id, "currentStatus": project.status},
            )

        project.status = ProjectStatus.DRAFT
        removed = session.execute(
            delete(Publication).where(Publication.project_id == project.id)
        ).rowcount
        name = project.name
        _commit(session, "unpublish")

    logger.info("Project %d unpublished (%d publication row(s) removed)", project_id, removed or 0)
    _audit(
        engine,
        user_id=owner_id,
        project_id=project_id,
        activity_type=ActivityType.PROJECT_UNPUBLISHED,
        action=ProjectLogAction.UNPUBLISHED,
        description=f'Unpublished project "{name}"',
        metadata={"previousStatus": ProjectStatus.PUBLISHED.value, "newStatus": ProjectStatus.DRAFT.value},
        context=context,
    )
    return {
        "success": True,
        "message": "Project unpublished",
        "projectId": project_id,
        "newStatus": ProjectStatus.DRAFT.value,
    }


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------
def delete_project(
    engine: Engine, project_id: int, owner_id: int, *, context: RequestContext = EMPTY_CONTEXT
) -> dict[str, Any]:
    """Delete an unpublished project in one transaction.

    Removes the project's activities and **all of the owner's file rows**
    (files are not linked to projects).  Audit logs are kept with their
    ``project_id`` cleared.  A project that still has a Publication is
    refused with :class:`ConflictError`.
    """
    with Session(engine, expire_on_commit=False) as session:
        project = _get_owned(session, project_id, owner_id, lock=True)

        publication_count = session.scalar(
            select(func.count(Publication.id)).where(Publication.project_id == project.id)
        ) or 0
        if publication_count:
            raise ConflictError(
                "Published projects cannot be deleted. Unpublish first.",
                details={
                    "hasPublications": True,
                    "publicationCount": publication_count,
                    "projectId": project.id,
                    "projectStatus": project.status,
                },
            )

        name = project.name
        session.execute(delete(Activity).where(Activity.project_id == project.id))
        session.execute(
            update(ProjectLog)
            .where(ProjectLog.project_id == project.id)
            .values(project_id=None)
        )
        files_removed = file_service.delete_files_for_owner(session, owner_id)
        session.delete(project)
        _commit(session, "delete")

    logger.info("Project %d deleted (%d file row(s) removed)", project_id, files_removed)
    metadata = {"projectId": project_id, "projectName": name}
    audit_service.log_project_action(
        engine,
        user_id=owner_id,
        project_id=None,
        action=ProjectLogAction.DELETED,
        description=f'Deleted project "{name}"',
        metadata=metadata,
        context=context,
    )
    audit_service.record_activity(
        engine,
        user_id=owner_id,
        project_id=None,
        activity_type=ActivityType.PROJECT_DELETED,
        description=f'Deleted project "{name}"',
        metadata=metadata,
    )
    return {"success": True, "message": "Project deleted"}
