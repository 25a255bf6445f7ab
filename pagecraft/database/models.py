"""
pagecraft.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- users         — Account identity (auth itself lives outside this service)
- projects      — A user's editable website; content lives in ``settings``
- publications  — Current published snapshot of a project (one per project)
- activities    — Append-only dashboard timeline
- project_logs  — Append-only audit trail with network metadata
- templates     — Shared template library with denormalized counters
- likes         — One like per (user, template)
- files         — Uploaded file metadata, scoped by owner only
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Pagecraft ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ProjectStatus(enum.StrEnum):
    """Project lifecycle states."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class PublicationStatus(enum.StrEnum):
    """Unpublish hard-deletes the row, so a stored publication is always live."""
    ACTIVE = "active"


class ActivityType(enum.StrEnum):
    """Dashboard timeline event kinds."""
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_PUBLISHED = "project_published"
    PROJECT_UNPUBLISHED = "project_unpublished"
    PROJECT_DELETED = "project_deleted"
    PROJECT_DUPLICATED = "project_duplicated"
    FILE_UPLOADED = "file_uploaded"
    FILE_UPDATED = "file_updated"
    CODE_UPDATED = "code_updated"
    PUBLICATION_CREATED = "publication_created"
    PUBLICATION_ARCHIVED = "publication_archived"


class ProjectLogAction(enum.StrEnum):
    """Audit-trail actions recorded in project_logs."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    PUBLISHED = "published"
    UNPUBLISHED = "unpublished"
    VIEWED = "viewed"
    DUPLICATED = "duplicated"


class TemplateStatus(enum.StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    projects: Mapped[list[Project]] = relationship(back_populates="owner")

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} active={self.is_active}>"


# ---------------------------------------------------------------------------
# Project — counters are plain integer columns so they can be bumped with
# ``UPDATE … SET col = col + 1``; the ``stats`` dict is assembled on read.
# ---------------------------------------------------------------------------
class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProjectStatus.DRAFT
    )
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    settings: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)

    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    edit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    publication_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    owner: Mapped[User] = relationship(back_populates="projects")

    __table_args__ = (
        Index("ix_projects_owner_created", "owner_id", "created_at"),
        Index("ix_projects_status", "status"),
        Index("ix_projects_is_public", "is_public"),
    )

    @property
    def stats(self) -> dict[str, Any]:
        """Counter view in the ``{views, edits, lastPublished, publicationCount}`` shape."""
        return {
            "views": self.view_count or 0,
            "edits": self.edit_count or 0,
            "lastPublished": (
                self.last_published_at.isoformat() if self.last_published_at else None
            ),
            "publicationCount": self.publication_count or 0,
        }

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name!r} status={self.status}>"


# ---------------------------------------------------------------------------
# Publication — exactly one row per published project
# ---------------------------------------------------------------------------
class Publication(Base):
    __tablename__ = "publications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PublicationStatus.ACTIVE
    )
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONType, nullable=True)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("project_id", name="uq_publications_project"),
        Index("ix_publications_user_published", "user_id", "published_at"),
        Index("ix_publications_status_published", "status", "published_at"),
    )

    def __repr__(self) -> str:
        return f"<Publication id={self.id} project={self.project_id} v={self.version}>"


# ---------------------------------------------------------------------------
# Activity — append-only timeline; icon/colour derived from ``type`` on read
# ---------------------------------------------------------------------------
class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
        Index("ix_activities_project", "project_id"),
        Index("ix_activities_type", "type"),
    )

    def __repr__(self) -> str:
        return f"<Activity id={self.id} user={self.user_id} type={self.type}>"


# ---------------------------------------------------------------------------
# ProjectLog — audit trail; survives project deletion (project_id → NULL)
# ---------------------------------------------------------------------------
class ProjectLog(Base):
    __tablename__ = "project_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONType, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_project_logs_project", "project_id"),
        Index("ix_project_logs_user", "user_id"),
        Index("ix_project_logs_action", "action"),
        Index("ix_project_logs_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ProjectLog id={self.id} project={self.project_id} action={self.action}>"


# ---------------------------------------------------------------------------
# Template — shared library item; ``like_count`` mirrors COUNT(likes)
# ---------------------------------------------------------------------------
class Template(Base):
    __tablename__ = "templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_content: Mapped[str] = mapped_column(Text, nullable=False)
    css_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    js_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    thumbnail: Mapped[str | None] = mapped_column(String(500), nullable=True)
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0.0")
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TemplateStatus.DRAFT
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_templates_category", "category"),
        Index("ix_templates_status", "status"),
        Index("ix_templates_is_public", "is_public"),
        Index("ix_templates_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Template id={self.id} name={self.name!r} likes={self.like_count}>"


# ---------------------------------------------------------------------------
# Like — one per (user, template)
# ---------------------------------------------------------------------------
class Like(Base):
    __tablename__ = "likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    template_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    template: Mapped[Template] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "template_id", name="uq_likes_user_template"),
        Index("ix_likes_template", "template_id"),
    )

    def __repr__(self) -> str:
        return f"<Like user={self.user_id} template={self.template_id}>"


# ---------------------------------------------------------------------------
# File — metadata only; there is no project link, files belong to a user
# ---------------------------------------------------------------------------
class File(Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_files_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<File id={self.id} user={self.user_id} name={self.original_name!r}>"
