"""
pagecraft.services.file_service — Owner-scoped file metadata
==============================================================

Upload handling lives outside this service; only the metadata rows are
read here.  Files carry no project link, so every query is by owner.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.orm import Session

from pagecraft.database.models import File
from pagecraft.services.serializers import file_to_dict


def list_files_for_owner(session: Session, owner_id: int) -> list[dict[str, Any]]:
    rows = session.scalars(
        select(File).where(File.user_id == owner_id).order_by(desc(File.created_at), desc(File.id))
    ).all()
    return [file_to_dict(f) for f in rows]


def count_files_for_owner(session: Session, owner_id: int) -> int:
    return session.scalar(select(func.count(File.id)).where(File.user_id == owner_id)) or 0


def delete_files_for_owner(session: Session, owner_id: int) -> int:
    """Delete every File row of *owner_id* in the caller's transaction.

    Returns the number of rows removed.  Does not commit.
    """
    result = session.execute(delete(File).where(File.user_id == owner_id))
    return result.rowcount or 0
