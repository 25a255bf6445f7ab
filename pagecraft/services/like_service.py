"""
pagecraft.services.like_service — Per-user template likes
===========================================================

``templates.like_count`` must always equal ``COUNT(likes)`` for that
template.  The Like row change and the counter change therefore commit in
the same transaction, and the counter moves with ``SET like_count =
like_count ± 1`` under a lock on the template row.

The Like insert runs inside a SAVEPOINT so that a concurrent request that
got there first (unique ``(user_id, template_id)`` violation) is treated
as "already liked" without a second increment.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Engine, desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pagecraft.database.models import Like, Template
from pagecraft.errors import NotFoundError
from pagecraft.services.serializers import iso

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _lock_template(session: Session, template_id: int) -> Template:
    template = session.scalars(
        select(Template).where(Template.id == template_id).with_for_update()
    ).first()
    if template is None:
        raise NotFoundError("Template not found")
    return template


def _find_like(session: Session, template_id: int, user_id: int) -> Like | None:
    return session.scalars(
        select(Like).where(Like.user_id == user_id, Like.template_id == template_id)
    ).first()


def _shift_like_count(session: Session, template_id: int, delta: int) -> None:
    session.execute(
        update(Template)
        .where(Template.id == template_id)
        .values(like_count=Template.like_count + delta)
        .execution_options(synchronize_session=False)
    )


def _add_like(session: Session, template_id: int, user_id: int) -> bool:
    """Insert the Like row.  Returns ``False`` if it already existed."""
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(Like(user_id=user_id, template_id=template_id))
            session.flush()
    except IntegrityError:
        # A concurrent request inserted the same like first.
        return False
    _shift_like_count(session, template_id, +1)
    return True


def _remove_like(session: Session, like: Like) -> None:
    template_id = like.template_id
    session.delete(like)
    session.flush()
    _shift_like_count(session, template_id, -1)


def _current_count(session: Session, template_id: int) -> int:
    return session.scalar(select(Template.like_count).where(Template.id == template_id)) or 0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def toggle_like(engine: Engine, template_id: int, user_id: int) -> dict[str, Any]:
    """Like the template if the user hasn't yet, otherwise take the like back."""
    with Session(engine, expire_on_commit=False) as session:
        _lock_template(session, template_id)
        existing = _find_like(session, template_id, user_id)
        if existing is not None:
            _remove_like(session, existing)
            liked = False
        else:
            _add_like(session, template_id, user_id)
            liked = True
        session.commit()
        like_count = _current_count(session, template_id)

    logger.info(
        "User %d %s template %d (likes=%d)",
        user_id, "liked" if liked else "unliked", template_id, like_count,
    )
    return {
        "success": True,
        "liked": liked,
        "likeCount": like_count,
        "message": "Like added" if liked else "Like removed",
    }


def remove_like(engine: Engine, template_id: int, user_id: int) -> dict[str, Any]:
    """Take back the user's like; a no-op if there is none."""
    with Session(engine, expire_on_commit=False) as session:
        _lock_template(session, template_id)
        existing = _find_like(session, template_id, user_id)
        if existing is not None:
            _remove_like(session, existing)
        session.commit()
        like_count = _current_count(session, template_id)

    return {
        "success": True,
        "liked": False,
        "likeCount": like_count,
        "message": "Like removed" if existing is not None else "Template was not liked",
    }


def get_like_status(session: Session, template_id: int, user_id: int) -> dict[str, Any]:
    return {"success": True, "liked": _find_like(session, template_id, user_id) is not None}


def list_liked_templates(session: Session, user_id: int) -> dict[str, Any]:
    """Templates the user has liked, most recently liked first."""
    rows = session.scalars(
        select(Template)
        .join(Like, Like.template_id == Template.id)
        .where(Like.user_id == user_id)
        .order_by(desc(Like.created_at), desc(Like.id))
    ).all()
    return {
        "success": True,
        "templates": [
            {
                "id": t.id,
                "name": t.name,
                "description": t.description,
                "category": t.category,
                "thumbnail": t.thumbnail,
                "likeCount": t.like_count,
                "viewCount": t.view_count,
                "createdAt": iso(t.created_at),
            }
            for t in rows
        ],
    }
