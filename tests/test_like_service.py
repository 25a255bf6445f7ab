"""
tests/test_like_service.py — Template Like Tests
=================================================
Every operation must leave ``templates.like_count`` equal to the number of
Like rows for that template.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pagecraft.database.models import Like, Template
from pagecraft.errors import NotFoundError
from pagecraft.services import like_service


@pytest.fixture
def engine(db_engine):
    return db_engine


def _assert_count_matches_rows(engine, template_id: int) -> int:
    with Session(engine) as session:
        stored = session.scalar(select(Template.like_count).where(Template.id == template_id))
        rows = session.scalar(
            select(func.count(Like.id)).where(Like.template_id == template_id)
        )
    assert stored == rows
    return stored


class TestToggle:
    def test_like_then_unlike(self, engine, make_user, make_template):
        user = make_user()
        tid = make_template()

        first = like_service.toggle_like(engine, tid, user)
        assert first == {"success": True, "liked": True, "likeCount": 1, "message": "Like added"}
        assert _assert_count_matches_rows(engine, tid) == 1

        second = like_service.toggle_like(engine, tid, user)
        assert second["liked"] is False
        assert second["likeCount"] == 0
        assert _assert_count_matches_rows(engine, tid) == 0

    def test_counts_across_users(self, engine, make_user, make_template):
        tid = make_template()
        users = [make_user() for _ in range(3)]

        for uid in users:
            like_service.toggle_like(engine, tid, uid)
        result = like_service.toggle_like(engine, tid, users[0])

        assert result["likeCount"] == 2
        assert _assert_count_matches_rows(engine, tid) == 2

    def test_likes_are_per_template(self, engine, make_user, make_template):
        user = make_user()
        a, b = make_template("A"), make_template("B")

        like_service.toggle_like(engine, a, user)

        assert _assert_count_matches_rows(engine, a) == 1
        assert _assert_count_matches_rows(engine, b) == 0

    def test_missing_template(self, engine, make_user):
        with pytest.raises(NotFoundError):
            like_service.toggle_like(engine, 777, make_user())


class TestRemove:
    def test_remove_existing_like(self, engine, make_user, make_template):
        user, tid = make_user(), make_template()
        like_service.toggle_like(engine, tid, user)

        result = like_service.remove_like(engine, tid, user)

        assert result["liked"] is False
        assert result["likeCount"] == 0
        assert _assert_count_matches_rows(engine, tid) == 0

    def test_remove_without_like_is_noop(self, engine, make_user, make_template):
        user, other, tid = make_user(), make_user(), make_template()
        like_service.toggle_like(engine, tid, other)

        result = like_service.remove_like(engine, tid, user)

        assert result["message"] == "Template was not liked"
        assert result["likeCount"] == 1
        assert _assert_count_matches_rows(engine, tid) == 1

    def test_missing_template(self, engine, make_user):
        with pytest.raises(NotFoundError):
            like_service.remove_like(engine, 777, make_user())


class TestReads:
    def test_status(self, engine, db_session, make_user, make_template):
        user, tid = make_user(), make_template()
        assert like_service.get_like_status(db_session, tid, user)["liked"] is False

        like_service.toggle_like(engine, tid, user)
        assert like_service.get_like_status(db_session, tid, user)["liked"] is True

    def test_liked_templates(self, engine, db_session, make_user, make_template):
        user = make_user()
        liked = make_template("Liked")
        make_template("Ignored")
        like_service.toggle_like(engine, liked, user)

        result = like_service.list_liked_templates(db_session, user)

        assert [t["name"] for t in result["templates"]] == ["Liked"]
        assert result["templates"][0]["likeCount"] == 1
