"""
tests/test_project_service.py — Project Lifecycle Service Tests
================================================================
Covers create / view / update / duplicate / publish / unpublish / delete
against an in-memory SQLite database, including the audit side effects
and the "published ⇔ publication row exists" invariant.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from pagecraft.database.models import (
    Activity,
    File,
    Project,
    ProjectLog,
    Publication,
)
from pagecraft.errors import (
    ConflictError,
    ConstraintError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from pagecraft.services import project_service, publication_service
from pagecraft.services.audit_service import RequestContext


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def owner(make_user):
    return make_user("Owner")


@pytest.fixture
def project(engine, owner):
    return project_service.create_project(engine, owner, name="Site A")


def _publication_rows(engine, project_id: int) -> list[Publication]:
    with Session(engine) as session:
        return list(session.scalars(
            select(Publication).where(Publication.project_id == project_id)
        ).all())


def _assert_status_matches_publication(engine, project_id: int) -> None:
    with Session(engine) as session:
        status = session.scalar(select(Project.status).where(Project.id == project_id))
        pubs = session.scalar(
            select(func.count(Publication.id)).where(Publication.project_id == project_id)
        )
    assert (status == "published") == (pubs == 1)
    assert pubs <= 1


def _activities(engine, **filters) -> list[Activity]:
    with Session(engine) as session:
        stmt = select(Activity).order_by(Activity.id)
        for key, value in filters.items():
            stmt = stmt.where(getattr(Activity, key) == value)
        return list(session.scalars(stmt).all())


def _logs(engine, **filters) -> list[ProjectLog]:
    with Session(engine) as session:
        stmt = select(ProjectLog).order_by(ProjectLog.id)
        for key, value in filters.items():
            stmt = stmt.where(getattr(ProjectLog, key) == value)
        return list(session.scalars(stmt).all())


# ===========================================================================
# End-to-end scenario
# ===========================================================================
class TestLifecycleScenario:
    def test_create_view_edit_publish_unpublish_delete(self, engine, owner):
        created = project_service.create_project(engine, owner, name="Site A")
        assert created["stats"]["views"] == 0
        assert created["stats"]["edits"] == 0
        assert created["stats"]["lastPublished"] is None
        pid = created["id"]

        viewed = project_service.view_project(engine, pid, owner)
        assert viewed["stats"]["views"] == 1

        edited = project_service.update_project(engine, pid, owner, {"description": "x"})
        assert edited["stats"]["edits"] == 1
        assert edited["description"] == "x"

        first = project_service.publish_project(engine, pid, owner)
        assert first["project"]["status"] == "published"
        assert first["publication"]["version"] == 1
        _assert_status_matches_publication(engine, pid)

        second = project_service.publish_project(engine, pid, owner)
        assert second["publication"]["version"] == 1
        assert second["publication"]["id"] == first["publication"]["id"]
        assert len(_publication_rows(engine, pid)) == 1

        unpublished = project_service.unpublish_project(engine, pid, owner)
        assert unpublished == {
            "success": True,
            "message": "Project unpublished",
            "projectId": pid,
            "newStatus": "draft",
        }
        assert _publication_rows(engine, pid) == []
        _assert_status_matches_publication(engine, pid)

        deleted = project_service.delete_project(engine, pid, owner)
        assert deleted["success"] is True
        with Session(engine) as session:
            assert session.get(Project, pid) is None


# ===========================================================================
# create
# ===========================================================================
class TestCreate:
    def test_defaults(self, project):
        assert project["status"] == "draft"
        assert project["isPublic"] is False
        assert project["description"] == ""
        assert project["settings"] == {"theme": "default", "layout": "standard", "htmlCode": ""}

    def test_keeps_template_reference(self, engine, owner):
        result = project_service.create_project(
            engine, owner, name="From template", description="d", template_id="tpl-7"
        )
        assert result["templateId"] == "tpl-7"
        assert result["description"] == "d"

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_requires_name(self, engine, owner, name):
        with pytest.raises(ValidationError, match="name is required"):
            project_service.create_project(engine, owner, name=name)

    def test_writes_activity_and_log(self, engine, owner):
        ctx = RequestContext(ip_address="203.0.113.9", user_agent="pytest-agent")
        result = project_service.create_project(engine, owner, name="Audited", context=ctx)

        activities = _activities(engine, project_id=result["id"])
        assert [a.type for a in activities] == ["project_created"]

        logs = _logs(engine, project_id=result["id"])
        assert [log.action for log in logs] == ["created"]
        assert logs[0].ip_address == "203.0.113.9"
        assert logs[0].user_agent == "pytest-agent"


# ===========================================================================
# view
# ===========================================================================
class TestView:
    def test_other_user_gets_not_found(self, engine, project, make_user):
        stranger = make_user("Stranger")
        with pytest.raises(NotFoundError):
            project_service.view_project(engine, project["id"], stranger)

        # the failed lookup does not count as a view
        again = project_service.view_project(engine, project["id"], project["ownerId"])
        assert again["stats"]["views"] == 1

    def test_missing_project_is_not_found(self, engine, owner):
        with pytest.raises(NotFoundError):
            project_service.view_project(engine, 9999, owner)

    def test_each_view_counts_and_logs(self, engine, owner, project):
        for _ in range(3):
            result = project_service.view_project(engine, project["id"], owner)
        assert result["stats"]["views"] == 3
        assert len(_logs(engine, project_id=project["id"], action="viewed")) == 3


# ===========================================================================
# update
# ===========================================================================
class TestUpdate:
    def test_settings_are_merged_shallowly(self, engine, owner, project):
        result = project_service.update_project(
            engine, project["id"], owner, {"settings": {"theme": "dark", "font": "serif"}}
        )
        assert result["settings"] == {
            "theme": "dark",
            "layout": "standard",
            "htmlCode": "",
            "font": "serif",
        }

    def test_html_code_lands_in_settings(self, engine, owner, project):
        result = project_service.update_project(
            engine, project["id"], owner, {"html_code": "<p>hi</p>"}
        )
        assert result["settings"]["htmlCode"] == "<p>hi</p>"
        assert result["settings"]["theme"] == "default"

    def test_empty_patch_still_counts_edit(self, engine, owner, project):
        project_service.update_project(engine, project["id"], owner, {})
        result = project_service.update_project(engine, project["id"], owner, {})
        assert result["stats"]["edits"] == 2

    def test_unknown_fields_are_ignored(self, engine, owner, project):
        result = project_service.update_project(
            engine, project["id"], owner, {"owner_id": 999, "name": "Renamed"}
        )
        assert result["ownerId"] == owner
        assert result["name"] == "Renamed"

    def test_archive_through_update(self, engine, owner, project):
        result = project_service.update_project(engine, project["id"], owner, {"status": "archived"})
        assert result["status"] == "archived"

    def test_cannot_publish_through_update(self, engine, owner, project):
        with pytest.raises(ConflictError):
            project_service.update_project(engine, project["id"], owner, {"status": "published"})
        _assert_status_matches_publication(engine, project["id"])

    def test_cannot_leave_published_through_update(self, engine, owner, project):
        project_service.publish_project(engine, project["id"], owner)
        with pytest.raises(ConflictError):
            project_service.update_project(engine, project["id"], owner, {"status": "draft"})
        _assert_status_matches_publication(engine, project["id"])

    def test_unknown_status_rejected(self, engine, owner, project):
        with pytest.raises(ValidationError):
            project_service.update_project(engine, project["id"], owner, {"status": "live"})

    def test_blank_name_rejected(self, engine, owner, project):
        with pytest.raises(ValidationError):
            project_service.update_project(engine, project["id"], owner, {"name": "  "})

    def test_records_updated_fields(self, engine, owner, project):
        project_service.update_project(
            engine, project["id"], owner, {"is_public": True, "description": "new"}
        )
        activity = _activities(engine, project_id=project["id"], type="project_updated")[0]
        assert activity.metadata_["updatedFields"] == ["description", "isPublic"]
        assert _logs(engine, project_id=project["id"], action="updated")

    def test_other_user_gets_not_found(self, engine, project, make_user):
        with pytest.raises(NotFoundError):
            project_service.update_project(engine, project["id"], make_user(), {"name": "x"})


# ===========================================================================
# duplicate
# ===========================================================================
class TestDuplicate:
    def test_copy_is_fresh_private_draft(self, engine, owner, project):
        project_service.update_project(
            engine, project["id"], owner, {"is_public": True, "html_code": "<b>A</b>"}
        )
        project_service.publish_project(engine, project["id"], owner)

        copy_ = project_service.duplicate_project(engine, project["id"], owner)

        assert copy_["id"] != project["id"]
        assert copy_["name"] == "Site A (복제)"
        assert copy_["status"] == "draft"
        assert copy_["isPublic"] is False
        assert copy_["settings"]["htmlCode"] == "<b>A</b>"
        assert copy_["stats"] == {
            "views": 0, "edits": 0, "lastPublished": None, "publicationCount": 0,
        }
        assert _publication_rows(engine, copy_["id"]) == []

    def test_settings_are_independent(self, engine, owner, project):
        copy_ = project_service.duplicate_project(engine, project["id"], owner)
        project_service.update_project(engine, copy_["id"], owner, {"settings": {"theme": "neon"}})

        original = project_service.view_project(engine, project["id"], owner)
        assert original["settings"]["theme"] == "default"

    def test_audit_references_original(self, engine, owner, project):
        copy_ = project_service.duplicate_project(engine, project["id"], owner)
        activity = _activities(engine, project_id=copy_["id"], type="project_duplicated")[0]
        assert activity.metadata_["originalProjectId"] == project["id"]
        log = _logs(engine, project_id=copy_["id"], action="duplicated")[0]
        assert log.metadata_["originalProjectId"] == project["id"]

    def test_other_user_gets_not_found(self, engine, project, make_user):
        with pytest.raises(NotFoundError):
            project_service.duplicate_project(engine, project["id"], make_user())


# ===========================================================================
# publish
# ===========================================================================
class TestPublish:
    def test_snapshot_captures_content(self, engine, owner, project):
        project_service.update_project(
            engine, project["id"], owner,
            {"html_code": "<main>v1</main>", "settings": {"theme": "dark"}},
        )
        result = project_service.publish_project(engine, project["id"], owner)

        pub = result["publication"]
        assert pub["title"] == "Site A"
        assert pub["status"] == "active"
        assert pub["content"]["htmlCode"] == "<main>v1</main>"
        assert pub["content"]["settings"]["theme"] == "dark"
        assert pub["metadata"]["projectStatus"] == "draft"
        assert pub["metadata"]["theme"] == "dark"
        assert result["project"]["stats"]["publicationCount"] == 1
        assert result["project"]["stats"]["lastPublished"] is not None

    def test_null_settings_fall_back_to_defaults(self, engine, owner, project):
        project_service.update_project(
            engine, project["id"], owner,
            {"html_code": None, "settings": {"theme": None, "layout": None}},
        )
        pub = project_service.publish_project(engine, project["id"], owner)["publication"]

        assert pub["content"]["htmlCode"] == ""
        assert pub["metadata"]["theme"] == "default"
        assert pub["metadata"]["layout"] == "standard"
        code = publication_service.get_publication_code(engine, pub["id"])
        assert code["htmlCode"] == ""

    def test_republish_overwrites_snapshot(self, engine, owner, project):
        project_service.update_project(engine, project["id"], owner, {"html_code": "v1"})
        project_service.publish_project(engine, project["id"], owner)
        project_service.update_project(engine, project["id"], owner, {"html_code": "v2"})
        result = project_service.publish_project(engine, project["id"], owner)

        rows = _publication_rows(engine, project["id"])
        assert len(rows) == 1
        assert rows[0].content["htmlCode"] == "v2"
        assert rows[0].version == 1
        assert result["publication"]["metadata"]["projectStatus"] == "published"

    def test_audit_carries_publication_id_and_version(self, engine, owner, project):
        result = project_service.publish_project(engine, project["id"], owner)
        activity = _activities(engine, project_id=project["id"], type="project_published")[0]
        assert activity.metadata_["publicationId"] == result["publication"]["id"]
        assert activity.metadata_["version"] == 1
        log = _logs(engine, project_id=project["id"], action="published")[0]
        assert log.metadata_["publicationId"] == result["publication"]["id"]

    def test_other_user_gets_not_found(self, engine, project, make_user):
        with pytest.raises(NotFoundError):
            project_service.publish_project(engine, project["id"], make_user())
        assert _publication_rows(engine, project["id"]) == []

    def test_publish_survives_audit_failure(self, engine, owner, project):
        Activity.__table__.drop(engine)
        ProjectLog.__table__.drop(engine)

        result = project_service.publish_project(engine, project["id"], owner)

        assert result["success"] is True
        _assert_status_matches_publication(engine, project["id"])


# ===========================================================================
# unpublish
# ===========================================================================
class TestUnpublish:
    def test_second_unpublish_conflicts(self, engine, owner, project):
        project_service.publish_project(engine, project["id"], owner)
        project_service.unpublish_project(engine, project["id"], owner)

        with pytest.raises(ConflictError, match="already draft") as exc_info:
            project_service.unpublish_project(engine, project["id"], owner)
        assert exc_info.value.details["currentStatus"] == "draft"
        _assert_status_matches_publication(engine, project["id"])

    def test_draft_cannot_be_unpublished(self, engine, owner, project):
        with pytest.raises(ConflictError):
            project_service.unpublish_project(engine, project["id"], owner)

    def test_writes_unpublished_audit(self, engine, owner, project):
        project_service.publish_project(engine, project["id"], owner)
        project_service.unpublish_project(engine, project["id"], owner)
        assert _activities(engine, project_id=project["id"], type="project_unpublished")
        assert _logs(engine, project_id=project["id"], action="unpublished")

    def test_other_user_gets_not_found(self, engine, owner, project, make_user):
        project_service.publish_project(engine, project["id"], owner)
        with pytest.raises(NotFoundError):
            project_service.unpublish_project(engine, project["id"], make_user())
        assert len(_publication_rows(engine, project["id"])) == 1


# ===========================================================================
# delete
# ===========================================================================
class TestDelete:
    def test_published_project_is_refused(self, engine, owner, project):
        project_service.publish_project(engine, project["id"], owner)

        with pytest.raises(ConflictError) as exc_info:
            project_service.delete_project(engine, project["id"], owner)

        details = exc_info.value.details
        assert details["hasPublications"] is True
        assert details["publicationCount"] == 1
        assert details["projectStatus"] == "published"
        with Session(engine) as session:
            assert session.get(Project, project["id"]) is not None

    def test_purges_activities_and_keeps_logs(self, engine, owner, project):
        pid = project["id"]
        project_service.view_project(engine, pid, owner)
        project_service.update_project(engine, pid, owner, {"description": "y"})

        project_service.delete_project(engine, pid, owner)

        assert _activities(engine, project_id=pid) == []
        assert _logs(engine, project_id=pid) == []
        orphaned = _logs(engine, user_id=owner)
        assert {log.action for log in orphaned} >= {"created", "viewed", "updated", "deleted"}
        assert all(log.project_id is None for log in orphaned)

        deleted_log = [log for log in orphaned if log.action == "deleted"][0]
        assert deleted_log.metadata_ == {"projectId": pid, "projectName": "Site A"}
        deleted_activity = _activities(engine, type="project_deleted")[0]
        assert deleted_activity.project_id is None
        assert deleted_activity.metadata_["projectId"] == pid

    def test_removes_all_of_the_owners_files(self, engine, owner, project, make_user, make_file):
        other = make_user("Other")
        make_file(owner, "a.png")
        make_file(owner, "b.png")
        kept = make_file(other, "c.png")

        project_service.delete_project(engine, project["id"], owner)

        with Session(engine) as session:
            remaining = session.scalars(select(File.id)).all()
        assert remaining == [kept]

    def test_other_user_gets_not_found(self, engine, project, make_user):
        with pytest.raises(NotFoundError):
            project_service.delete_project(engine, project["id"], make_user())


# ===========================================================================
# commit failures roll back and translate
# ===========================================================================
def _disk_error() -> OperationalError:
    return OperationalError("COMMIT", {}, Exception("disk I/O error"))


def _fk_violation() -> IntegrityError:
    orig = Exception("update or delete violates foreign key constraint")
    orig.diag = SimpleNamespace(table_name="files", constraint_name="files_user_id_fkey")
    return IntegrityError("DELETE FROM projects", {}, orig)


class TestCommitFailures:
    def test_publish_rolls_back(self, engine, owner, project, fail_next_commit):
        fail_next_commit(_disk_error())

        with pytest.raises(InternalError, match="Could not publish project"):
            project_service.publish_project(engine, project["id"], owner)

        assert _publication_rows(engine, project["id"]) == []
        with Session(engine) as session:
            assert session.get(Project, project["id"]).status == "draft"
        assert _activities(engine, type="project_published") == []

    def test_unpublish_rolls_back(self, engine, owner, project, fail_next_commit):
        project_service.publish_project(engine, project["id"], owner)
        fail_next_commit(_disk_error())

        with pytest.raises(InternalError, match="Could not unpublish project"):
            project_service.unpublish_project(engine, project["id"], owner)

        assert len(_publication_rows(engine, project["id"])) == 1
        _assert_status_matches_publication(engine, project["id"])
        with Session(engine) as session:
            assert session.get(Project, project["id"]).status == "published"

    def test_delete_rolls_back(self, engine, owner, project, make_file, fail_next_commit):
        pid = project["id"]
        file_id = make_file(owner)
        activities_before = len(_activities(engine, project_id=pid))
        logs_before = len(_logs(engine, project_id=pid))
        fail_next_commit(_disk_error())

        with pytest.raises(InternalError, match="Could not delete project"):
            project_service.delete_project(engine, pid, owner)

        with Session(engine) as session:
            assert session.get(Project, pid) is not None
            assert session.get(File, file_id) is not None
        assert len(_activities(engine, project_id=pid)) == activities_before
        assert len(_logs(engine, project_id=pid)) == logs_before
        assert _logs(engine, action="deleted") == []

    def test_delete_integrity_error_becomes_constraint_error(
        self, engine, owner, project, fail_next_commit
    ):
        fail_next_commit(_fk_violation())

        with pytest.raises(ConstraintError) as exc_info:
            project_service.delete_project(engine, project["id"], owner)

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {
            "constraintError": True,
            "table": "files",
            "constraint": "files_user_id_fkey",
        }
        with Session(engine) as session:
            assert session.get(Project, project["id"]) is not None


# ===========================================================================
# stats / code / listing
# ===========================================================================
class TestReads:
    def test_list_only_own_projects(self, engine, owner, project, make_user):
        other = make_user()
        project_service.create_project(engine, other, name="Theirs")
        second = project_service.create_project(engine, owner, name="Site B")

        names = [p["name"] for p in project_service.list_projects(engine, owner)]
        assert sorted(names) == ["Site A", "Site B"]
        assert second["id"] in [p["id"] for p in project_service.list_projects(engine, owner)]

    def test_stats_include_file_total(self, engine, owner, project, make_file):
        make_file(owner)
        project_service.view_project(engine, project["id"], owner)

        stats = project_service.get_project_stats(engine, project["id"], owner)
        assert stats["views"] == 1
        assert stats["projectName"] == "Site A"
        assert stats["totalFiles"] == 1

    def test_code_round_trip(self, engine, owner, project):
        saved = project_service.save_project_code(engine, project["id"], owner, "<html>ok</html>")
        assert saved["success"] is True

        code = project_service.get_project_code(engine, project["id"], owner)
        assert code == {"content": "<html>ok</html>", "projectId": project["id"]}

        activity = _activities(engine, project_id=project["id"], type="project_updated")[-1]
        assert activity.metadata_ == {"codeLength": 15, "updateType": "code"}

    def test_save_code_requires_content(self, engine, owner, project):
        with pytest.raises(ValidationError):
            project_service.save_project_code(engine, project["id"], owner, None)
