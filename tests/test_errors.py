"""
tests/test_errors.py — Error Taxonomy
======================================
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from pagecraft.errors import (
    ConflictError,
    ConstraintError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)


@pytest.mark.parametrize("cls,status", [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (ConflictError, 400),
    (InternalError, 500),
])
def test_status_codes(cls, status):
    err = cls("boom")
    assert err.status_code == status
    assert err.message == "boom"
    assert err.details == {}


def test_details_are_kept():
    err = ConflictError("no", details={"projectId": 3})
    assert err.details == {"projectId": 3}


class TestConstraintError:
    def test_names_table_and_constraint_from_driver_diag(self):
        orig = Exception("fk violation")
        orig.diag = SimpleNamespace(table_name="files", constraint_name="files_user_id_fkey")
        exc = IntegrityError("DELETE ...", {}, orig)

        err = ConstraintError.from_integrity_error(exc)

        assert err.status_code == 400
        assert err.details == {
            "constraintError": True,
            "table": "files",
            "constraint": "files_user_id_fkey",
        }
        assert "files / files_user_id_fkey" in err.message

    def test_driver_without_diag(self):
        exc = IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed"))

        err = ConstraintError.from_integrity_error(exc)

        assert err.details["table"] is None
        assert err.message == "Related data prevents this operation"
