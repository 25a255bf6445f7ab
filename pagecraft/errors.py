"""
pagecraft.errors — Typed error taxonomy
=========================================

Services raise these; :mod:`pagecraft.api.errors` turns them into
``{"error": message, **details}`` JSON bodies with the matching status.

Ownership mismatches and missing rows both raise :class:`NotFoundError`
so a caller cannot probe for other users' project IDs.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError


class PagecraftError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(PagecraftError):
    """Bad input shape or missing required field."""

    status_code = 400


class NotFoundError(PagecraftError):
    """Missing row, or a row owned by someone else."""

    status_code = 404


class ForbiddenError(PagecraftError):
    """Caller is authenticated but may not modify this shared resource."""

    status_code = 403


class ConflictError(PagecraftError):
    """State-machine precondition violated (e.g. unpublish a draft)."""

    status_code = 400


class ConstraintError(PagecraftError):
    """Referential-integrity violation surfaced from the database."""

    status_code = 400

    def __init__(self, message: str, *, table: str | None = None, constraint: str | None = None) -> None:
        super().__init__(
            message,
            details={"constraintError": True, "table": table, "constraint": constraint},
        )
        self.table = table
        self.constraint = constraint

    @classmethod
    def from_integrity_error(cls, exc: IntegrityError) -> ConstraintError:
        """Build from a driver error, naming the table/constraint when known.

        psycopg2 exposes them on ``orig.diag``; other drivers only give a
        message, in which case both names are ``None``.
        """
        diag = getattr(exc.orig, "diag", None)
        table = getattr(diag, "table_name", None)
        constraint = getattr(diag, "constraint_name", None)
        where = f" ({table} / {constraint})" if table or constraint else ""
        return cls(
            f"Related data prevents this operation{where}",
            table=table,
            constraint=constraint,
        )


class InternalError(PagecraftError):
    """Unexpected persistence failure.  Logged server-side, generic to clients."""

    status_code = 500
