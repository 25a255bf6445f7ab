"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import itertools
import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of pagecraft.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from pagecraft.database.models import Base, File, Template, User  # noqa: E402


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Pagecraft tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` behind ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
@pytest.fixture
def make_user(db_engine: Engine):
    """Factory: insert a user and return its id."""
    counter = itertools.count(1)

    def _make(name: str = "Tester", *, is_active: bool = True) -> int:
        n = next(counter)
        with Session(db_engine, expire_on_commit=False) as session:
            user = User(email=f"user{n}@example.com", name=f"{name} {n}", is_active=is_active)
            session.add(user)
            session.commit()
            return user.id

    return _make


@pytest.fixture
def make_template(db_engine: Engine):
    """Factory: insert a template and return its id."""

    def _make(
        name: str = "Landing",
        *,
        user_id: int | None = None,
        category: str = "business",
        **fields,
    ) -> int:
        with Session(db_engine, expire_on_commit=False) as session:
            template = Template(
                name=name,
                html_content=fields.pop("html_content", "<h1>Hello</h1>"),
                category=category,
                user_id=user_id,
                **fields,
            )
            session.add(template)
            session.commit()
            return template.id

    return _make


@pytest.fixture
def make_file(db_engine: Engine):
    """Factory: insert a file metadata row for *user_id* and return its id."""

    def _make(user_id: int, name: str = "logo.png") -> int:
        with Session(db_engine, expire_on_commit=False) as session:
            row = File(
                user_id=user_id,
                filename=f"stored-{name}",
                original_name=name,
                path=f"/uploads/{name}",
                size=1024,
                mime_type="image/png",
            )
            session.add(row)
            session.commit()
            return row.id

    return _make


@pytest.fixture
def fail_next_commit():
    """Arm a one-shot failure: ``fail_next_commit(exc)`` makes the next
    ``Session.commit()`` anywhere raise *exc* before it flushes."""
    armed: list[Exception] = []

    def _before_commit(session: Session) -> None:
        if armed:
            raise armed.pop()

    event.listen(Session, "before_commit", _before_commit)
    yield armed.append
    event.remove(Session, "before_commit", _before_commit)


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
def make_token(user_id: int) -> str:
    """Create a bearer JWT for *user_id*."""
    from pagecraft.api.auth import issue_token

    return issue_token(user_id)


def auth_headers(user_id: int) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def client(db_engine: Engine):
    """TestClient wired to the in-memory engine, raise_server_exceptions=False."""
    from fastapi.testclient import TestClient

    from pagecraft.api.deps import get_config, get_engine
    from pagecraft.api.main import app
    from pagecraft.config import PagecraftConfig

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: PagecraftConfig(
        site_name="Pagecraft Test",
        publications_page_size_max=50,
        templates_page_size_max=50,
    )
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
