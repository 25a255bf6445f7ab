"""
pagecraft.database.engine — Database Connection & Async Helper
================================================================

FastAPI route handlers run on an ``asyncio`` event loop while SQLAlchemy +
psycopg2 is **synchronous**.  Calling the database straight from a route
would stall every other in-flight request until the query returns.

Every route therefore pushes its database work through :func:`run_db`,
which ships a plain synchronous service function to the default thread
pool via ``asyncio.to_thread()``.  Services stay ordinary
``Session``-based code; the event loop stays free.

Usage::

    from pagecraft.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine(cfg.database)   # reads DATABASE_URL from .env
    init_db(engine)                           # CREATE TABLE IF NOT EXISTS …

    # Inside an async route:
    project = await run_db(project_service.view_project, engine, 7, user.id)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine

from pagecraft.config import DatabaseConfig
from pagecraft.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(db_cfg: DatabaseConfig | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` from the ``DATABASE_URL`` env var.

    The connection pool is the only shared mutable resource of the API, so
    its sizing comes from ``config.yaml`` (see
    :class:`pagecraft.config.DatabaseConfig`) rather than being fixed here.

    Raises
    ------
    RuntimeError
        If ``DATABASE_URL`` is not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    db_cfg = db_cfg or DatabaseConfig()
    engine = create_engine(
        url,
        echo=False,
        pool_size=db_cfg.pool_size,
        max_overflow=db_cfg.max_overflow,
        pool_pre_ping=True,
        pool_timeout=db_cfg.pool_timeout,
        pool_recycle=db_cfg.pool_recycle,
    )
    logger.info(
        "Database engine created → %s (pool_size=%d, max_overflow=%d)",
        engine.url.host, db_cfg.pool_size, db_cfg.max_overflow,
    )
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`pagecraft.database.models`.

    .. note::

        In production the schema is managed by Alembic (``alembic upgrade
        head``).  ``create_all`` is retained for dev/test environments
        where Alembic may not have run.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** database function on a background thread.

    Every database call made from an ``async def`` route goes through this
    wrapper::

        result = await run_db(my_sync_db_function, engine, project_id)

    Parameters
    ----------
    func:
        Any sync callable (typically a service function that opens a
        session and runs queries).
    *args, **kwargs:
        Forwarded to *func*.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
