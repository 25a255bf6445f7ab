"""
pagecraft.config — YAML Configuration Loader
=============================================

**Why this file exists:**
This module reads ``config.yaml`` for **infrastructure-only** settings
(connection-pool sizing, page-size ceilings, site identity).  Secrets and
connection strings (``DATABASE_URL``, ``JWT_SECRET``) stay in the
environment / ``.env``.

Usage::

    from pagecraft.config import load_config

    cfg = load_config()                 # reads ./config.yaml by default
    print(cfg.site_name)                # "Pagecraft"
    print(cfg.database.pool_size)       # 5
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Connection-pool sizing.

    The pool is the only shared mutable resource in the API process, so
    its size bounds how many requests can touch the database at once.
    """

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30   # seconds to wait for a free connection
    pool_recycle: int = 3600


@dataclass(frozen=True, slots=True)
class PagecraftConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    site_name: str
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    # Upper bounds for ``limit`` query parameters on public listings
    publications_page_size_max: int = 100
    templates_page_size_max: int = 100


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PagecraftConfig:
    """Read *path* and return a :class:`PagecraftConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    db_raw: dict = raw.get("database") or {}
    defaults = DatabaseConfig()
    database = DatabaseConfig(
        pool_size=int(db_raw.get("pool_size", defaults.pool_size)),
        max_overflow=int(db_raw.get("max_overflow", defaults.max_overflow)),
        pool_timeout=int(db_raw.get("pool_timeout", defaults.pool_timeout)),
        pool_recycle=int(db_raw.get("pool_recycle", defaults.pool_recycle)),
    )

    publications: dict = raw.get("publications") or {}
    templates: dict = raw.get("templates") or {}

    return PagecraftConfig(
        site_name=raw["site_name"],
        database=database,
        publications_page_size_max=int(publications.get("page_size_max", 100)),
        templates_page_size_max=int(templates.get("page_size_max", 100)),
    )
