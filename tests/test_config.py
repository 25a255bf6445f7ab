"""
tests/test_config.py — Configuration & Engine Bootstrap
========================================================
"""

from __future__ import annotations

import asyncio
import os
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, inspect

from pagecraft.config import DatabaseConfig, load_config
from pagecraft.database.engine import create_db_engine, init_db, run_db


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "nope.yaml")

    def test_minimal_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("site_name: Tiny\n", encoding="utf-8")

        cfg = load_config(path)

        assert cfg.site_name == "Tiny"
        assert cfg.database == DatabaseConfig()
        assert cfg.publications_page_size_max == 100
        assert cfg.templates_page_size_max == 100

    def test_full_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "site_name: Pagecraft\n"
            "database:\n"
            "  pool_size: 20\n"
            "  pool_recycle: 600\n"
            "publications:\n"
            "  page_size_max: 25\n"
            "templates:\n"
            "  page_size_max: 40\n",
            encoding="utf-8",
        )

        cfg = load_config(path)

        assert cfg.database.pool_size == 20
        assert cfg.database.pool_recycle == 600
        assert cfg.database.max_overflow == 10
        assert cfg.publications_page_size_max == 25
        assert cfg.templates_page_size_max == 40

    def test_site_name_is_required(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("database: {}\n", encoding="utf-8")
        with pytest.raises(KeyError):
            load_config(path)


class TestEngine:
    def test_requires_database_url(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("DATABASE_URL", None)
            with pytest.raises(RuntimeError, match="DATABASE_URL is not set"):
                create_db_engine()

    def test_init_db_creates_tables(self):
        engine = create_engine("sqlite://")
        init_db(engine)
        tables = set(inspect(engine).get_table_names())
        assert {
            "users", "projects", "publications", "activities",
            "project_logs", "templates", "likes", "files",
        } <= tables

    def test_run_db_forwards_arguments(self):
        def add(a, b, *, c=0):
            return a + b + c

        assert asyncio.run(run_db(add, 1, 2, c=3)) == 6
