"""
pagecraft.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn pagecraft.api.main:app --reload --port 8000

or ``python -m pagecraft.api``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from pagecraft import __version__  # noqa: E402
from pagecraft.api.auth import router as auth_router  # noqa: E402
from pagecraft.api.deps import get_engine  # noqa: E402
from pagecraft.api.errors import install_error_handlers  # noqa: E402
from pagecraft.api.routes.activities import router as activities_router  # noqa: E402
from pagecraft.api.routes.files import router as files_router  # noqa: E402
from pagecraft.api.routes.likes import router as likes_router  # noqa: E402
from pagecraft.api.routes.project_logs import router as project_logs_router  # noqa: E402
from pagecraft.api.routes.projects import router as projects_router  # noqa: E402
from pagecraft.api.routes.publications import router as publications_router  # noqa: E402
from pagecraft.api.routes.templates import router as templates_router  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    logger.info("Pagecraft API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Pagecraft API shutting down")


app = FastAPI(
    title="Pagecraft API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Mount routers (publications before projects: "/projects/publications"
# must not be captured by "/projects/{project_id}")
app.include_router(auth_router, prefix="/api")
app.include_router(publications_router, prefix="/api")
app.include_router(projects_router, prefix="/api")
app.include_router(templates_router, prefix="/api")
app.include_router(likes_router, prefix="/api")
app.include_router(activities_router, prefix="/api")
app.include_router(project_logs_router, prefix="/api")
app.include_router(files_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
